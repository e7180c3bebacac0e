"""
Export assembler - enhance a raw order export payload end to end.

Pipeline:
1. Decode payload, drop BOM, split into lines
2. Parse and map the header against the canonical schema
3. Parse data lines, repairing multiline records
4. Group fragment rows into logical orders
5. Resolve canonical field values per order
6. Serialize with the canonical header, prefixed with a UTF-8 BOM

When no canonical column matches, the payload is only re-serialized
(encoding fix). Nothing here raises on malformed CSV input.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from order_enhancer.consolidate.orders import OrderConsolidator
from order_enhancer.core.config import Settings
from order_enhancer.core.logging_config import configure_logging
from order_enhancer.export.csv_codec import (
    decode_payload,
    join_lines,
    parse_line,
    serialize_line,
    split_lines,
)
from order_enhancer.export.report import (
    MODE_DISABLED,
    MODE_ENCODING_FIX,
    ExportStatistics,
)
from order_enhancer.mapping.column_mapper import ColumnMapping, Row, build_row, map_header
from order_enhancer.registry.loader import CanonicalSchema, SchemaLoader
from order_enhancer.transform.normalizers import to_text
from order_enhancer.transform.resolvers import FieldValueResolver


logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """Enhanced CSV text and the statistics of the run that produced it."""

    csv_text: str
    statistics: ExportStatistics
    enhanced: bool = True

    def to_bytes(self) -> bytes:
        """UTF-8 encoded CSV (BOM included)."""
        return self.csv_text.encode("utf-8")


class ExportAssembler:
    """
    Drives the codec, mapper, consolidator and resolver over one payload.

    An assembler holds no per-run state: every enhance() call builds its own
    row buffer and order accumulator, so one instance can serve many runs.
    """

    def __init__(
        self,
        schema: CanonicalSchema,
        settings: Optional[Settings] = None,
        resolver: Optional[FieldValueResolver] = None,
        consolidator: Optional[OrderConsolidator] = None,
    ):
        """
        Initialize assembler.

        Args:
            schema: Canonical schema variant for the output header
            settings: Feature flags and export settings (default: Settings())
            resolver: Field value resolver (default: built from settings)
            consolidator: Order consolidator (default: built from settings)
        """
        self.schema = schema
        self.settings = settings or Settings()
        self.resolver = resolver or FieldValueResolver.from_settings(self.settings)
        self.consolidator = consolidator or OrderConsolidator(
            enabled=self.settings.CONSOLIDATE_ORDERS
        )
        self.max_field_length = self.settings.MAX_FIELD_LENGTH

    def enhance(self, payload: Union[str, bytes]) -> ExportResult:
        """
        Enhance one export payload.

        Args:
            payload: Raw export text or bytes (BOM optional, first line = header)

        Returns:
            ExportResult with BOM-prefixed CSV text and statistics
        """
        stats = ExportStatistics()

        if not self.settings.EXPORT_ENABLED:
            logger.info("Order export enhancement is disabled, returning payload unchanged")
            stats.mode = MODE_DISABLED
            return ExportResult(csv_text=to_text(payload), statistics=stats, enhanced=False)

        lines = split_lines(decode_payload(payload))
        if not lines or not lines[0].strip():
            logger.error("Export payload has no header line")
            stats.add_warning("Export payload has no header line")
            return ExportResult(csv_text=join_lines([]), statistics=stats, enhanced=False)

        header = parse_line(lines[0].strip())
        mapping = map_header(header, self.schema)

        stats.mapped_columns = {
            name: mapping.source_name(name) for name in mapping.matched
        }
        stats.unmapped_columns = mapping.unmapped

        if mapping.is_empty:
            logger.warning("No canonical columns found in header, fixing encoding only")
            stats.add_warning("No canonical columns found in header; encoding fix only")
            return self._encoding_fix(lines, stats)

        logger.info(
            "Mapped %s of %s canonical columns (schema %s)",
            len(mapping.matched),
            len(mapping),
            self.schema.name,
        )

        rows = self._read_rows(header, lines[1:], stats)
        stats.original_rows = len(rows)

        orders = self.consolidator.group(rows)
        stats.processed_rows = len(orders)

        output = [serialize_line(mapping.display_names, max_length=self.max_field_length)]
        output.extend(self._resolve_orders(orders, mapping, stats))

        logger.info(
            "Processed %s orders from %s rows, skipped %s rows",
            stats.processed_rows,
            stats.original_rows,
            stats.skipped_rows,
        )

        return ExportResult(csv_text=join_lines(output), statistics=stats)

    def _read_rows(self, header: List[str], lines: List[str], stats: ExportStatistics) -> List[Row]:
        """
        Parse data lines into rows, repairing multiline records.

        Rules:
        - Fewer columns than the header: buffer and join with the next line
        - Buffer + next line gives too many columns: the buffered fragment is
          skipped and the line is processed on its own
        - Too many columns on their own: excess merged into the last column
        - A fragment still buffered at end of input is skipped
        """
        expected = len(header)
        rows: List[Row] = []
        buffer = ""
        buffer_start = 0

        for line_no, raw_line in enumerate(lines, start=2):
            line = raw_line.strip()
            if not line:
                continue

            if buffer:
                values = parse_line(buffer + "\n" + line)
                if len(values) > expected:
                    stats.skipped_rows += 1
                    logger.warning(
                        "Skipping line %s - incomplete record (continuation at line %s overflows)",
                        buffer_start,
                        line_no,
                    )
                    buffer = ""
                else:
                    stats.merged_lines += 1
                    line = buffer + "\n" + line
                    logger.debug("Joined line %s onto record from line %s", line_no, buffer_start)

            values = parse_line(line)

            if len(values) < expected:
                if not buffer:
                    buffer_start = line_no
                    stats.buffered_lines += 1
                buffer = line
                logger.debug(
                    "Line %s has %s of %s columns, buffering", line_no, len(values), expected
                )
                continue

            buffer = ""

            if len(values) > expected:
                logger.warning(
                    "Line %s has too many columns (%s), merging excess into last column",
                    line_no,
                    len(values),
                )
                values = values[: expected - 1] + [" ".join(values[expected - 1:])]

            rows.append(build_row(header, values))

        if buffer:
            stats.skipped_rows += 1
            logger.warning("Skipping line %s - incomplete record at end of input", buffer_start)

        return rows

    def _resolve_orders(self, orders, mapping: ColumnMapping, stats: ExportStatistics) -> List[str]:
        first_error = len(self.resolver.errors)
        output: List[str] = []

        for order in orders:
            values = self.resolver.resolve_order(order.row, mapping, order.key)
            output.append(serialize_line(values, max_length=self.max_field_length))

        stats.field_errors = [error.to_dict() for error in self.resolver.errors[first_error:]]
        if stats.field_errors:
            stats.add_warning(f"{len(stats.field_errors)} field value(s) could not be derived")

        return output

    def _encoding_fix(self, lines: List[str], stats: ExportStatistics) -> ExportResult:
        """Re-serialize every line as is (no reprojection, no consolidation)."""
        stats.mode = MODE_ENCODING_FIX
        output: List[str] = []

        for line in lines:
            if not line.strip():
                continue
            output.append(serialize_line(parse_line(line.strip()), max_length=self.max_field_length))

        data_lines = max(len(output) - 1, 0)
        stats.original_rows = data_lines
        stats.processed_rows = data_lines

        return ExportResult(csv_text=join_lines(output), statistics=stats, enhanced=False)


def enhance_export(
    payload: Union[str, bytes],
    schema: CanonicalSchema,
    settings: Optional[Settings] = None,
) -> Tuple[str, ExportStatistics]:
    """Convenience wrapper: enhanced CSV text and statistics for one payload."""
    result = ExportAssembler(schema, settings=settings).enhance(payload)
    return result.csv_text, result.statistics


def build_assembler(
    settings: Optional[Settings] = None,
    schema_name: Optional[str] = None,
) -> ExportAssembler:
    """
    Build an assembler from settings.

    Configures package logging, loads the schema registry and selects the
    schema variant (default: settings.SCHEMA_VARIANT).

    Raises:
        SchemaError: If the schema file is invalid or the variant is unknown
    """
    settings = settings or Settings()
    configure_logging(settings)

    schema = SchemaLoader(settings.schema_path).get_schema(schema_name or settings.SCHEMA_VARIANT)
    logger.info("Using schema variant '%s' (%s columns)", schema.name, len(schema))

    return ExportAssembler(schema, settings=settings)
