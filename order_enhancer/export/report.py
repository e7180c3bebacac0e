"""
Export statistics.

Tracks how an export run went: row accounting, how many fragment rows were
consolidated, which canonical columns were found, and what went wrong.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List
import json


MODE_ENHANCED = "enhanced"
MODE_ENCODING_FIX = "encoding_fix"
MODE_DISABLED = "disabled"


def consolidation_ratio(original_rows: int, processed_rows: int) -> float:
    """Percentage reduction from raw rows to logical orders, 2 decimals."""
    if original_rows <= 0:
        return 0.0
    return round((original_rows - processed_rows) / original_rows * 100, 2)


@dataclass
class ExportStatistics:
    """
    Statistics of one export run.

    original_rows counts accepted data rows (after multiline repair);
    processed_rows counts the logical orders written.
    """

    original_rows: int = 0
    processed_rows: int = 0
    skipped_rows: int = 0

    # Multiline repair
    buffered_lines: int = 0
    merged_lines: int = 0

    mode: str = MODE_ENHANCED

    # Canonical display name -> source column
    mapped_columns: Dict[str, str] = field(default_factory=dict)
    unmapped_columns: List[str] = field(default_factory=list)

    field_errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    export_time: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def consolidation_ratio(self) -> float:
        return consolidation_ratio(self.original_rows, self.processed_rows)

    def add_warning(self, warning: str):
        """Add a warning."""
        self.warnings.append(warning)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "export_time": self.export_time,
            "mode": self.mode,
            "original_rows": self.original_rows,
            "processed_rows": self.processed_rows,
            "skipped_rows": self.skipped_rows,
            "consolidation_ratio": self.consolidation_ratio,
            "buffered_lines": self.buffered_lines,
            "merged_lines": self.merged_lines,
            "mapped_columns": self.mapped_columns,
            "unmapped_columns": self.unmapped_columns,
            "field_errors": self.field_errors,
            "warnings": self.warnings,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def to_summary(self) -> str:
        """Generate a text summary of the export."""
        lines = [
            "=" * 80,
            "ORDER EXPORT REPORT",
            "=" * 80,
            f"Export time: {self.export_time}",
            f"Mode: {self.mode}",
            "",
            "ROWS:",
            f"  Original:  {self.original_rows}",
            f"  Processed: {self.processed_rows}",
            f"  Skipped:   {self.skipped_rows}",
            f"  Consolidation ratio: {self.consolidation_ratio}%",
            "",
        ]

        if self.buffered_lines or self.merged_lines:
            lines.extend([
                "MULTILINE REPAIR:",
                f"  Buffered fragments: {self.buffered_lines}",
                f"  Merged lines:       {self.merged_lines}",
                "",
            ])

        if self.mapped_columns:
            lines.append(f"MAPPED COLUMNS ({len(self.mapped_columns)}):")
            for display_name, source in self.mapped_columns.items():
                if display_name != source:
                    lines.append(f"  '{source}' → '{display_name}'")
                else:
                    lines.append(f"  '{display_name}'")
            lines.append("")

        if self.unmapped_columns:
            lines.append(f"UNMAPPED COLUMNS ({len(self.unmapped_columns)}):")
            for name in self.unmapped_columns:
                lines.append(f"  '{name}'")
            lines.append("")

        if self.field_errors:
            lines.append(f"FIELD ERRORS ({len(self.field_errors)}):")
            for error in self.field_errors[:10]:
                lines.append(f"  {error['order']} / {error['field']}: {error['error']}")
            if len(self.field_errors) > 10:
                lines.append(f"  ... and {len(self.field_errors) - 10} more")
            lines.append("")

        if self.warnings:
            lines.append(f"WARNINGS ({len(self.warnings)}):")
            for warning in self.warnings[:5]:
                lines.append(f"  ⚠ {warning}")
            if len(self.warnings) > 5:
                lines.append(f"  ... and {len(self.warnings) - 5} more")
            lines.append("")

        lines.append("=" * 80)
        return "\n".join(lines)
