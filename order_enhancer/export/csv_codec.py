"""
CSV line codec - parse one logical line into fields, serialize fields into one line.

Parsing never fails: a malformed line yields a best-effort field list.
Serialization always quotes every field, doubles embedded quotes,
truncates over-long values and guards against spreadsheet formulas.
"""
import csv
import logging
import re
from typing import Iterable, List, Union

from order_enhancer.transform.normalizers import clean_field_value, guard_formula, to_text


logger = logging.getLogger(__name__)

DELIMITER = ","
QUOTE = '"'
BOM = "\ufeff"
UTF8_BOM_BYTES = b"\xef\xbb\xbf"
MAX_FIELD_LENGTH = 2000
ELLIPSIS = "..."

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")
_WHITESPACE_RUN = re.compile(r"\s+")


def strip_bom(text: str) -> str:
    """Remove a leading UTF-8 byte-order mark."""
    return text[1:] if text.startswith(BOM) else text


def decode_payload(payload: Union[str, bytes]) -> str:
    """Decode an export payload to text and drop the BOM."""
    if isinstance(payload, (bytes, bytearray)):
        raw = bytes(payload)
        if raw.startswith(UTF8_BOM_BYTES):
            raw = raw[len(UTF8_BOM_BYTES):]
        return to_text(raw)
    return strip_bom(to_text(payload))


def split_lines(text: str) -> List[str]:
    """Split payload text into physical lines ("\\r\\n" and "\\n" endings)."""
    return text.split("\n")


def _simple_split(line: str, delimiter: str) -> List[str]:
    """Standard CSV split of a single line."""
    reader = csv.reader([line], delimiter=delimiter, quotechar=QUOTE, doublequote=True, strict=False)
    rows = list(reader)
    if not rows:
        return [""]
    return rows[0]


def _scan_split(line: str, delimiter: str) -> List[str]:
    """
    Quote-aware character scanner.

    Splits on the delimiter only outside quotes; a doubled quote inside
    quotes is an escaped quote.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]

        if char == QUOTE:
            if in_quotes and i + 1 < length and line[i + 1] == QUOTE:
                # Escaped quote
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return fields


def _clean_parsed_field(value: str) -> str:
    # Remove one layer of surrounding quotes if present
    if len(value) >= 2 and value[0] == QUOTE and value[-1] == QUOTE:
        value = value[1:-1]

    value = _LINE_BREAKS.sub(" ", value)
    value = _WHITESPACE_RUN.sub(" ", value)
    return value.strip()


def parse_line(line: str, delimiter: str = DELIMITER) -> List[str]:
    """
    Parse one logical CSV line into cleaned field values.

    Embedded newlines inside quoted fields are kept as part of the field
    and then collapsed to a single space.

    Args:
        line: Line text (may contain newlines inside quoted fields)
        delimiter: Field delimiter

    Returns:
        List of field strings (at least one)
    """
    if line is None:
        return [""]

    try:
        fields = _simple_split(line, delimiter)
    except csv.Error as e:
        logger.debug("Standard parsing failed (%s), using quote-aware scanner", e)
        fields = _scan_split(line, delimiter)
    else:
        if len(fields) == 1 and delimiter in line:
            logger.debug("Standard parsing returned one field, using quote-aware scanner")
            fields = _scan_split(line, delimiter)

    return [_clean_parsed_field(field) for field in fields]


def serialize_field(value, max_length: int = MAX_FIELD_LENGTH) -> str:
    """Quote-wrap one field value for output (always a single line)."""
    text = guard_formula(clean_field_value(value))

    if len(text) > max_length:
        text = text[: max_length - len(ELLIPSIS)] + ELLIPSIS

    return QUOTE + text.replace(QUOTE, QUOTE * 2) + QUOTE


def serialize_line(
    fields: Iterable,
    delimiter: str = DELIMITER,
    max_length: int = MAX_FIELD_LENGTH,
) -> str:
    """
    Serialize fields into one CSV line.

    Every field is quote-wrapped; embedded quotes are doubled.
    """
    return delimiter.join(serialize_field(f, max_length) for f in fields)


def join_lines(lines: Iterable[str], bom: bool = True) -> str:
    """Join serialized lines with LF, prefixed with a UTF-8 BOM."""
    content = "\n".join(lines)
    return BOM + content if bom else content
