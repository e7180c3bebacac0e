"""
Value normalizers applied to every outgoing export field.

Strict normalizers raise NormalizeError; the lenient wrappers used by the
export path (sanitize_email, format_date) degrade instead of failing, so a
bad value never aborts an export.

All sanitizers are idempotent: sanitize(sanitize(x)) == sanitize(x)
"""
import re
from datetime import datetime
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email


# ASCII control characters except TAB, LF and CR
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_LINE_BREAKS = re.compile(r"\r\n|\r|\n")
_WHITESPACE_RUN = re.compile(r"\s+")
_PHONE_DISALLOWED = re.compile(r"[^\d+\s-]")
# 11-digit national mobile number (e.g. 01012345678)
_NATIONAL_MOBILE = re.compile(r"^01\d{9}$")

FORMULA_PREFIXES = ("=", "#")
FORMULA_GUARD = "'"

# Tried in order when bytes are not valid UTF-8
FALLBACK_ENCODINGS = ("cp1252", "latin-1")


class NormalizeError(Exception):
    """Raised when normalization fails and cannot be recovered."""

    pass


def to_text(value: Any) -> str:
    """
    Coerce any value to text.

    Bytes are decoded as UTF-8 first, then re-decoded best-effort from
    legacy single-byte encodings.
    """
    if value is None:
        return ""

    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            pass
        for encoding in FALLBACK_ENCODINGS:
            try:
                return raw.decode(encoding)
            except UnicodeDecodeError:
                continue
        return raw.decode("utf-8", errors="replace")

    text = str(value)
    # Lone surrogates cannot be written as UTF-8
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        text = text.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")
    return text


def sanitize_value(value: Any) -> str:
    """
    Final sanitize step for every outgoing value.

    Rules:
    - Coerce to text (best-effort UTF-8)
    - Strip ASCII control characters (0x00-0x08, 0x0B-0x0C, 0x0E-0x1F, 0x7F)
    - Trim

    Idempotent: sanitize_value(sanitize_value(x)) == sanitize_value(x)
    """
    text = to_text(value)
    if not text:
        return ""
    return _CONTROL_CHARS.sub("", text).strip()


def flatten_whitespace(value: Any) -> str:
    """Replace line breaks with spaces and collapse whitespace runs."""
    text = _LINE_BREAKS.sub(" ", to_text(value))
    return _WHITESPACE_RUN.sub(" ", text).strip()


def looks_like_formula(value: str) -> bool:
    return bool(value) and value.startswith(FORMULA_PREFIXES)


def guard_formula(value: str) -> str:
    """
    Neutralize values a spreadsheet would evaluate as a formula.

    "=SUM(A1:A2)" -> "'=SUM(A1:A2)"
    """
    if looks_like_formula(value):
        return FORMULA_GUARD + value
    return value


def clean_field_value(value: Any) -> str:
    """
    Sanitize a field and flatten it onto a single line.

    Used as the last step of every resolved canonical field.
    """
    text = sanitize_value(value)
    if not text:
        return ""
    return flatten_whitespace(text)


def clean_phone(value: Optional[str]) -> str:
    """
    Clean a phone number.

    Rules:
    - Keep only digits, '+', whitespace and '-'
    - An 11-digit national mobile number (01XXXXXXXXX) is kept as is
    - Otherwise trim

    Idempotent: clean_phone(clean_phone(x)) == clean_phone(x)
    """
    if not value:
        return ""

    phone = _PHONE_DISALLOWED.sub("", to_text(value))

    if _NATIONAL_MOBILE.match(phone):
        return phone

    return phone.strip()


def flatten_comment(value: Optional[str]) -> str:
    """
    Flatten long multiline comments into one CSV-safe line.

    Rules:
    - Line breaks -> single space, whitespace runs collapsed, trimmed
    - Double and single quotes escaped with a backslash
    - Spreadsheet formula guard
    """
    if not value:
        return ""

    comment = flatten_whitespace(value)
    comment = comment.replace('"', '\\"').replace("'", "\\'")
    return guard_formula(comment)


def normalize_email(value: Optional[str]) -> str:
    """
    Validate email syntax.

    Rules:
    - Strip whitespace
    - Syntax check only (no DNS/deliverability lookup)

    Args:
        value: Email address string

    Returns:
        The trimmed email, unchanged when valid

    Raises:
        NormalizeError: If email is empty or invalid
    """
    if not value:
        raise NormalizeError("Email is empty or None")

    email = to_text(value).strip()

    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise NormalizeError(f"Invalid email: {e}")

    return email


def sanitize_email(value: Optional[str]) -> str:
    """Return the email if syntactically valid, otherwise an empty string."""
    try:
        return normalize_email(sanitize_value(value))
    except NormalizeError:
        return ""


# Source formats tried in order
DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S",  # 2024-12-25 14:30:00
    "%Y-%m-%dT%H:%M:%S",  # ISO with T
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%d/%m/%Y %H:%M",  # 25/12/2024 14:30
    "%m/%d/%Y %H:%M",  # 12/25/2024 14:30
    "%d-%m-%Y %H:%M",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%b %d, %Y %I:%M:%S %p",  # Dec 25, 2024 2:30:00 PM (admin grid)
    "%b %d, %Y %I:%M %p",  # Dec 25, 2024 2:30 PM
    "%b %d, %Y",
]


def normalize_date_any(value: Optional[str]) -> datetime:
    """
    Parse a date string in any of the known export formats.

    Raises:
        NormalizeError: If the date is empty or cannot be parsed
    """
    if not value:
        raise NormalizeError("Date is empty or None")

    value_str = to_text(value).strip()

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value_str, fmt)
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(value_str)
    except ValueError:
        pass

    raise NormalizeError(f"Cannot parse date: {value}")


def format_date(value: Optional[str], output_format: str) -> str:
    """Reformat a date; unrecognized input is returned unchanged."""
    if not value:
        return ""
    try:
        return normalize_date_any(value).strftime(output_format)
    except NormalizeError:
        return to_text(value)
