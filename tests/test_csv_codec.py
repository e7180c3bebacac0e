"""
Tests for the CSV line codec.

Validates:
- Quoted fields, embedded newlines, escaped quotes
- Best-effort parsing of malformed lines
- Always-quoted serialization, truncation, formula guard
- Round-trip of serialized lines
"""
import pytest

from order_enhancer.export.csv_codec import (
    BOM,
    decode_payload,
    join_lines,
    parse_line,
    serialize_field,
    serialize_line,
    split_lines,
)


class TestParseLine:
    """Tests for parse_line."""

    def test_simple_line(self):
        """Test plain comma-separated values."""
        assert parse_line("a,b,c") == ["a", "b", "c"]

    def test_quoted_delimiter(self):
        """Test commas inside quotes do not split."""
        assert parse_line('"Cairo, Egypt",2') == ["Cairo, Egypt", "2"]

    def test_escaped_quotes(self):
        """Test doubled quotes become one quote."""
        assert parse_line('1,"say ""hi""",3') == ["1", 'say "hi"', "3"]

    def test_literal_doubled_quotes_kept(self):
        """Test a value containing two quote characters keeps both."""
        assert parse_line('"size 5"""" x 3",2') == ['size 5"" x 3', "2"]

    def test_embedded_newline_collapsed(self):
        """Test newline inside a quoted field becomes a single space."""
        assert parse_line('1,"line one\nline two",3') == ["1", "line one line two", "3"]

    def test_whitespace_trimmed_and_collapsed(self):
        """Test fields are trimmed and inner whitespace runs collapsed."""
        assert parse_line(" a ,  b   c  ") == ["a", "b c"]

    def test_empty_fields_kept(self):
        """Test empty fields keep their position."""
        assert parse_line("1,,3,") == ["1", "", "3", ""]

    def test_malformed_line_never_raises(self):
        """Test unterminated quotes give a best-effort result."""
        fields = parse_line('"unterminated,field')
        assert isinstance(fields, list)
        assert len(fields) >= 1
        assert "unterminated" in fields[0]

    def test_unquoted_newline_uses_scanner(self):
        """Test a bare newline outside quotes does not lose fields."""
        assert parse_line("1,abc\ndef,3") == ["1", "abc def", "3"]

    def test_none(self):
        """Test None parses to a single empty field."""
        assert parse_line(None) == [""]


class TestSerialize:
    """Tests for serialize_field / serialize_line."""

    def test_every_field_quoted(self):
        """Test fields are always quote-wrapped."""
        assert serialize_line(["a", "1", ""]) == '"a","1",""'

    def test_quotes_doubled(self):
        """Test embedded quotes are doubled."""
        assert serialize_field('b "c"') == '"b ""c"""'

    def test_formula_guard(self):
        """Test formula-like values are neutralized."""
        assert serialize_field("=SUM(A1:A2)") == "\"'=SUM(A1:A2)\""
        assert serialize_field("#REF!") == "\"'#REF!\""

    def test_guard_is_stable(self):
        """Test a guarded value is not guarded twice."""
        assert serialize_field("'=SUM(A1:A2)") == "\"'=SUM(A1:A2)\""

    def test_truncation(self):
        """Test long values are cut to the maximum length with an ellipsis."""
        serialized = serialize_field("x" * 2500)
        inner = serialized[1:-1]
        assert len(inner) == 2000
        assert inner.endswith("...")

    def test_custom_max_length(self):
        """Test the truncation limit is configurable."""
        assert serialize_field("abcdefghij", max_length=8) == '"abcde..."'

    def test_newlines_flattened(self):
        """Test serialized fields are always single-line."""
        assert serialize_field("a\r\nb\nc") == '"a b c"'

    def test_none_serializes_empty(self):
        """Test None becomes an empty quoted field."""
        assert serialize_field(None) == '""'


class TestRoundTrip:
    """Tests for parse/serialize round-trips."""

    @pytest.mark.parametrize(
        "fields",
        [
            ["Ali, Hassan", 'say "hi"', "plain"],
            ["1001001", "", "Widget A (SKU: W1, Qty: 1) | Widget B (SKU: W2, Qty: 2)"],
            ["'=SUM(A1:A2)", "10.00, 20.00"],
            ['size 5"" x 3', 'a"b'],
        ],
    )
    def test_round_trip(self, fields):
        """Test serialize(parse(serialize(x))) == serialize(x)."""
        line = serialize_line(fields)
        assert parse_line(line) == fields
        assert serialize_line(parse_line(line)) == line


class TestPayloadHelpers:
    """Tests for payload decoding and line joining."""

    def test_decode_strips_bom_from_bytes(self):
        """Test UTF-8 BOM bytes are removed."""
        assert decode_payload(b"\xef\xbb\xbfa,b") == "a,b"

    def test_decode_strips_bom_from_text(self):
        """Test a leading BOM character is removed."""
        assert decode_payload(BOM + "a,b") == "a,b"

    def test_decode_legacy_encoding(self):
        """Test non-UTF-8 bytes are decoded best-effort."""
        assert decode_payload(b"caf\xe9") == "café"

    def test_split_lines(self):
        """Test payload splits on LF."""
        assert split_lines("a\nb\n") == ["a", "b", ""]

    def test_join_lines_with_bom(self):
        """Test output is LF-joined and BOM-prefixed."""
        assert join_lines(['"a"', '"b"']) == BOM + '"a"\n"b"'
        assert join_lines(['"a"'], bom=False) == '"a"'
