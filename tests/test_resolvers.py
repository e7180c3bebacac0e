"""
Tests for the field value resolver.

Validates:
- Customer name construction and the guest fallback
- Order id, phone, comment, item detail derivations
- Failure isolation (errors recorded, field left empty)
"""
import pytest

from order_enhancer.core.config import Settings
from order_enhancer.mapping.column_mapper import build_row, map_header
from order_enhancer.transform.resolvers import (
    GUEST_CUSTOMER,
    FieldValueResolver,
    construct_item_details,
    first_value,
)


@pytest.fixture
def resolver():
    """Resolver with default name priority."""
    return FieldValueResolver()


class TestCustomerName:
    """Tests for customer name construction."""

    def test_first_and_last_name(self, resolver):
        """Test missing Order Name is built from billing names."""
        row = {"billing_firstname": "Ali", "billing_lastname": "Hassan"}
        assert resolver.resolve_field("Order Name", "", row) == "Ali Hassan"

    def test_partial_source_completed(self, resolver):
        """Test a value mapped from a first-name column gets the last name."""
        row = {"billing_firstname": "Ali", "billing_lastname": "Hassan"}
        value = resolver.resolve_field("Order Name", "Ali", row, source="billing_firstname")
        assert value == "Ali Hassan"

    def test_full_name_column_kept(self, resolver):
        """Test a mapped full-name value is used as is."""
        row = {"Customer Name": "Mona Adel", "billing_firstname": "Ali"}
        value = resolver.resolve_field("Customer Name", "Mona Adel", row, source="Customer Name")
        assert value == "Mona Adel"

    def test_guest_fallback(self, resolver):
        """Test rows without any name give the guest placeholder."""
        assert resolver.resolve_field("Customer Name", "", {"increment_id": "1"}) == GUEST_CUSTOMER
        assert GUEST_CUSTOMER == "Guest Customer"

    def test_direct_fields_reject_formulas_and_guest(self, resolver):
        """Test formula-like and placeholder direct names are skipped."""
        row = {"order_name": "=HYPERLINK(\"x\")", "full_customer_name": "Sara Ali"}
        assert resolver.construct_customer_name(row) == "Sara Ali"

        row = {"enhanced_customer_name": GUEST_CUSTOMER, "billing_firstname": "Mona"}
        assert resolver.construct_customer_name(row) == "Mona"

    def test_formula_first_name_rejected(self, resolver):
        """Test a constructed formula-like name falls back to guest."""
        row = {"billing_firstname": "=cmd", "billing_lastname": "x"}
        assert resolver.construct_customer_name(row) == GUEST_CUSTOMER

    def test_names_picked_independently(self, resolver):
        """Test first and last name may come from different sources."""
        row = {"billing_firstname": "Ali", "shipping_lastname": "Farouk"}
        assert resolver.construct_customer_name(row) == "Ali Farouk"

    def test_shipping_priority(self):
        """Test configured name priority changes the source order."""
        resolver = FieldValueResolver(name_sources=["shipping", "billing", "customer"])
        row = {
            "billing_firstname": "Ali",
            "billing_lastname": "Hassan",
            "shipping_firstname": "Omar",
            "shipping_lastname": "Farouk",
        }
        assert resolver.construct_customer_name(row) == "Omar Farouk"

    def test_unknown_source_raises(self):
        """Test unknown name sources are rejected."""
        with pytest.raises(ValueError, match="Unknown name sources"):
            FieldValueResolver(name_sources=["billing", "warehouse"])

    def test_from_settings(self):
        """Test name priority and date format come from Settings."""
        settings = Settings(_env_file=None, CUSTOMER_NAME_PRIORITY="shipping_first", DATE_FORMAT="%d/%m/%Y")
        resolver = FieldValueResolver.from_settings(settings)

        assert resolver.name_sources == ["shipping", "billing", "customer"]
        assert resolver.date_format == "%d/%m/%Y"


class TestDerivations:
    """Tests for the other field-specific rules."""

    def test_order_id_fallback(self, resolver):
        """Test order id comes from increment id, then entity id."""
        assert resolver.resolve_field("Order ID", "", {"increment_id": "1001"}) == "1001"
        assert resolver.resolve_field("Order ID", "", {"increment_id": "", "entity_id": "55"}) == "55"
        assert resolver.resolve_field("Order ID", "9", {"increment_id": "1001"}) == "9"

    def test_phone_cleaned(self, resolver):
        """Test phone numbers are cleaned."""
        assert resolver.resolve_field("Phone Number", "Tel: 01012345678", {}) == "01012345678"

    def test_phone_fallback(self, resolver):
        """Test empty phone falls back to raw telephone columns."""
        row = {"billing_telephone": "", "shipping_telephone": "+20 100 (123)"}
        assert resolver.resolve_field("Phone Number", "", row) == "+20 100 123"

    def test_alternative_phone_fallback(self, resolver):
        """Test alternative phone falls back to the first custom field."""
        row = {"custom_field_1": "0111-222-3333"}
        assert resolver.resolve_field("Alternative Phone", "", row) == "0111-222-3333"

    def test_comment_formula_guard(self, resolver):
        """Test formula comments get a neutralizing prefix."""
        value = resolver.resolve_field("Order Comments", "=SUM(A1:A2)", {})
        assert value == "'=SUM(A1:A2)"
        assert not value.startswith("=")

    def test_comment_fallback_flattened(self, resolver):
        """Test comments fall back to the second custom field and flatten."""
        row = {"custom_field_2": "Leave at\r\ndoor"}
        assert resolver.resolve_field("Order Comments", "", row) == "Leave at door"

    def test_item_details_kept(self, resolver):
        """Test mapped item details pass through."""
        assert resolver.resolve_field("Item Details", "Widget (SKU: W1, Qty: 1)", {}) == "Widget (SKU: W1, Qty: 1)"

    def test_item_details_constructed(self, resolver):
        """Test item details are built from product columns."""
        row = {"product_name": "Widget", "sku": "W1"}
        assert resolver.resolve_field("Item Details", "", row) == "Widget (SKU: W1, Qty: 1)"

    def test_item_details_placeholders(self):
        """Test missing pieces get placeholders; nothing gives empty."""
        assert construct_item_details({"sku": "W9", "qty_ordered": "3"}) == "Unknown Product (SKU: W9, Qty: 3)"
        assert construct_item_details({"name": "Lamp"}) == "Lamp (SKU: N/A, Qty: 1)"
        assert construct_item_details({"qty": "2"}) == ""

    def test_email_checked(self, resolver):
        """Test invalid emails are forced to empty."""
        assert resolver.resolve_field("Customer Email", "broken@", {}) == ""
        assert resolver.resolve_field("Customer Email", "ali@gmail.com", {}) == "ali@gmail.com"

    def test_order_date_formatted(self):
        """Test dates are reformatted; unknown formats pass through."""
        resolver = FieldValueResolver(date_format="%Y-%m-%d")
        assert resolver.resolve_field("Order Date", "Dec 25, 2024 2:30:00 PM", {}) == "2024-12-25"
        assert resolver.resolve_field("Order Date", "sometime", {}) == "sometime"

    def test_order_date_untouched_without_format(self, resolver):
        """Test dates pass through when no output format is set."""
        assert resolver.resolve_field("Order Date", "Dec 25, 2024", {}) == "Dec 25, 2024"

    def test_passthrough_sanitized(self, resolver):
        """Test other fields are sanitized only."""
        assert resolver.resolve_field("City", " Cairo\x07\nWest ", {}) == "Cairo West"
        assert resolver.resolve_field("City", None, {}) == ""

    def test_first_value(self):
        """Test first non-blank value is returned trimmed."""
        assert first_value({"a": " ", "b": " x "}, ["a", "b"]) == "x"
        assert first_value({}, ["a"]) == ""


class BrokenPhoneResolver(FieldValueResolver):
    def _phone(self, value, row, source):
        raise RuntimeError("phone lookup failed")


class TestResolveOrder:
    """Tests for resolve_order."""

    def test_values_in_mapping_order(self, resolver, small_schema):
        """Test one value per display name, absent ones derived or empty."""
        header = ["increment_id", "billing_firstname", "billing_lastname", "grand_total"]
        mapping = map_header(header, small_schema)
        row = build_row(header, ["1001", "Ali", "Hassan", "30.00"])

        assert resolver.resolve_order(row, mapping, "1001") == ["1001", "Ali Hassan", "", "30.00"]

    def test_failure_isolated(self, small_schema):
        """Test a failing field is left empty and recorded."""
        resolver = BrokenPhoneResolver()
        header = ["increment_id", "billing_telephone", "grand_total"]
        mapping = map_header(header, small_schema)
        row = build_row(header, ["1001", "01012345678", "30.00"])

        values = resolver.resolve_order(row, mapping, "1001")

        assert values == ["1001", GUEST_CUSTOMER, "", "30.00"]
        assert len(resolver.errors) == 1
        error = resolver.errors[0]
        assert (error.order_key, error.field, error.message) == (
            "1001",
            "Phone Number",
            "phone lookup failed",
        )
        assert error.to_dict() == {
            "order": "1001",
            "field": "Phone Number",
            "error": "phone lookup failed",
        }
