"""
Field value resolver - compute the final value of each canonical column.

Most columns pass through (sanitized only). A few canonical fields have
derivation rules applied when the mapped source value is missing:

- Order ID: increment id, then entity id columns
- Order Name / Customer Name: full-name columns, then first + last name
  by address priority, then the guest placeholder
- Phone numbers: character cleaning
- Order Comments: multiline flattening with formula guard
- Item Details: "<name> (SKU: <sku>, Qty: <qty>)" from product columns

Every value goes through clean_field_value() last.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from order_enhancer.mapping.column_mapper import ColumnMapping, Row
from order_enhancer.transform.normalizers import (
    clean_field_value,
    clean_phone,
    flatten_comment,
    format_date,
    looks_like_formula,
    sanitize_email,
)


logger = logging.getLogger(__name__)

GUEST_CUSTOMER = "Guest Customer"

INCREMENT_ID_FIELDS = ("increment_id", "Increment Id", "Order ID")
ENTITY_ID_FIELDS = ("entity_id", "ID")

DIRECT_NAME_FIELDS = ("enhanced_customer_name", "order_name", "full_customer_name")
NAME_SOURCE_FIELDS = {
    "billing": ("billing_firstname", "billing_lastname"),
    "shipping": ("shipping_firstname", "shipping_lastname"),
    "customer": ("customer_firstname", "customer_lastname"),
}
# Mapping a name column to one of these only yields half a name
PARTIAL_NAME_FIELDS = frozenset(first for first, _ in NAME_SOURCE_FIELDS.values())

PHONE_FIELDS = ("billing_telephone", "shipping_telephone", "customer_phone", "telephone")
ALTERNATIVE_PHONE_FIELD = "custom_field_1"
COMMENTS_FIELD = "custom_field_2"

PRODUCT_NAME_FIELDS = ("product_name", "name", "item_name")
SKU_FIELDS = ("sku", "product_sku")
QTY_FIELDS = ("qty_ordered", "qty", "quantity")


@dataclass(frozen=True)
class FieldError:
    """A canonical field that could not be derived for one order."""

    order_key: str
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"order": self.order_key, "field": self.field, "error": self.message}


def first_value(row: Row, names: Sequence[str]) -> str:
    """First non-blank value among the named columns, trimmed."""
    for name in names:
        value = row.get(name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


class FieldValueResolver:
    """
    Resolves canonical field values for consolidated orders.

    Derivation failures are recorded in ``errors`` and leave the field empty;
    they never stop the remaining fields or orders.
    """

    def __init__(
        self,
        name_sources: Sequence[str] = ("billing", "shipping", "customer"),
        date_format: Optional[str] = None,
    ):
        """
        Initialize resolver.

        Args:
            name_sources: Address sources for first/last name, in priority order
            date_format: strftime format for "Order Date"; None keeps the source text
        """
        unknown = [s for s in name_sources if s not in NAME_SOURCE_FIELDS]
        if unknown:
            raise ValueError(f"Unknown name sources: {', '.join(unknown)}")

        self.name_sources = list(name_sources)
        self.date_format = date_format
        self.errors: List[FieldError] = []

        self._handlers: Dict[str, Callable[[str, Row, Optional[str]], str]] = {
            "Order ID": self._order_id,
            "Order Date": self._order_date,
            "Order Name": self._customer_name,
            "Customer Name": self._customer_name,
            "Customer Email": self._email,
            "Phone Number": self._phone,
            "Alternative Phone": self._alternative_phone,
            "Order Comments": self._comments,
            "Item Details": self._item_details,
        }

    @classmethod
    def from_settings(cls, settings) -> "FieldValueResolver":
        return cls(name_sources=settings.name_sources(), date_format=settings.DATE_FORMAT)

    def resolve_field(
        self,
        display_name: str,
        mapped_value: Optional[str],
        row: Row,
        source: Optional[str] = None,
    ) -> str:
        """
        Compute the final value of one canonical field.

        Args:
            display_name: Canonical column
            mapped_value: Value of the mapped source column ("" if absent)
            row: Full raw (consolidated) row, for fallbacks
            source: Name of the mapped source column, if any

        Returns:
            Sanitized single-line value
        """
        value = mapped_value or ""
        handler = self._handlers.get(display_name)
        if handler is not None:
            value = handler(value, row, source)
        return clean_field_value(value)

    def resolve_order(self, row: Row, mapping: ColumnMapping, order_key: str = "") -> List[str]:
        """Resolve every canonical field of one order, in mapping order."""
        values: List[str] = []

        for display_name in mapping.display_names:
            source = mapping.source_name(display_name)
            mapped_value = row.get(source, "") if source else ""
            try:
                values.append(self.resolve_field(display_name, mapped_value, row, source))
            except Exception as e:
                logger.error(
                    "Failed to derive '%s' for order %s: %s",
                    display_name,
                    order_key or "?",
                    e,
                    exc_info=True,
                )
                self.errors.append(FieldError(order_key, display_name, str(e)))
                values.append("")

        return values

    # ---------- Field handlers ----------

    def _order_id(self, value: str, row: Row, source: Optional[str]) -> str:
        if value.strip():
            return value
        return first_value(row, INCREMENT_ID_FIELDS) or first_value(row, ENTITY_ID_FIELDS)

    def _order_date(self, value: str, row: Row, source: Optional[str]) -> str:
        if not self.date_format:
            return value
        return format_date(value, self.date_format)

    def _customer_name(self, value: str, row: Row, source: Optional[str]) -> str:
        if value.strip() and source not in PARTIAL_NAME_FIELDS:
            return value
        return self.construct_customer_name(row)

    def _email(self, value: str, row: Row, source: Optional[str]) -> str:
        return sanitize_email(value)

    def _phone(self, value: str, row: Row, source: Optional[str]) -> str:
        return clean_phone(value or first_value(row, PHONE_FIELDS))

    def _alternative_phone(self, value: str, row: Row, source: Optional[str]) -> str:
        return clean_phone(value or first_value(row, (ALTERNATIVE_PHONE_FIELD,)))

    def _comments(self, value: str, row: Row, source: Optional[str]) -> str:
        return flatten_comment(value or first_value(row, (COMMENTS_FIELD,)))

    def _item_details(self, value: str, row: Row, source: Optional[str]) -> str:
        if value.strip():
            return value
        return construct_item_details(row)

    # ---------- Derivations ----------

    def construct_customer_name(self, row: Row) -> str:
        """
        Build a customer name from the raw row.

        Priority: direct full-name columns, then first + last name from the
        configured address sources, then the guest placeholder. Values that
        a spreadsheet would treat as formulas are never used.
        """
        for name in DIRECT_NAME_FIELDS:
            candidate = first_value(row, (name,))
            if candidate and not looks_like_formula(candidate) and candidate != GUEST_CUSTOMER:
                return candidate

        first_fields = [NAME_SOURCE_FIELDS[s][0] for s in self.name_sources]
        last_fields = [NAME_SOURCE_FIELDS[s][1] for s in self.name_sources]

        full_name = f"{first_value(row, first_fields)} {first_value(row, last_fields)}".strip()
        if full_name and not looks_like_formula(full_name):
            return full_name

        return GUEST_CUSTOMER


def construct_item_details(row: Row) -> str:
    """Format "<name> (SKU: <sku>, Qty: <qty>)" from product columns."""
    product_name = first_value(row, PRODUCT_NAME_FIELDS)
    sku = first_value(row, SKU_FIELDS)
    qty = first_value(row, QTY_FIELDS)

    if not product_name and not sku:
        return ""

    return "{} (SKU: {}, Qty: {})".format(
        product_name or "Unknown Product",
        sku or "N/A",
        qty or "1",
    )
