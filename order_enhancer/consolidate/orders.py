"""
Order grouping and consolidation.

Raw export rows are grouped by an inferred order identifier and the rows
of one group are folded into a single logical order:

- Scalar fields: first non-empty value wins
- List-like fields (item details, item prices): union of tokens,
  de-duplicated, first-seen order kept

Groups are emitted in first-seen order so exports diff reproducibly.
"""
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from order_enhancer.mapping.column_mapper import Row


logger = logging.getLogger(__name__)

# Candidate grouping keys, highest priority first
IDENTIFIER_FIELDS = ("entity_id", "increment_id", "order_id", "Order ID", "Order Date")

ITEM_DETAIL_FIELDS: FrozenSet[str] = frozenset({"Item Details", "item_details"})
ITEM_PRICE_FIELDS: FrozenSet[str] = frozenset({"Item Price", "item_prices"})
LIST_FIELDS: FrozenSet[str] = ITEM_DETAIL_FIELDS | ITEM_PRICE_FIELDS

# Item details contain commas themselves ("Name (SKU: X, Qty: 1)"), so they
# are only split and joined on pipes.
ITEM_DETAIL_SPLIT = re.compile(r"\|")
ITEM_DETAIL_SEPARATOR = " | "
LIST_SPLIT = re.compile(r"[,|]")
LIST_SEPARATOR = ", "


def is_blank(value: Optional[str]) -> bool:
    return value is None or str(value).strip() == ""


def order_identifier(row: Row, fields: Sequence[str] = IDENTIFIER_FIELDS) -> str:
    """
    Infer the grouping key of a raw row.

    Resolution order:
    1) First non-empty candidate identifier field
    2) First non-empty value anywhere in the row
    3) A synthesized unique key, so the row forms its own group
    """
    for name in fields:
        value = row.get(name)
        if not is_blank(value):
            return str(value).strip()

    for value in row.values():
        if not is_blank(value):
            return str(value).strip()

    return f"order_{uuid.uuid4().hex[:13]}"


def split_tokens(value: Optional[str], pattern: re.Pattern = LIST_SPLIT) -> List[str]:
    """Split a delimited value into trimmed, non-empty tokens."""
    if is_blank(value):
        return []
    return [token.strip() for token in pattern.split(str(value)) if token.strip()]


def merge_list_values(existing: Optional[str], new: Optional[str], field_name: str = "") -> str:
    """
    Union two delimited values, keeping first-seen order.

    Item detail fields split/join on pipes; every other list field splits
    on commas or pipes and joins with ", ". A blank side contributes no
    tokens; the other side is still normalized.
    """
    if field_name in ITEM_DETAIL_FIELDS:
        pattern, separator = ITEM_DETAIL_SPLIT, ITEM_DETAIL_SEPARATOR
    else:
        pattern, separator = LIST_SPLIT, LIST_SEPARATOR

    merged: List[str] = []
    for token in split_tokens(existing, pattern) + split_tokens(new, pattern):
        if token not in merged:
            merged.append(token)

    return separator.join(merged)


def merge_rows(existing: Row, new: Row, list_fields: Iterable[str] = LIST_FIELDS) -> Row:
    """
    Fold a new fragment into an accumulated order row.

    Returns a new Row; neither input is modified. Columns only present in
    the new row are appended in its order.
    """
    list_fields = frozenset(list_fields)
    merged: Row = dict(existing)

    for key, value in new.items():
        current = merged.get(key)
        if key in list_fields:
            merged[key] = merge_list_values(current, value, key)
        elif is_blank(current):
            merged[key] = value if value is not None else ""

    return merged


@dataclass
class LogicalOrder:
    """One consolidated order and how many raw rows it was built from."""

    key: str
    row: Row
    fragments: int = 1


@dataclass
class OrderConsolidator:
    """
    Groups raw rows into logical orders.

    When disabled every row becomes its own logical order (pass-through).
    The accumulator lives only for the duration of one group() call.
    """

    enabled: bool = True
    identifier_fields: Sequence[str] = IDENTIFIER_FIELDS
    list_fields: FrozenSet[str] = field(default_factory=lambda: LIST_FIELDS)

    def group(self, rows: Iterable[Row]) -> List[LogicalOrder]:
        """
        Group rows by order identifier and merge each group.

        Args:
            rows: Raw rows in input order

        Returns:
            Logical orders in first-seen identifier order
        """
        if not self.enabled:
            return [
                LogicalOrder(key=order_identifier(row, self.identifier_fields), row=dict(row))
                for row in rows
            ]

        groups: Dict[str, LogicalOrder] = {}
        total = 0

        for row in rows:
            total += 1
            key = order_identifier(row, self.identifier_fields)
            order = groups.get(key)
            if order is None:
                groups[key] = LogicalOrder(key=key, row=dict(row))
                continue
            order.row = merge_rows(order.row, row, self.list_fields)
            order.fragments += 1

        logger.info("Consolidated %s orders from %s rows", len(groups), total)
        return list(groups.values())


def group_and_merge(
    rows: Iterable[Row],
    identifier_fields: Sequence[str] = IDENTIFIER_FIELDS,
    list_fields: Iterable[str] = LIST_FIELDS,
) -> List[Row]:
    """Group rows into logical orders and return the merged rows."""
    consolidator = OrderConsolidator(
        identifier_fields=identifier_fields, list_fields=frozenset(list_fields)
    )
    return [order.row for order in consolidator.group(rows)]
