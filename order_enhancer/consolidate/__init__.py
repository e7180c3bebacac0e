"""
Consolidation module for folding multi-row order fragments.
"""
from order_enhancer.consolidate.orders import (
    IDENTIFIER_FIELDS,
    LIST_FIELDS,
    LogicalOrder,
    OrderConsolidator,
    group_and_merge,
    merge_list_values,
    merge_rows,
    order_identifier,
)

__all__ = [
    "IDENTIFIER_FIELDS",
    "LIST_FIELDS",
    "LogicalOrder",
    "OrderConsolidator",
    "group_and_merge",
    "merge_list_values",
    "merge_rows",
    "order_identifier",
]
