"""
Mapping module for resolving input headers to canonical columns.
"""
from order_enhancer.mapping.column_mapper import (
    ColumnMapping,
    Row,
    build_row,
    find_column,
    map_header,
)

__all__ = ["ColumnMapping", "Row", "build_row", "find_column", "map_header"]
