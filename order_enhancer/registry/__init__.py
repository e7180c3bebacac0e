"""
Registry module for loading canonical export schemas.
"""
from order_enhancer.registry.loader import (
    CanonicalSchema,
    SchemaError,
    SchemaLoader,
    SchemaRegistry,
)

__all__ = ["CanonicalSchema", "SchemaError", "SchemaLoader", "SchemaRegistry"]
