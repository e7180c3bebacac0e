"""
Transform module for canonical field values.
"""
from order_enhancer.transform.normalizers import (
    NormalizeError,
    clean_field_value,
    clean_phone,
    flatten_comment,
    format_date,
    sanitize_email,
    sanitize_value,
)
from order_enhancer.transform.resolvers import (
    GUEST_CUSTOMER,
    FieldError,
    FieldValueResolver,
)

__all__ = [
    "GUEST_CUSTOMER",
    "FieldError",
    "FieldValueResolver",
    "NormalizeError",
    "clean_field_value",
    "clean_phone",
    "flatten_comment",
    "format_date",
    "sanitize_email",
    "sanitize_value",
]
