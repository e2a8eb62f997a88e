"""Utility modules for the idempotency replay engine."""

from .headers import (
    add_idempotency_headers,
    get_header_value,
    group_header_items,
    has_header,
    set_header,
)

__all__ = [
    "add_idempotency_headers",
    "get_header_value",
    "group_header_items",
    "has_header",
    "set_header",
]
