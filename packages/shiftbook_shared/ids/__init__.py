"""Shared ULID primitives for binary identifiers."""

from packages.shiftbook_shared.ids.sqlalchemy import (
    ulid_column,
    ulid_primary_key_column,
)
from packages.shiftbook_shared.ids.ulid import (
    ULID_BYTES_LENGTH,
    ULID_STR_LENGTH,
    generate_ulid_bytes,
    generate_ulid_str,
    normalize_ulid_str,
    ulid_bytes_to_str,
    ulid_str_to_bytes,
)

__all__ = [
    "ULID_BYTES_LENGTH",
    "ULID_STR_LENGTH",
    "generate_ulid_bytes",
    "generate_ulid_str",
    "normalize_ulid_str",
    "ulid_bytes_to_str",
    "ulid_column",
    "ulid_primary_key_column",
    "ulid_str_to_bytes",
]
