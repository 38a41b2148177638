"""SQLAlchemy column helpers for ULID-backed identifiers."""

from __future__ import annotations

from typing import Any

from sqlalchemy import CheckConstraint, Column, LargeBinary

from .ulid import ULID_BYTES_LENGTH


def ulid_primary_key_column(
    name: str = "id",
    *,
    length_constraint_name: str | None = None,
) -> Column[bytes]:
    """Return a 16-byte binary primary-key column for ULID ids."""
    return Column(
        name,
        LargeBinary(ULID_BYTES_LENGTH),
        ulid_length_check(name, length_constraint_name or f"ck_{name}_ulid_16"),
        primary_key=True,
        nullable=False,
    )


def ulid_column(
    name: str,
    *args: Any,
    length_constraint_name: str | None = None,
    **kwargs: Any,
) -> Column[bytes]:
    """Return a 16-byte binary ULID column, e.g. for foreign-key references."""
    return Column(
        name,
        LargeBinary(ULID_BYTES_LENGTH),
        *args,
        ulid_length_check(name, length_constraint_name or f"ck_{name}_ulid_16"),
        **kwargs,
    )


def ulid_length_check(column_name: str, constraint_name: str) -> CheckConstraint:
    """Return a CHECK constraint enforcing fixed 16-byte ULID storage."""
    return CheckConstraint(
        f"length({column_name}) = {ULID_BYTES_LENGTH}",
        name=constraint_name,
    )
