"""Pre-migration bootstrap for service-owned Postgres schemas."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import Engine, text

from resources.substrates.postgres.schema_session import validate_schema_name


def provision_service_schemas(*, engine: Engine, schemas: Iterable[str]) -> tuple[str, ...]:
    """Create each schema when missing and return the provisioned names.

    Engines without schema support (SQLite) are left untouched.
    """
    names = tuple(schemas)
    for name in names:
        validate_schema_name(name)
    if engine.dialect.name != "postgresql":
        return ()
    with engine.begin() as connection:
        for name in names:
            connection.execute(text(f"CREATE SCHEMA IF NOT EXISTS {name}"))
    return names
