"""Shared Postgres substrate primitives for shiftbook services."""

from resources.substrates.postgres.bootstrap import provision_service_schemas
from resources.substrates.postgres.config import (
    RESOURCE_COMPONENT_ID,
    PostgresSettings,
    resolve_postgres_settings,
)
from resources.substrates.postgres.engine import create_postgres_engine
from resources.substrates.postgres.errors import (
    is_connection_unusable,
    is_postgres_error,
    normalize_postgres_error,
)
from resources.substrates.postgres.health import ping
from resources.substrates.postgres.schema_session import (
    ServiceSchemaSessionProvider,
    create_session_factory,
)

__all__ = [
    "RESOURCE_COMPONENT_ID",
    "PostgresSettings",
    "ServiceSchemaSessionProvider",
    "create_postgres_engine",
    "create_session_factory",
    "is_connection_unusable",
    "is_postgres_error",
    "normalize_postgres_error",
    "provision_service_schemas",
    "ping",
    "resolve_postgres_settings",
]
