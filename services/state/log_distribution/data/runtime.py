"""Log Distribution Service owned Postgres runtime wiring."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from packages.shiftbook_shared.config import ShiftbookSettings
from resources.substrates.postgres import (
    ServiceSchemaSessionProvider,
    create_postgres_engine,
    create_session_factory,
    ping,
)
from resources.substrates.postgres.config import resolve_postgres_settings
from services.state.log_distribution.component import log_distribution_schema


@dataclass(frozen=True)
class LogDistributionRuntime:
    """Concrete handle for schema-scoped database access."""

    engine: Engine
    session_factory: sessionmaker[Session]
    schema_sessions: ServiceSchemaSessionProvider
    health_timeout_seconds: float = 1.0

    @classmethod
    def from_settings(cls, settings: ShiftbookSettings) -> "LogDistributionRuntime":
        """Build the DB runtime from typed application settings."""
        postgres_config = resolve_postgres_settings(settings)
        engine = create_postgres_engine(postgres_config)
        session_factory = create_session_factory(engine)
        return cls(
            engine=engine,
            session_factory=session_factory,
            schema_sessions=ServiceSchemaSessionProvider(
                session_factory=session_factory,
                schema=log_distribution_schema() if postgres_config.is_postgres else None,
            ),
            health_timeout_seconds=postgres_config.health_timeout_seconds,
        )

    @classmethod
    def from_engine(
        cls, engine: Engine, *, schema: str | None = None
    ) -> "LogDistributionRuntime":
        """Wrap an existing engine, e.g. an in-memory SQLite engine in tests."""
        session_factory = create_session_factory(engine)
        return cls(
            engine=engine,
            session_factory=session_factory,
            schema_sessions=ServiceSchemaSessionProvider(
                session_factory=session_factory,
                schema=schema,
            ),
        )

    def is_healthy(self) -> bool:
        """Return ``True`` when the backing database is reachable."""
        return ping(self.engine, timeout_seconds=self.health_timeout_seconds)

    def dispose(self) -> None:
        self.engine.dispose()
