"""Service-schema scoped session helpers."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, text
from sqlalchemy.orm import Session, sessionmaker


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory whose objects survive commit."""
    return sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
    )


class ServiceSchemaSessionProvider:
    """Provide transactional sessions pinned to one service-owned schema.

    ``schema=None`` skips the ``search_path`` pin, which lets the same
    repositories run against engines without schema support such as SQLite.
    Each ``session()`` block is one transaction: it commits when the block
    exits normally and rolls back when it raises.
    """

    def __init__(
        self, *, session_factory: sessionmaker[Session], schema: str | None
    ) -> None:
        if schema is not None:
            validate_schema_name(schema)
        self._session_factory = session_factory
        self._schema = schema

    @property
    def schema(self) -> str | None:
        return self._schema

    @contextmanager
    def session(self, *, snapshot: bool = False) -> Iterator[Session]:
        """Yield a transaction-scoped session with local search_path set.

        ``snapshot=True`` runs the transaction read-only at REPEATABLE READ on
        Postgres, so every statement in it sees the same committed data.
        SQLite already reads one snapshot per transaction.
        """
        db = self._session_factory()
        try:
            if snapshot and db.get_bind().dialect.name == "postgresql":
                db.execute(
                    text("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ READ ONLY")
                )
            if self._schema is not None:
                db.execute(text(f"SET LOCAL search_path TO {self._schema}, public"))
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def validate_schema_name(schema: str) -> None:
    """Validate schema names to prevent malformed search_path statements."""
    if not schema:
        raise ValueError("postgres schema is required")
    if not schema.replace("_", "").isalnum():
        raise ValueError("postgres schema must be alphanumeric/underscore")
