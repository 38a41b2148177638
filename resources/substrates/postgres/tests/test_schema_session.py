"""Tests for schema-pinned sessions and schema provisioning."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from resources.substrates.postgres.bootstrap import provision_service_schemas
from resources.substrates.postgres.schema_session import (
    ServiceSchemaSessionProvider,
    create_session_factory,
)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE items (name TEXT PRIMARY KEY)"))
    yield engine
    engine.dispose()


def test_session_commits_on_success_and_rolls_back_on_error(engine) -> None:
    sessions = ServiceSchemaSessionProvider(
        session_factory=create_session_factory(engine), schema=None
    )

    with sessions.session() as session:
        session.execute(text("INSERT INTO items (name) VALUES ('kept')"))
    with pytest.raises(RuntimeError):
        with sessions.session() as session:
            session.execute(text("INSERT INTO items (name) VALUES ('dropped')"))
            raise RuntimeError("abort")

    with engine.connect() as connection:
        names = connection.execute(text("SELECT name FROM items")).scalars().all()
    assert names == ["kept"]


@pytest.mark.parametrize("schema", ["", "bad-name", "x; DROP TABLE items"])
def test_provider_rejects_malformed_schema_names(engine, schema: str) -> None:
    with pytest.raises(ValueError):
        ServiceSchemaSessionProvider(
            session_factory=create_session_factory(engine), schema=schema
        )


def test_provision_service_schemas_is_a_no_op_without_schema_support(engine) -> None:
    assert provision_service_schemas(engine=engine, schemas=("service_x",)) == ()


class _RecordingSession:
    """Session double that records statements and transaction outcome."""

    def __init__(self, dialect: str) -> None:
        self.dialect = dialect
        self.statements: list[str] = []
        self.events: list[str] = []

    def get_bind(self):
        return SimpleNamespace(dialect=SimpleNamespace(name=self.dialect))

    def execute(self, statement, params=None) -> None:
        del params
        self.statements.append(str(statement))

    def commit(self) -> None:
        self.events.append("commit")

    def rollback(self) -> None:
        self.events.append("rollback")

    def close(self) -> None:
        self.events.append("close")


def test_snapshot_session_sets_isolation_before_search_path_on_postgres() -> None:
    recorded = _RecordingSession("postgresql")
    sessions = ServiceSchemaSessionProvider(
        session_factory=lambda: recorded, schema="log_distribution"
    )

    with sessions.session(snapshot=True) as session:
        session.execute(text("SELECT 1"))

    assert recorded.statements == [
        "SET TRANSACTION ISOLATION LEVEL REPEATABLE READ READ ONLY",
        "SET LOCAL search_path TO log_distribution, public",
        "SELECT 1",
    ]
    assert recorded.events == ["commit", "close"]


def test_plain_session_leaves_isolation_level_alone() -> None:
    recorded = _RecordingSession("postgresql")
    sessions = ServiceSchemaSessionProvider(
        session_factory=lambda: recorded, schema="log_distribution"
    )

    with pytest.raises(RuntimeError):
        with sessions.session():
            raise RuntimeError("abort")

    assert recorded.statements == ["SET LOCAL search_path TO log_distribution, public"]
    assert recorded.events == ["rollback", "close"]


def test_snapshot_flag_is_ignored_off_postgres() -> None:
    recorded = _RecordingSession("sqlite")
    sessions = ServiceSchemaSessionProvider(session_factory=lambda: recorded, schema=None)

    with sessions.session(snapshot=True):
        pass

    assert recorded.statements == []
