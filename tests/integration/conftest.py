"""Shared fixtures for integration-oriented test modules."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from sqlalchemy import Engine, text

from packages.shiftbook_core.migrations import run_startup_migrations
from packages.shiftbook_shared.config import ShiftbookSettings, load_settings
from resources.substrates.postgres import create_postgres_engine
from resources.substrates.postgres.config import resolve_postgres_settings
from services.state.log_distribution.component import log_distribution_schema
from tests.integration.helpers import real_provider_tests_enabled

_REPO_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture(scope="session")
def env_settings() -> ShiftbookSettings:
    """Return loaded settings snapshot for fixture consumers."""
    return load_settings()


@pytest.fixture(scope="session")
def postgres_engine(env_settings: ShiftbookSettings) -> Iterator[Engine]:
    """Return a Postgres engine for real-provider tests or skip if unavailable."""
    if not real_provider_tests_enabled():
        pytest.skip("real-provider integration tests disabled")
    postgres_settings = resolve_postgres_settings(env_settings)
    if not postgres_settings.is_postgres:
        pytest.skip("configured database url is not postgres")

    engine = create_postgres_engine(postgres_settings)
    try:
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
    except Exception as exc:  # noqa: BLE001
        engine.dispose()
        pytest.skip(f"postgres unavailable for integration tests: {exc}")
    yield engine
    engine.dispose()


@pytest.fixture(scope="session")
def migrated_settings(
    env_settings: ShiftbookSettings, postgres_engine: Engine
) -> ShiftbookSettings:
    """Apply startup migrations once against the configured database."""
    run_startup_migrations(
        settings=env_settings,
        schemas=(log_distribution_schema(),),
        repo_root=_REPO_ROOT,
    )
    return env_settings


@pytest.fixture
def clean_log_tables(postgres_engine: Engine, migrated_settings: ShiftbookSettings):
    """Empty service tables before each test that touches them."""
    schema = log_distribution_schema()
    with postgres_engine.begin() as conn:
        conn.execute(text(f"DELETE FROM {schema}.distributions"))
        conn.execute(text(f"DELETE FROM {schema}.log_entries"))
    return migrated_settings
