"""Real-Postgres integration tests for Log Distribution Service."""

from __future__ import annotations

import pytest
from sqlalchemy import Engine, text

from packages.shiftbook_shared.config import ShiftbookSettings
from packages.shiftbook_shared.envelope import EnvelopeKind, EnvelopeMeta, new_meta
from packages.shiftbook_shared.errors import codes
from services.state.log_distribution.categories import StaticCategoryDirectory
from services.state.log_distribution.config import CategoryRouteSettings
from services.state.log_distribution.domain import WorkcenterScope
from services.state.log_distribution.service import (
    LogDistributionService,
    build_log_distribution_service,
)
from tests.integration.helpers import real_provider_tests_enabled

pytestmark = pytest.mark.skipif(
    not real_provider_tests_enabled(),
    reason="set SHIFTBOOK_RUN_INTEGRATION_REAL=1 to run real Postgres integration tests",
)


def _meta() -> EnvelopeMeta:
    return new_meta(kind=EnvelopeKind.COMMAND, source="test", principal="operator")


@pytest.fixture
def service(clean_log_tables: ShiftbookSettings):
    service = build_log_distribution_service(
        settings=clean_log_tables,
        categories=StaticCategoryDirectory(
            [
                CategoryRouteSettings(
                    category_id="QUALITY", plant="1000", workcenters=("A", "B", "C")
                )
            ]
        ),
    )
    yield service
    service.close()


def _record(service: LogDistributionService) -> str:
    result = service.record_entry(
        meta=_meta(),
        plant="1000",
        shop_order="SO-1",
        step_id="0010",
        workcenter="ORIGIN1",
        author_id="operator",
        category_id="QUALITY",
        message="Spindle replaced",
    )
    assert result.ok, result.errors
    return result.payload.value.entry.log_id


def test_migrations_create_service_tables(
    postgres_engine: Engine, migrated_settings: ShiftbookSettings
) -> None:
    with postgres_engine.connect() as conn:
        names = set(
            conn.execute(
                text(
                    "SELECT table_name FROM information_schema.tables "
                    "WHERE table_schema = 'service_log_distribution'"
                )
            ).scalars()
        )

    assert {"log_entries", "distributions"} <= names


def test_fan_out_acknowledge_and_poll(service: LogDistributionService) -> None:
    log_id = _record(service)

    first = service.mark_read(meta=_meta(), log_id=log_id, workcenter="A")
    assert first.ok
    second = service.mark_read(meta=_meta(), log_id=log_id, workcenter="A")
    assert second.ok
    assert second.payload.value > first.payload.value

    page = service.get_logs_paginated(
        meta=_meta(),
        plant="1000",
        workcenter="A",
        scope=WorkcenterScope.DESTINATION,
        page_size=10,
    )
    assert page.ok
    assert page.payload.value.total == 1
    assert page.payload.value.read_count == 1
    assert page.payload.value.unread_count == 0

    rows = service.list_distributions(meta=_meta(), log_id=log_id)
    states = {row.key.workcenter: row.is_read for row in rows.payload.value}
    assert states == {"A": True, "B": False, "C": False}


def test_duplicate_distribution_is_rejected_atomically(
    service: LogDistributionService,
) -> None:
    log_id = _record(service)

    result = service.create_distributions(
        meta=_meta(), log_id=log_id, workcenters=["D", "A"]
    )

    assert result.ok is False
    assert result.errors[0].code == codes.ALREADY_EXISTS
    rows = service.list_distributions(meta=_meta(), log_id=log_id)
    assert [row.key.workcenter for row in rows.payload.value] == ["A", "B", "C"]


def test_health_pings_storage_through_runtime(service: LogDistributionService) -> None:
    result = service.health(meta=_meta())

    assert result.ok
    assert result.payload.value.storage_ready is True
    assert result.payload.value.detail == "ok"
