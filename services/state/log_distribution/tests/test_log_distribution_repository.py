"""Repository tests for SQL log distribution storage on in-memory SQLite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from packages.shiftbook_shared.ids import generate_ulid_str
from services.state.log_distribution.data import (
    LogDistributionRuntime,
    SqlLogDistributionRepository,
    metadata,
)
from services.state.log_distribution.data.repository import _row_dt
from services.state.log_distribution.domain import LogEntry, LogQuery, WorkcenterScope

_BASE = datetime(2026, 10, 18, 6, 0, 0, 123456, tzinfo=UTC)


@pytest.fixture
def repository():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    runtime = LogDistributionRuntime.from_engine(engine)
    yield SqlLogDistributionRepository(runtime.schema_sessions)
    runtime.dispose()


def _entry(
    minutes: int,
    *,
    plant: str = "1000",
    workcenter: str = "ORIGIN1",
    category_id: str = "QUALITY",
) -> LogEntry:
    created_at = _BASE + timedelta(minutes=minutes)
    return LogEntry(
        log_id=generate_ulid_str(timestamp_ms=int(created_at.timestamp() * 1000)),
        plant=plant,
        shop_order="SO-1",
        step_id="0010",
        split="",
        workcenter=workcenter,
        author_id="operator",
        category_id=category_id,
        subject="Handover",
        message="Spindle replaced",
        created_at=created_at,
    )


def test_insert_entry_round_trips_fields_and_distributions(repository) -> None:
    entry = _entry(0)

    repository.insert_entry(entry=entry, workcenters=["B", "A"])

    rows = repository.list_distributions(log_id=entry.log_id)
    assert [row.key.workcenter for row in rows] == ["A", "B"]
    assert all(row.read_at is None for row in rows)
    assert repository.latest_entry(plant="1000", workcenter="ORIGIN1") == entry


def test_insert_entry_is_atomic_when_a_distribution_collides(repository) -> None:
    entry = _entry(0)

    with pytest.raises(IntegrityError):
        repository.insert_entry(entry=entry, workcenters=["A", "A"])

    assert repository.list_distributions(log_id=entry.log_id) is None


def test_insert_distributions_requires_existing_log(repository) -> None:
    assert repository.insert_distributions(log_id=generate_ulid_str(), workcenters=["A"]) is None
    assert repository.list_distributions(log_id=generate_ulid_str()) is None


def test_insert_distributions_rolls_back_every_row_on_conflict(repository) -> None:
    entry = _entry(0)
    repository.insert_entry(entry=entry, workcenters=["A"])

    with pytest.raises(IntegrityError):
        repository.insert_distributions(log_id=entry.log_id, workcenters=["B", "A"])

    rows = repository.list_distributions(log_id=entry.log_id)
    assert [row.key.workcenter for row in rows] == ["A"]


def test_insert_distributions_with_no_workcenters_creates_nothing(repository) -> None:
    entry = _entry(0)
    repository.insert_entry(entry=entry, workcenters=[])

    assert repository.insert_distributions(log_id=entry.log_id, workcenters=[]) == []
    assert repository.list_distributions(log_id=entry.log_id) == []


def test_set_read_at_updates_only_the_keyed_row(repository) -> None:
    entry = _entry(0)
    repository.insert_entry(entry=entry, workcenters=["A", "B"])
    read_at = _BASE + timedelta(hours=1)

    assert repository.set_read_at(log_id=entry.log_id, workcenter="A", read_at=read_at)
    assert not repository.set_read_at(
        log_id=entry.log_id, workcenter="Z", read_at=read_at
    )

    states = {
        row.key.workcenter: row.read_at
        for row in repository.list_distributions(log_id=entry.log_id)
    }
    assert states == {"A": read_at, "B": None}

    assert repository.set_read_at(log_id=entry.log_id, workcenter="A", read_at=None)
    assert repository.list_distributions(log_id=entry.log_id)[0].read_at is None


def _ids(snapshot) -> list[str]:
    return [item.log_id for item in snapshot.logs]


def test_read_page_orders_newest_first_with_exclusive_since(repository) -> None:
    entries = [_entry(minutes) for minutes in range(4)]
    for entry in entries:
        repository.insert_entry(entry=entry, workcenters=[])

    query = LogQuery(plant="1000", since=entries[1].created_at)
    snapshot = repository.read_page(query=query, offset=0, limit=10)

    assert _ids(snapshot) == [entries[3].log_id, entries[2].log_id]
    assert snapshot.total == 2
    assert snapshot.last_change_timestamp == entries[3].created_at
    assert repository.latest_created_at(query=query) == entries[3].created_at

    empty = repository.read_page(
        query=LogQuery(plant="1000", since=entries[3].created_at), offset=0, limit=10
    )
    assert empty.total == 0
    assert empty.logs == []
    assert empty.last_change_timestamp is None


def test_read_page_applies_offset_and_limit_but_counts_everything(repository) -> None:
    entries = [_entry(minutes) for minutes in range(5)]
    for entry in entries:
        repository.insert_entry(entry=entry, workcenters=[])

    snapshot = repository.read_page(query=LogQuery(plant="1000"), offset=2, limit=2)

    assert _ids(snapshot) == [entries[2].log_id, entries[1].log_id]
    assert snapshot.total == 5
    assert snapshot.last_change_timestamp == entries[4].created_at


def test_workcenter_scopes_filter_by_origin_and_destination(repository) -> None:
    authored = _entry(0, workcenter="A")
    received = _entry(1, workcenter="OTHER")
    unrelated = _entry(2, workcenter="OTHER", category_id="MAINT")
    repository.insert_entry(entry=authored, workcenters=[])
    repository.insert_entry(entry=received, workcenters=["A", "B"])
    repository.insert_entry(entry=unrelated, workcenters=["B"])

    def ids(scope: WorkcenterScope) -> set[str]:
        query = LogQuery(plant="1000", workcenter="A", scope=scope)
        return set(_ids(repository.read_page(query=query, offset=0, limit=10)))

    def total(query: LogQuery) -> int:
        return repository.read_page(query=query, offset=0, limit=10).total

    assert ids(WorkcenterScope.ORIGIN) == {authored.log_id}
    assert ids(WorkcenterScope.DESTINATION) == {received.log_id}
    assert ids(WorkcenterScope.ANY) == {authored.log_id, received.log_id}
    assert total(LogQuery(plant="1000", category_id="MAINT")) == 1
    assert total(LogQuery(plant="2000")) == 0


def test_read_page_fills_read_counters_and_states_for_workcenter(repository) -> None:
    first = _entry(0)
    second = _entry(1)
    authored = _entry(2, workcenter="A")
    repository.insert_entry(entry=first, workcenters=["A"])
    repository.insert_entry(entry=second, workcenters=["A"])
    repository.insert_entry(entry=authored, workcenters=["B"])
    read_at = _BASE + timedelta(hours=2)
    repository.set_read_at(log_id=first.log_id, workcenter="A", read_at=read_at)
    query = LogQuery(plant="1000", workcenter="A", scope=WorkcenterScope.ANY)

    snapshot = repository.read_page(query=query, offset=0, limit=10)

    assert snapshot.total == 3
    assert snapshot.read_count == 1
    assert snapshot.read_states == {
        authored.log_id: None,
        second.log_id: None,
        first.log_id: read_at,
    }


def test_read_page_without_workcenter_skips_read_counters(repository) -> None:
    entry = _entry(0)
    repository.insert_entry(entry=entry, workcenters=["A"])
    repository.set_read_at(
        log_id=entry.log_id, workcenter="A", read_at=_BASE + timedelta(hours=1)
    )

    snapshot = repository.read_page(query=LogQuery(plant="1000"), offset=0, limit=10)

    assert snapshot.read_count == 0
    assert snapshot.read_states == {}


def test_read_page_runs_every_query_in_one_snapshot_session(repository) -> None:
    entry = _entry(0)
    repository.insert_entry(entry=entry, workcenters=["A"])
    sessions = repository._sessions
    opened: list[bool] = []
    original = sessions.session

    def counting_session(*, snapshot: bool = False):
        opened.append(snapshot)
        return original(snapshot=snapshot)

    sessions.session = counting_session

    snapshot = repository.read_page(
        query=LogQuery(plant="1000", workcenter="A", scope=WorkcenterScope.ANY),
        offset=0,
        limit=10,
    )

    assert opened == [True]
    assert snapshot.total == 1
    assert snapshot.read_states == {entry.log_id: None}


def test_latest_created_at_is_none_without_matches(repository) -> None:
    assert repository.latest_created_at(query=LogQuery(plant="1000")) is None
    assert repository.latest_entry(plant="1000", workcenter="A") is None


def test_row_dt_rejects_missing_or_non_datetime_values() -> None:
    """Datetime extraction must fail fast on malformed row values."""
    with pytest.raises(ValueError, match="expected datetime column for created_at"):
        _row_dt({}, "created_at")

    with pytest.raises(ValueError, match="expected datetime column for created_at"):
        _row_dt({"created_at": "2026-02-23T00:00:00Z"}, "created_at")


def test_row_dt_normalizes_naive_and_aware_datetimes_to_utc() -> None:
    naive = datetime(2026, 2, 23, 12, 0, 0)
    aware = datetime(2026, 2, 23, 12, 0, 0, tzinfo=UTC)

    assert _row_dt({"created_at": naive}, "created_at").tzinfo == UTC
    assert _row_dt({"created_at": aware}, "created_at") == aware
