"""SQL repository for log entries and their work-center distributions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Mapping, Sequence

from sqlalchemy import (
    ColumnElement,
    and_,
    exists,
    func,
    insert,
    or_,
    select,
    update,
)
from sqlalchemy.orm import Session

from packages.shiftbook_shared.ids import ulid_bytes_to_str, ulid_str_to_bytes
from resources.substrates.postgres.schema_session import ServiceSchemaSessionProvider
from services.state.log_distribution.domain import (
    Distribution,
    DistributionKey,
    LogEntry,
    LogQuery,
    PageSnapshot,
    WorkcenterScope,
)
from services.state.log_distribution.interfaces import LogDistributionRepository

from .schema import distributions, log_entries


class SqlLogDistributionRepository(LogDistributionRepository):
    """SQL repository over service-owned schema tables.

    Only dialect-neutral SQLAlchemy Core constructs are used, so the same
    repository runs on Postgres and on SQLite.
    """

    def __init__(self, sessions: ServiceSchemaSessionProvider) -> None:
        self._sessions = sessions

    def insert_entry(self, *, entry: LogEntry, workcenters: Sequence[str]) -> None:
        log_id = ulid_str_to_bytes(entry.log_id)
        with self._sessions.session() as session:
            session.execute(
                insert(log_entries).values(
                    id=log_id,
                    plant=entry.plant,
                    shop_order=entry.shop_order,
                    step_id=entry.step_id,
                    split=entry.split,
                    workcenter=entry.workcenter,
                    author_id=entry.author_id,
                    category_id=entry.category_id,
                    subject=entry.subject,
                    message=entry.message,
                    created_at=_to_utc(entry.created_at),
                )
            )
            if workcenters:
                session.execute(
                    insert(distributions),
                    [
                        {"log_id": log_id, "workcenter": workcenter, "read_at": None}
                        for workcenter in workcenters
                    ],
                )

    def insert_distributions(
        self, *, log_id: str, workcenters: Sequence[str]
    ) -> list[Distribution] | None:
        log_id_bytes = ulid_str_to_bytes(log_id)
        with self._sessions.session() as session:
            found = session.execute(
                select(log_entries.c.id).where(log_entries.c.id == log_id_bytes)
            ).one_or_none()
            if found is None:
                return None
            if workcenters:
                session.execute(
                    insert(distributions),
                    [
                        {
                            "log_id": log_id_bytes,
                            "workcenter": workcenter,
                            "read_at": None,
                        }
                        for workcenter in workcenters
                    ],
                )
        return [
            Distribution(key=DistributionKey(log_id=log_id, workcenter=workcenter))
            for workcenter in workcenters
        ]

    def list_distributions(self, *, log_id: str) -> list[Distribution] | None:
        log_id_bytes = ulid_str_to_bytes(log_id)
        with self._sessions.session() as session:
            found = session.execute(
                select(log_entries.c.id).where(log_entries.c.id == log_id_bytes)
            ).one_or_none()
            if found is None:
                return None
            rows = (
                session.execute(
                    select(distributions)
                    .where(distributions.c.log_id == log_id_bytes)
                    .order_by(distributions.c.workcenter)
                )
                .mappings()
                .all()
            )
            return [_to_distribution(row) for row in rows]

    def set_read_at(
        self, *, log_id: str, workcenter: str, read_at: datetime | None
    ) -> bool:
        """Update ``read_at`` with one conditional statement keyed by identity."""
        with self._sessions.session() as session:
            result = session.execute(
                update(distributions)
                .where(
                    distributions.c.log_id == ulid_str_to_bytes(log_id),
                    distributions.c.workcenter == workcenter,
                )
                .values(read_at=None if read_at is None else _to_utc(read_at))
            )
            return int(result.rowcount or 0) > 0

    def read_page(self, *, query: LogQuery, offset: int, limit: int) -> PageSnapshot:
        """Read counts, entries and read states for one page in one transaction."""
        with self._sessions.session(snapshot=True) as session:
            total = int(
                session.execute(
                    select(func.count()).select_from(log_entries).where(
                        *_filters(query)
                    )
                ).scalar_one()
            )
            rows = (
                session.execute(
                    select(log_entries)
                    .where(*_filters(query))
                    .order_by(log_entries.c.created_at.desc(), log_entries.c.id.desc())
                    .offset(offset)
                    .limit(limit)
                )
                .mappings()
                .all()
            )
            logs = [_to_entry(row) for row in rows]
            last_change = _latest_created_at(session, query) if total else None
            if query.workcenter is None:
                return PageSnapshot(
                    total=total, logs=logs, last_change_timestamp=last_change
                )
            read_count = _count_read(session, query, query.workcenter)
            stored = _read_states(
                session, [item.log_id for item in logs], query.workcenter
            )
        return PageSnapshot(
            total=total,
            logs=logs,
            last_change_timestamp=last_change,
            read_count=read_count,
            read_states={item.log_id: stored.get(item.log_id) for item in logs},
        )

    def latest_created_at(self, *, query: LogQuery) -> datetime | None:
        with self._sessions.session() as session:
            return _latest_created_at(session, query)

    def latest_entry(self, *, plant: str, workcenter: str) -> LogEntry | None:
        with self._sessions.session() as session:
            row = (
                session.execute(
                    select(log_entries)
                    .where(
                        log_entries.c.plant == plant,
                        log_entries.c.workcenter == workcenter,
                    )
                    .order_by(log_entries.c.created_at.desc(), log_entries.c.id.desc())
                    .limit(1)
                )
                .mappings()
                .one_or_none()
            )
            return None if row is None else _to_entry(row)


def _latest_created_at(session: Session, query: LogQuery) -> datetime | None:
    value = session.execute(
        select(func.max(log_entries.c.created_at)).where(*_filters(query))
    ).scalar_one_or_none()
    return None if value is None else _to_utc(value)


def _count_read(session: Session, query: LogQuery, workcenter: str) -> int:
    """Count matching entries this work center has acknowledged."""
    acknowledged = exists().where(
        distributions.c.log_id == log_entries.c.id,
        distributions.c.workcenter == workcenter,
        distributions.c.read_at.is_not(None),
    )
    stmt = (
        select(func.count())
        .select_from(log_entries)
        .where(*_filters(query), acknowledged)
    )
    return int(session.execute(stmt).scalar_one())


def _read_states(
    session: Session, log_ids: Sequence[str], workcenter: str
) -> dict[str, datetime | None]:
    if not log_ids:
        return {}
    rows = (
        session.execute(
            select(distributions.c.log_id, distributions.c.read_at).where(
                distributions.c.workcenter == workcenter,
                distributions.c.log_id.in_(
                    [ulid_str_to_bytes(item) for item in log_ids]
                ),
            )
        )
        .mappings()
        .all()
    )
    return {
        ulid_bytes_to_str(bytes(row["log_id"])): _row_optional_dt(row, "read_at")
        for row in rows
    }


def _filters(query: LogQuery) -> list[ColumnElement[bool]]:
    """Build AND-combined filter clauses for one retrieval query."""
    clauses: list[ColumnElement[bool]] = [log_entries.c.plant == query.plant]
    if query.category_id is not None:
        clauses.append(log_entries.c.category_id == query.category_id)
    if query.since is not None:
        clauses.append(log_entries.c.created_at > _to_utc(query.since))
    if query.workcenter is not None:
        clauses.append(_workcenter_clause(query.workcenter, query.scope))
    return clauses


def _workcenter_clause(workcenter: str, scope: WorkcenterScope) -> ColumnElement[bool]:
    origin = log_entries.c.workcenter == workcenter
    destination = exists().where(
        and_(
            distributions.c.log_id == log_entries.c.id,
            distributions.c.workcenter == workcenter,
        )
    )
    if scope is WorkcenterScope.ORIGIN:
        return origin
    if scope is WorkcenterScope.DESTINATION:
        return destination
    return or_(origin, destination)


def _to_entry(row: Mapping[str, Any]) -> LogEntry:
    """Map one SQL row to a strict domain log entry."""
    return LogEntry(
        log_id=ulid_bytes_to_str(bytes(row["id"])),
        plant=str(row["plant"]),
        shop_order=str(row["shop_order"]),
        step_id=str(row["step_id"]),
        split=str(row["split"] or ""),
        workcenter=str(row["workcenter"]),
        author_id=str(row["author_id"]),
        category_id=str(row["category_id"]),
        subject=str(row["subject"] or ""),
        message=str(row["message"]),
        created_at=_row_dt(row, "created_at"),
    )


def _to_distribution(row: Mapping[str, Any]) -> Distribution:
    return Distribution(
        key=DistributionKey(
            log_id=ulid_bytes_to_str(bytes(row["log_id"])),
            workcenter=str(row["workcenter"]),
        ),
        read_at=_row_optional_dt(row, "read_at"),
    )


def _row_dt(row: Mapping[str, Any], column: str) -> datetime:
    """Read and normalize one timezone-aware datetime field from SQL row."""
    value = row.get(column)
    if not isinstance(value, datetime):
        raise ValueError(f"expected datetime column for {column}")
    return _to_utc(value)


def _row_optional_dt(row: Mapping[str, Any], column: str) -> datetime | None:
    if row.get(column) is None:
        return None
    return _row_dt(row, column)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
