"""Domain contracts for Log Distribution Service payloads."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class WorkcenterScope(str, Enum):
    """Which relation between an entry and a work center a filter matches."""

    ORIGIN = "origin"
    DESTINATION = "destination"
    ANY = "any"


class DistributionKey(BaseModel):
    """Composite identity of one acknowledgment row."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    log_id: str
    workcenter: str

    def __str__(self) -> str:
        return f"{self.log_id}-{self.workcenter}"


class LogEntry(BaseModel):
    """Immutable record of one shift event."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    log_id: str
    plant: str
    shop_order: str
    step_id: str
    split: str
    workcenter: str
    author_id: str
    category_id: str
    subject: str
    message: str
    created_at: datetime


class Distribution(BaseModel):
    """One work center's read state for one log entry."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: DistributionKey
    read_at: datetime | None = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


class RecordedEntry(BaseModel):
    """Result of authoring one entry, handed on to notification collaborators."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    entry: LogEntry
    distribution_enabled: bool
    distributed_to: list[str] = Field(default_factory=list)


class BatchOutcome(BaseModel):
    """Aggregate result of one batch acknowledgment call.

    ``errors`` keeps input order and every message starts with the 1-based
    position of the failing item. ``timestamp`` is the single read instant
    applied to every succeeding item of a mark-read batch.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: bool
    total_count: int
    success_count: int
    failed_count: int
    errors: list[str] = Field(default_factory=list)
    timestamp: datetime | None = None


class LogQuery(BaseModel):
    """Conjunctive filter over log entries."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    plant: str
    workcenter: str | None = None
    category_id: str | None = None
    since: datetime | None = None
    scope: WorkcenterScope = WorkcenterScope.ORIGIN


class PageSnapshot(BaseModel):
    """Everything one page read needs, taken from a single transaction.

    ``read_count`` and ``read_states`` are zero/empty unless the query names a
    work center. ``read_states`` covers the returned ``logs`` only and holds
    ``None`` where no row exists for that work center.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    total: int
    logs: list[LogEntry]
    last_change_timestamp: datetime | None = None
    read_count: int = 0
    read_states: dict[str, datetime | None] = Field(default_factory=dict)


class LogPage(BaseModel):
    """One page of entries, newest first, with pagination metadata."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    logs: list[LogEntry]
    total: int
    page: int
    page_size: int
    total_pages: int
    last_change_timestamp: datetime | None = None
    read_count: int = 0
    unread_count: int = 0
    read_states: dict[str, datetime | None] = Field(default_factory=dict)


class HealthStatus(BaseModel):
    """Service and storage readiness."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    storage_ready: bool
    detail: str
