"""Protocols for Log Distribution Service collaborators."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from services.state.log_distribution.domain import (
    Distribution,
    LogEntry,
    LogQuery,
    PageSnapshot,
)


class LogDistributionRepository(Protocol):
    """Protocol for log entry and distribution persistence operations.

    Every method runs in its own transaction; none of them spans a batch.
    """

    def insert_entry(self, *, entry: LogEntry, workcenters: Sequence[str]) -> None:
        """Insert one entry and its unread distribution rows atomically."""

    def insert_distributions(
        self, *, log_id: str, workcenters: Sequence[str]
    ) -> list[Distribution] | None:
        """Insert unread rows for one log; return ``None`` when the log is missing."""

    def list_distributions(self, *, log_id: str) -> list[Distribution] | None:
        """Read rows for one log ordered by work center; ``None`` when missing."""

    def set_read_at(
        self, *, log_id: str, workcenter: str, read_at: datetime | None
    ) -> bool:
        """Conditionally update one row; return whether a row matched."""

    def read_page(self, *, query: LogQuery, offset: int, limit: int) -> PageSnapshot:
        """Read one window of matching entries, newest first, with its counters.

        Total, window, newest timestamp and read counters come from one
        consistent snapshot.
        """

    def latest_created_at(self, *, query: LogQuery) -> datetime | None:
        """Return the newest creation timestamp among matching entries."""

    def latest_entry(self, *, plant: str, workcenter: str) -> LogEntry | None:
        """Return the newest entry authored at one work center."""


class StorageRuntime(Protocol):
    """Owned engine handle: readiness probe and shutdown."""

    def is_healthy(self) -> bool:
        """Return whether storage answers within the configured timeout."""

    def dispose(self) -> None:
        """Release pooled connections."""


class CategoryDirectory(Protocol):
    """Read-only view of category routing owned elsewhere."""

    def is_distribution_enabled(self, *, category_id: str, plant: str) -> bool:
        """Return whether entries in this category fan out."""

    def get_distribution_targets(self, *, category_id: str, plant: str) -> list[str]:
        """Return subscribed work-center codes for this category."""
