"""Authoritative in-process Python API for Log Distribution Service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from datetime import datetime

from packages.shiftbook_shared.config import ShiftbookSettings
from packages.shiftbook_shared.envelope import Envelope, EnvelopeMeta
from services.state.log_distribution.clock import Clock
from services.state.log_distribution.domain import (
    BatchOutcome,
    Distribution,
    DistributionKey,
    HealthStatus,
    LogEntry,
    LogPage,
    RecordedEntry,
    WorkcenterScope,
)
from services.state.log_distribution.interfaces import CategoryDirectory

BatchItem = DistributionKey | Mapping[str, object]


class LogDistributionService(ABC):
    """Public API for log fan-out, acknowledgment and incremental retrieval."""

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return service and storage readiness."""

    @abstractmethod
    def record_entry(
        self,
        *,
        meta: EnvelopeMeta,
        plant: str,
        shop_order: str,
        step_id: str,
        workcenter: str,
        author_id: str,
        category_id: str,
        message: str,
        subject: str = "",
        split: str = "",
    ) -> Envelope[RecordedEntry]:
        """Persist one entry together with its distribution rows."""

    @abstractmethod
    def create_distributions(
        self, *, meta: EnvelopeMeta, log_id: str, workcenters: Sequence[str]
    ) -> Envelope[list[Distribution]]:
        """Create one unread row per distinct work center for an existing log."""

    @abstractmethod
    def list_distributions(
        self, *, meta: EnvelopeMeta, log_id: str
    ) -> Envelope[list[Distribution]]:
        """Read every distribution row of one log ordered by work center."""

    @abstractmethod
    def mark_read(
        self, *, meta: EnvelopeMeta, log_id: str, workcenter: str
    ) -> Envelope[datetime]:
        """Stamp one distribution row read now and return the timestamp."""

    @abstractmethod
    def mark_unread(
        self, *, meta: EnvelopeMeta, log_id: str, workcenter: str
    ) -> Envelope[bool]:
        """Clear the read timestamp of one distribution row."""

    @abstractmethod
    def batch_mark_read(
        self, *, meta: EnvelopeMeta, items: Sequence[BatchItem]
    ) -> Envelope[BatchOutcome]:
        """Mark every item read with one shared timestamp."""

    @abstractmethod
    def batch_mark_unread(
        self, *, meta: EnvelopeMeta, items: Sequence[BatchItem]
    ) -> Envelope[BatchOutcome]:
        """Mark every item unread."""

    @abstractmethod
    def get_logs_paginated(
        self,
        *,
        meta: EnvelopeMeta,
        plant: str,
        workcenter: str | None = None,
        category_id: str | None = None,
        since: datetime | None = None,
        page: int = 1,
        page_size: int | None = None,
        scope: WorkcenterScope = WorkcenterScope.ORIGIN,
    ) -> Envelope[LogPage]:
        """Read one page of matching entries, newest first."""

    @abstractmethod
    def get_latest_entry(
        self, *, meta: EnvelopeMeta, plant: str, workcenter: str
    ) -> Envelope[LogEntry]:
        """Read the newest entry authored at one work center."""

    @abstractmethod
    def get_last_change_timestamp(
        self,
        *,
        meta: EnvelopeMeta,
        plant: str,
        workcenter: str | None = None,
        category_id: str | None = None,
        scope: WorkcenterScope = WorkcenterScope.ORIGIN,
    ) -> Envelope[datetime | None]:
        """Return the newest creation timestamp among matching entries."""

    def close(self) -> None:
        """Release owned storage resources; a no-op unless overridden."""


def build_log_distribution_service(
    *,
    settings: ShiftbookSettings,
    categories: CategoryDirectory | None = None,
    clock: Clock | None = None,
) -> LogDistributionService:
    """Build the default implementation from typed settings."""
    from services.state.log_distribution.categories import StaticCategoryDirectory
    from services.state.log_distribution.clock import MonotonicUtcClock
    from services.state.log_distribution.config import (
        resolve_log_distribution_settings,
    )
    from services.state.log_distribution.data import (
        LogDistributionRuntime,
        SqlLogDistributionRepository,
    )
    from services.state.log_distribution.implementation import (
        DefaultLogDistributionService,
    )

    service_settings = resolve_log_distribution_settings(settings)
    runtime = LogDistributionRuntime.from_settings(settings)
    return DefaultLogDistributionService(
        settings=service_settings,
        repository=SqlLogDistributionRepository(runtime.schema_sessions),
        runtime=runtime,
        categories=categories
        or StaticCategoryDirectory(service_settings.category_routes),
        clock=clock or MonotonicUtcClock(),
    )
