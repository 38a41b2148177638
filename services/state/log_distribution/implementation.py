"""Concrete Log Distribution Service implementation."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from packages.shiftbook_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    failure,
    success,
    validate_meta,
)
from packages.shiftbook_shared.errors import (
    ErrorDetail,
    codes,
    dependency_error,
    not_found_error,
    validation_error,
)
from packages.shiftbook_shared.ids import generate_ulid_str
from packages.shiftbook_shared.logging import (
    audit_failure,
    audit_success,
    get_logger,
    public_api_instrumented,
)
from resources.substrates.postgres.errors import (
    is_connection_unusable,
    is_postgres_error,
    normalize_postgres_error,
)
from services.state.log_distribution.acknowledgment import (
    BatchAccumulator,
    not_found_reason,
    parse_batch_item,
)
from services.state.log_distribution.clock import Clock
from services.state.log_distribution.component import SERVICE_COMPONENT_ID
from services.state.log_distribution.config import LogDistributionSettings
from services.state.log_distribution.domain import (
    BatchOutcome,
    Distribution,
    DistributionKey,
    HealthStatus,
    LogEntry,
    LogPage,
    LogQuery,
    RecordedEntry,
    WorkcenterScope,
)
from services.state.log_distribution.interfaces import (
    CategoryDirectory,
    LogDistributionRepository,
    StorageRuntime,
)
from services.state.log_distribution.service import BatchItem, LogDistributionService
from services.state.log_distribution.validation import (
    CreateDistributionsRequest,
    DistributionKeyRequest,
    LogFilterRequest,
    LogIdRequest,
    LogPageRequest,
    RecordEntryRequest,
    WorkcenterRequest,
)

_LOGGER = get_logger(__name__)

_ENTITY_DISTRIBUTION = "distribution"
_ENTITY_LOG_ENTRY = "log_entry"


class DefaultLogDistributionService(LogDistributionService):
    """Default implementation over an injected repository, clock and directory."""

    def __init__(
        self,
        *,
        settings: LogDistributionSettings,
        repository: LogDistributionRepository,
        runtime: StorageRuntime,
        categories: CategoryDirectory,
        clock: Clock,
    ) -> None:
        self._settings = settings
        self._repository = repository
        self._runtime = runtime
        self._categories = categories
        self._clock = clock

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
    )
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return readiness based on a bounded storage ping."""
        errors = validate_meta(meta)
        if errors:
            return failure(meta=meta, errors=errors)
        try:
            ready = self._runtime.is_healthy()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("log distribution health check failed: %s", exc)
            ready = False
        return success(
            meta=meta,
            payload=HealthStatus(
                service_ready=True,
                storage_ready=ready,
                detail="ok" if ready else "postgres ping failed",
            ),
        )

    def close(self) -> None:
        """Dispose the storage runtime and its connection pool."""
        self._runtime.dispose()

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("plant", "workcenter", "category_id"),
    )
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
        """Persist one entry and fan it out to subscribed work centers.

        Routing is read from the category directory at creation time; later
        subscription changes never touch existing rows.
        """
        request, errors = self._validate_request(
            meta=meta,
            model=RecordEntryRequest,
            payload={
                "plant": plant,
                "shop_order": shop_order,
                "step_id": step_id,
                "split": split,
                "workcenter": workcenter,
                "author_id": author_id,
                "category_id": category_id,
                "subject": subject,
                "message": message,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, RecordEntryRequest)

        try:
            enabled = self._categories.is_distribution_enabled(
                category_id=request.category_id, plant=request.plant
            )
            targets = (
                self._categories.get_distribution_targets(
                    category_id=request.category_id, plant=request.plant
                )
                if enabled
                else []
            )
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(
                meta=meta, operation="record_entry", exc=exc
            )
        workcenters = _distinct(targets)

        created_at = self._clock.now()
        entry = LogEntry(
            log_id=generate_ulid_str(timestamp_ms=int(created_at.timestamp() * 1000)),
            plant=request.plant,
            shop_order=request.shop_order,
            step_id=request.step_id,
            split=request.split,
            workcenter=request.workcenter,
            author_id=request.author_id,
            category_id=request.category_id,
            subject=request.subject,
            message=request.message,
            created_at=created_at,
        )
        try:
            self._repository.insert_entry(entry=entry, workcenters=workcenters)
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation="record_entry", exc=exc)

        audit_success(
            _LOGGER,
            action="log_recorded",
            entity=_ENTITY_LOG_ENTRY,
            entity_id=entry.log_id,
            distribution_enabled=enabled,
            distributed_count=len(workcenters),
        )
        return success(
            meta=meta,
            payload=RecordedEntry(
                entry=entry,
                distribution_enabled=enabled,
                distributed_to=workcenters,
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("log_id",),
    )
    def create_distributions(
        self, *, meta: EnvelopeMeta, log_id: str, workcenters: Sequence[str]
    ) -> Envelope[list[Distribution]]:
        """Create unread rows for one log; any insert failure rolls back all."""
        request, errors = self._validate_request(
            meta=meta,
            model=CreateDistributionsRequest,
            payload={"log_id": log_id, "workcenters": tuple(workcenters or ())},
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, CreateDistributionsRequest)

        try:
            created = self._repository.insert_distributions(
                log_id=request.log_id, workcenters=request.workcenters
            )
        except Exception as exc:  # noqa: BLE001
            audit_failure(
                _LOGGER,
                action="distributions_created",
                entity=_ENTITY_LOG_ENTRY,
                entity_id=request.log_id,
                reason=type(exc).__name__,
            )
            return self._storage_failure(
                meta=meta, operation="create_distributions", exc=exc
            )
        if created is None:
            return self._log_not_found(meta=meta, log_id=request.log_id)

        audit_success(
            _LOGGER,
            action="distributions_created",
            entity=_ENTITY_LOG_ENTRY,
            entity_id=request.log_id,
            distributed_count=len(created),
        )
        return success(meta=meta, payload=created)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("log_id",),
    )
    def list_distributions(
        self, *, meta: EnvelopeMeta, log_id: str
    ) -> Envelope[list[Distribution]]:
        request, errors = self._validate_request(
            meta=meta, model=LogIdRequest, payload={"log_id": log_id}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, LogIdRequest)

        try:
            rows = self._repository.list_distributions(log_id=request.log_id)
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(
                meta=meta, operation="list_distributions", exc=exc
            )
        if rows is None:
            return self._log_not_found(meta=meta, log_id=request.log_id)
        return success(meta=meta, payload=rows)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("log_id", "workcenter"),
    )
    def mark_read(
        self, *, meta: EnvelopeMeta, log_id: str, workcenter: str
    ) -> Envelope[datetime]:
        """Overwrite ``read_at`` with a fresh timestamp, even when already read."""
        request, errors = self._validate_request(
            meta=meta,
            model=DistributionKeyRequest,
            payload={"log_id": log_id, "workcenter": workcenter},
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, DistributionKeyRequest)
        key = DistributionKey(log_id=request.log_id, workcenter=request.workcenter)

        read_at = self._clock.now()
        try:
            updated = self._repository.set_read_at(
                log_id=key.log_id, workcenter=key.workcenter, read_at=read_at
            )
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation="mark_read", exc=exc)
        if not updated:
            audit_failure(
                _LOGGER,
                action="marked_as_read",
                entity=_ENTITY_DISTRIBUTION,
                entity_id=str(key),
                reason="not_found",
            )
            return self._distribution_not_found(meta=meta, key=key)

        audit_success(
            _LOGGER,
            action="marked_as_read",
            entity=_ENTITY_DISTRIBUTION,
            entity_id=str(key),
            read_at=read_at.isoformat(),
        )
        return success(meta=meta, payload=read_at)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("log_id", "workcenter"),
    )
    def mark_unread(
        self, *, meta: EnvelopeMeta, log_id: str, workcenter: str
    ) -> Envelope[bool]:
        request, errors = self._validate_request(
            meta=meta,
            model=DistributionKeyRequest,
            payload={"log_id": log_id, "workcenter": workcenter},
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, DistributionKeyRequest)
        key = DistributionKey(log_id=request.log_id, workcenter=request.workcenter)

        try:
            updated = self._repository.set_read_at(
                log_id=key.log_id, workcenter=key.workcenter, read_at=None
            )
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation="mark_unread", exc=exc)
        if not updated:
            audit_failure(
                _LOGGER,
                action="marked_as_unread",
                entity=_ENTITY_DISTRIBUTION,
                entity_id=str(key),
                reason="not_found",
            )
            return self._distribution_not_found(meta=meta, key=key)

        audit_success(
            _LOGGER,
            action="marked_as_unread",
            entity=_ENTITY_DISTRIBUTION,
            entity_id=str(key),
        )
        return success(meta=meta, payload=True)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
    )
    def batch_mark_read(
        self, *, meta: EnvelopeMeta, items: Sequence[BatchItem]
    ) -> Envelope[BatchOutcome]:
        """Mark items read; every succeeding item gets the same timestamp."""
        errors = self._validate_batch(meta=meta, items=items)
        if errors:
            return failure(meta=meta, errors=errors)

        read_at = self._clock.now()
        outcome = self._apply_batch(
            items=items, read_at=read_at, operation="batch_mark_read"
        )
        _audit_batch(action="batch_marked_as_read", outcome=outcome)
        return success(meta=meta, payload=outcome)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
    )
    def batch_mark_unread(
        self, *, meta: EnvelopeMeta, items: Sequence[BatchItem]
    ) -> Envelope[BatchOutcome]:
        errors = self._validate_batch(meta=meta, items=items)
        if errors:
            return failure(meta=meta, errors=errors)

        outcome = self._apply_batch(
            items=items, read_at=None, operation="batch_mark_unread"
        )
        _audit_batch(action="batch_marked_as_unread", outcome=outcome)
        return success(meta=meta, payload=outcome)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("plant", "workcenter", "category_id"),
    )
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
        """Read one page of entries, newest first.

        ``since`` is exclusive: an entry created exactly at ``since`` was
        already delivered by the poll that returned it. Read counters and
        ``read_states`` are filled only when ``workcenter`` is given.
        """
        request, errors = self._validate_request(
            meta=meta,
            model=LogPageRequest,
            payload={
                "plant": plant,
                "workcenter": workcenter,
                "category_id": category_id,
                "since": since,
                "scope": scope,
                "page": page,
                "page_size": (
                    self._settings.default_page_size if page_size is None else page_size
                ),
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, LogPageRequest)
        if request.page_size > self._settings.max_page_size:
            return failure(
                meta=meta,
                errors=[
                    validation_error(
                        f"page_size must be at most {self._settings.max_page_size}",
                        code=codes.INVALID_ARGUMENT,
                        metadata={"field": "page_size"},
                    )
                ],
            )
        query = _to_query(request)

        try:
            snapshot = self._repository.read_page(
                query=query,
                offset=(request.page - 1) * request.page_size,
                limit=request.page_size,
            )
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(
                meta=meta, operation="get_logs_paginated", exc=exc
            )

        return success(
            meta=meta,
            payload=LogPage(
                logs=snapshot.logs,
                total=snapshot.total,
                page=request.page,
                page_size=request.page_size,
                total_pages=math.ceil(snapshot.total / request.page_size),
                last_change_timestamp=snapshot.last_change_timestamp,
                read_count=snapshot.read_count,
                unread_count=(
                    snapshot.total - snapshot.read_count if query.workcenter else 0
                ),
                read_states=snapshot.read_states,
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("plant", "workcenter"),
    )
    def get_latest_entry(
        self, *, meta: EnvelopeMeta, plant: str, workcenter: str
    ) -> Envelope[LogEntry]:
        request, errors = self._validate_request(
            meta=meta,
            model=WorkcenterRequest,
            payload={"plant": plant, "workcenter": workcenter},
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, WorkcenterRequest)

        try:
            entry = self._repository.latest_entry(
                plant=request.plant, workcenter=request.workcenter
            )
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(
                meta=meta, operation="get_latest_entry", exc=exc
            )
        if entry is None:
            return failure(
                meta=meta,
                errors=[
                    not_found_error(
                        "no log entry for work center",
                        code=codes.RESOURCE_NOT_FOUND,
                        metadata={
                            "plant": request.plant,
                            "workcenter": request.workcenter,
                        },
                    )
                ],
            )
        return success(meta=meta, payload=entry)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("plant", "workcenter", "category_id"),
    )
    def get_last_change_timestamp(
        self,
        *,
        meta: EnvelopeMeta,
        plant: str,
        workcenter: str | None = None,
        category_id: str | None = None,
        scope: WorkcenterScope = WorkcenterScope.ORIGIN,
    ) -> Envelope[datetime | None]:
        request, errors = self._validate_request(
            meta=meta,
            model=LogFilterRequest,
            payload={
                "plant": plant,
                "workcenter": workcenter,
                "category_id": category_id,
                "scope": scope,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, LogFilterRequest)

        try:
            latest = self._repository.latest_created_at(query=_to_query(request))
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(
                meta=meta, operation="get_last_change_timestamp", exc=exc
            )
        return success(meta=meta, payload=latest)

    def _apply_batch(
        self,
        *,
        items: Sequence[BatchItem],
        read_at: datetime | None,
        operation: str,
    ) -> BatchOutcome:
        """Apply one ``read_at`` value item by item, continuing past failures.

        Once SQLAlchemy invalidates the connection, remaining items fail with
        that same reason without another round-trip. Any other storage error
        fails only its own item. ``timestamp`` is reported only when at least
        one row was stamped.
        """
        accumulator = BatchAccumulator(total_count=len(items))
        unusable_reason: str | None = None
        for position, item in enumerate(items, start=1):
            if unusable_reason is not None:
                accumulator.record_failure(position=position, reason=unusable_reason)
                continue

            key, reason = parse_batch_item(item)
            if key is None:
                accumulator.record_failure(
                    position=position, reason=reason or "invalid item"
                )
                continue

            try:
                updated = self._repository.set_read_at(
                    log_id=key.log_id, workcenter=key.workcenter, read_at=read_at
                )
            except Exception as exc:  # noqa: BLE001
                error = self._classify_exception(operation=operation, exc=exc)
                accumulator.record_failure(position=position, reason=error.message)
                if is_connection_unusable(exc):
                    unusable_reason = error.message
                continue

            if updated:
                accumulator.record_success()
            else:
                accumulator.record_failure(
                    position=position, reason=not_found_reason(key)
                )
        return accumulator.outcome(
            timestamp=read_at if accumulator.success_count else None
        )

    def _validate_batch(
        self, *, meta: EnvelopeMeta, items: Sequence[BatchItem] | None
    ) -> list[ErrorDetail]:
        """Reject empty or oversized batches before any storage access."""
        errors = validate_meta(meta)
        if errors:
            return errors
        if not isinstance(items, Sequence) or isinstance(items, (str, bytes)):
            return [
                validation_error(
                    "batch must be a non-empty array",
                    code=codes.BATCH_EMPTY,
                    metadata={"field": "items"},
                )
            ]
        if len(items) == 0:
            return [
                validation_error(
                    "batch must be a non-empty array",
                    code=codes.BATCH_EMPTY,
                    metadata={"field": "items"},
                )
            ]
        if len(items) > self._settings.max_batch_size:
            return [
                validation_error(
                    f"maximum {self._settings.max_batch_size} entries per batch",
                    code=codes.BATCH_TOO_LARGE,
                    metadata={"field": "items"},
                )
            ]
        return []

    def _validate_request(
        self,
        *,
        meta: EnvelopeMeta,
        model: type[BaseModel],
        payload: dict[str, Any] | None,
    ) -> tuple[BaseModel | None, list[ErrorDetail]]:
        """Validate envelope metadata and request payload model."""
        errors = validate_meta(meta)
        if errors:
            return None, errors

        data = payload or {}
        try:
            request = model.model_validate(data)
        except ValidationError as exc:
            return None, [
                validation_error(
                    f"request validation failed: {err['msg']}",
                    code=codes.INVALID_ARGUMENT,
                    metadata={"field": ".".join(str(p) for p in err["loc"])},
                )
                for err in exc.errors()
            ]

        return request, []

    def _classify_exception(self, *, operation: str, exc: Exception) -> ErrorDetail:
        """Normalize one storage exception and log it at WARNING."""
        _LOGGER.warning(
            "%s failed due to dependency error: exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        if is_postgres_error(exc):
            return normalize_postgres_error(exc)
        return dependency_error(
            f"{operation} failed",
            code=codes.DEPENDENCY_FAILURE,
            metadata={"exception_type": type(exc).__name__},
        )

    def _storage_failure(
        self, *, meta: EnvelopeMeta, operation: str, exc: Exception
    ) -> Envelope[Any]:
        return failure(
            meta=meta,
            errors=[self._classify_exception(operation=operation, exc=exc)],
        )

    def _dependency_failure(
        self, *, meta: EnvelopeMeta, operation: str, exc: Exception
    ) -> Envelope[Any]:
        """Map one collaborator exception into a structured envelope error."""
        _LOGGER.warning(
            "%s failed due to dependency error: exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        return failure(
            meta=meta,
            errors=[
                dependency_error(
                    f"{operation} failed",
                    code=codes.DEPENDENCY_FAILURE,
                    metadata={"exception_type": type(exc).__name__},
                )
            ],
        )

    def _log_not_found(self, *, meta: EnvelopeMeta, log_id: str) -> Envelope[Any]:
        return failure(
            meta=meta,
            errors=[
                not_found_error(
                    "log not found",
                    code=codes.RESOURCE_NOT_FOUND,
                    metadata={"log_id": log_id},
                )
            ],
        )

    def _distribution_not_found(
        self, *, meta: EnvelopeMeta, key: DistributionKey
    ) -> Envelope[Any]:
        """Missing log and unsubscribed work center collapse to one error."""
        return failure(
            meta=meta,
            errors=[
                not_found_error(
                    not_found_reason(key),
                    code=codes.RESOURCE_NOT_FOUND,
                    metadata={"log_id": key.log_id, "workcenter": key.workcenter},
                )
            ],
        )


def _to_query(request: LogFilterRequest) -> LogQuery:
    return LogQuery(
        plant=request.plant,
        workcenter=request.workcenter,
        category_id=request.category_id,
        since=request.since,
        scope=request.scope,
    )


def _distinct(workcenters: Sequence[str]) -> list[str]:
    """Drop blanks and duplicates, keeping first-appearance order."""
    return list(dict.fromkeys(item.strip() for item in workcenters if item.strip()))


def _audit_batch(*, action: str, outcome: BatchOutcome) -> None:
    """Audit one batch as a failure when no item succeeded."""
    counts = {
        "total_count": outcome.total_count,
        "success_count": outcome.success_count,
        "failed_count": outcome.failed_count,
    }
    if outcome.success_count == 0:
        audit_failure(
            _LOGGER,
            action=action,
            entity=_ENTITY_DISTRIBUTION,
            entity_id="batch",
            reason="all batch operations failed",
            **counts,
        )
        return
    audit_success(
        _LOGGER,
        action=action,
        entity=_ENTITY_DISTRIBUTION,
        entity_id="batch",
        timestamp=None if outcome.timestamp is None else outcome.timestamp.isoformat(),
        **counts,
    )
