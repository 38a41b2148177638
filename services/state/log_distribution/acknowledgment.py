"""Batch acknowledgment bookkeeping.

Positions in error messages are 1-based input positions, so callers can map
each failure back to the item they submitted.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime

from pydantic import ValidationError

from services.state.log_distribution.domain import BatchOutcome, DistributionKey
from services.state.log_distribution.validation import DistributionKeyRequest


class BatchAccumulator:
    """Collect per-item outcomes of one batch in input order."""

    def __init__(self, *, total_count: int) -> None:
        self._total_count = total_count
        self._success_count = 0
        self._errors: list[str] = []

    def record_success(self) -> None:
        self._success_count += 1

    def record_failure(self, *, position: int, reason: str) -> None:
        self._errors.append(f"Log {position}: {reason}")

    @property
    def success_count(self) -> int:
        return self._success_count

    @property
    def failed_count(self) -> int:
        return len(self._errors)

    def outcome(self, *, timestamp: datetime | None = None) -> BatchOutcome:
        """Freeze the accumulated counts into a ``BatchOutcome``."""
        return BatchOutcome(
            success=self.failed_count == 0,
            total_count=self._total_count,
            success_count=self.success_count,
            failed_count=self.failed_count,
            errors=list(self._errors),
            timestamp=timestamp,
        )


def parse_batch_item(item: object) -> tuple[DistributionKey | None, str | None]:
    """Validate one batch item into a key, or return the failure reason."""
    if isinstance(item, DistributionKey):
        raw: Mapping[str, object] = item.model_dump()
    elif isinstance(item, Mapping):
        raw = item
    else:
        return None, "invalid item"

    try:
        request = DistributionKeyRequest.model_validate(
            {"log_id": raw.get("log_id"), "workcenter": raw.get("workcenter")}
        )
    except ValidationError as exc:
        field = str(exc.errors()[0]["loc"][0])
        return None, f"invalid {field}"
    return DistributionKey(log_id=request.log_id, workcenter=request.workcenter), None


def not_found_reason(key: DistributionKey) -> str:
    return f"not found (log_id={key.log_id}, workcenter={key.workcenter})"
