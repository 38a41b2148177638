"""Timestamp source for creation and acknowledgment instants."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import Callable, Protocol

_TICK = timedelta(microseconds=1)


class Clock(Protocol):
    """Source of timezone-aware UTC instants."""

    def now(self) -> datetime:
        """Return the current instant."""


class MonotonicUtcClock:
    """UTC wall clock that never returns the same instant twice.

    When the underlying source stalls or steps backwards, the returned value is
    bumped one microsecond past the last one issued. Microseconds are the finest
    resolution both Postgres ``timestamptz`` and SQLite text storage keep.
    """

    def __init__(self, source: Callable[[], datetime] | None = None) -> None:
        self._source = source or _utc_now
        self._lock = threading.Lock()
        self._last: datetime | None = None

    def now(self) -> datetime:
        with self._lock:
            current = _normalize_utc(self._source())
            if self._last is not None and current <= self._last:
                current = self._last + _TICK
            self._last = current
            return current


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _normalize_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
