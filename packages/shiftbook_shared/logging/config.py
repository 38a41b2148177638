"""Stdout logging configuration and the context carried on every record."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from . import fields

# Third-party loggers that drown service records at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "alembic.runtime.migration")


# Values kept as-is in the bound context so JSON lines stay typed.
_NATIVE_TYPES = (str, bool, int, float)

_LOG_CONTEXT: ContextVar[dict[str, object]] = ContextVar(
    "shiftbook_log_context", default={}
)


def get_context() -> dict[str, object]:
    """Return a shallow copy of the bound context."""
    return dict(_LOG_CONTEXT.get())


def bind_context(**values: object) -> None:
    """Bind values into the current context, skipping ``None``.

    Strings, booleans and numbers are stored unchanged; anything else is
    stored as ``str(value)``.
    """
    current = dict(_LOG_CONTEXT.get())
    current.update(
        (key, value if isinstance(value, _NATIVE_TYPES) else str(value))
        for key, value in values.items()
        if value is not None
    )
    _LOG_CONTEXT.set(current)


def clear_context(*keys: str) -> None:
    """Drop the named keys, or every key when none are named."""
    if not keys:
        _LOG_CONTEXT.set({})
        return
    _LOG_CONTEXT.set(
        {key: value for key, value in _LOG_CONTEXT.get().items() if key not in keys}
    )


@contextmanager
def log_context(values: Mapping[str, object]) -> Iterator[None]:
    """Bind ``values`` for the duration of a block, then restore the outer context."""
    token = _LOG_CONTEXT.set(dict(_LOG_CONTEXT.get()))
    try:
        bind_context(**dict(values))
        yield
    finally:
        _LOG_CONTEXT.reset(token)


class ContextFilter(logging.Filter):
    """Attach a snapshot of the bound context as ``record.context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = get_context()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; bound context keys sit beside the core fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            fields.TIMESTAMP: datetime.fromtimestamp(record.created, UTC).isoformat(),
            fields.LEVEL: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
            **getattr(record, "context", {}),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


class PlainFormatter(logging.Formatter):
    """Console format: standard prefix, then ``key=value`` context pairs."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "context", {})
        pairs = " ".join(f"{key}={context[key]}" for key in sorted(context))
        return f"{line} {pairs}" if pairs else line


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = True,
    service: str | None = None,
    environment: str | None = None,
) -> None:
    """Install a single stdout handler on the root logger.

    Calling again replaces the handler rather than adding a second one.
    ``service`` and ``environment`` are bound into the logging context so every
    subsequent record carries them.
    """
    resolved = level.upper()
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if json_output else PlainFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolved)

    quiet_level = logging.DEBUG if resolved == "DEBUG" else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    bind_context(
        **{fields.SERVICE: service or None, fields.ENVIRONMENT: environment or None}
    )


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)
