"""Convenience constructors for typed envelope responses."""

from __future__ import annotations

from typing import Iterable, TypeVar

from packages.shiftbook_shared.errors import ErrorDetail

from .envelope import Envelope, Payload
from .meta import EnvelopeMeta

T = TypeVar("T")


def success(*, meta: EnvelopeMeta, payload: T) -> Envelope[T]:
    """Build a successful envelope carrying ``payload``."""
    return Envelope[T](
        metadata=meta,
        payload=Payload[T](value=payload),
        errors=[],
    )


def failure(
    *,
    meta: EnvelopeMeta,
    errors: Iterable[ErrorDetail],
    payload: T | None = None,
) -> Envelope[T]:
    """Build a failed envelope with one or more errors."""
    wrapped = None if payload is None else Payload[T](value=payload)
    return Envelope[T](metadata=meta, payload=wrapped, errors=list(errors))
