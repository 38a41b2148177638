"""Typed envelope returned by every public service operation."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from packages.shiftbook_shared.errors import ErrorDetail

from .meta import EnvelopeMeta

T = TypeVar("T")


class Payload(BaseModel, Generic[T]):
    model_config = ConfigDict(frozen=True, extra="forbid")

    value: T


class Envelope(BaseModel, Generic[T]):
    """Metadata, optional payload and errors for one service call."""

    model_config = ConfigDict(frozen=True)

    metadata: EnvelopeMeta
    payload: Payload[T] | None
    errors: list[ErrorDetail] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Return ``True`` when no errors are present."""
        return len(self.errors) == 0

    @property
    def has_payload(self) -> bool:
        return self.payload is not None

    @property
    def value(self) -> T | None:
        """Return the unwrapped payload value, or ``None`` when absent."""
        return None if self.payload is None else self.payload.value
