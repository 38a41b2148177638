"""Request metadata: construction for callers, validation for services.

Every public operation receives an ``EnvelopeMeta`` and echoes it on its
result. Ids are ULIDs so envelopes sort by creation time in logs.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from packages.shiftbook_shared.errors import ErrorDetail, codes, validation_error
from packages.shiftbook_shared.ids import generate_ulid_str


class EnvelopeKind(str, Enum):
    """Whether the caller mutates state, reads it, or relays a result."""

    UNSPECIFIED = "unspecified"
    COMMAND = "command"
    QUERY = "query"
    RESULT = "result"


@dataclass(frozen=True)
class EnvelopeMeta:
    """Correlation metadata for one call.

    ``trace_id`` is shared by every call made on behalf of one user action;
    ``parent_id`` names the envelope that caused this one, or is empty.
    """

    envelope_id: str
    trace_id: str
    parent_id: str
    timestamp: datetime
    kind: EnvelopeKind
    source: str
    principal: str


def new_meta(
    *,
    kind: EnvelopeKind,
    source: str,
    principal: str,
    trace_id: str | None = None,
    parent_id: str = "",
    envelope_id: str | None = None,
    timestamp: datetime | None = None,
) -> EnvelopeMeta:
    """Build metadata for a new call; omitted ids are fresh ULIDs."""
    if timestamp is None:
        timestamp = datetime.now(UTC)
    elif timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    else:
        timestamp = timestamp.astimezone(UTC)
    return EnvelopeMeta(
        envelope_id=envelope_id or generate_ulid_str(),
        trace_id=trace_id or generate_ulid_str(),
        parent_id=parent_id,
        timestamp=timestamp,
        kind=kind,
        source=source,
        principal=principal,
    )


class _MetaFields(BaseModel):
    model_config = ConfigDict(extra="forbid")

    envelope_id: str = Field(min_length=1)
    trace_id: str = Field(min_length=1)
    parent_id: str
    timestamp: datetime
    kind: EnvelopeKind
    source: str = Field(min_length=1)
    principal: str = Field(min_length=1)


def validate_meta(meta: EnvelopeMeta) -> list[ErrorDetail]:
    """Return at most one metadata error; an empty list means the call may proceed."""
    if not isinstance(meta, EnvelopeMeta):
        return [_meta_error("metadata is required")]
    try:
        fields = _MetaFields.model_validate(asdict(meta))
    except ValidationError as exc:
        field_name = str(exc.errors()[0]["loc"][0])
        if field_name == "kind":
            return [_meta_error("metadata.kind must be specified")]
        return [_meta_error(f"metadata.{field_name} is required")]
    if fields.kind is EnvelopeKind.UNSPECIFIED:
        return [_meta_error("metadata.kind must be specified")]
    return []


def _meta_error(message: str) -> ErrorDetail:
    return validation_error(
        message,
        code=codes.INVALID_ARGUMENT,
        metadata={"field": "metadata"},
    )
