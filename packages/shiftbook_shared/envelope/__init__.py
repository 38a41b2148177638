"""Public envelope API for shiftbook services."""

from .builders import failure, success
from .envelope import Envelope, Payload
from .meta import EnvelopeKind, EnvelopeMeta, new_meta, validate_meta

__all__ = [
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "Payload",
    "failure",
    "new_meta",
    "success",
    "validate_meta",
]
