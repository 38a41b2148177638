"""Canonical error types for shiftbook services.

Errors are transport-agnostic values: services return them inside envelopes
instead of raising across their public boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class ErrorCategory(str, Enum):
    """High-level error categories shared across service boundaries."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ErrorDetail:
    """Structured error carried in envelope responses."""

    code: str
    message: str
    category: ErrorCategory
    retryable: bool = False
    metadata: Mapping[str, str] = field(default_factory=dict)
