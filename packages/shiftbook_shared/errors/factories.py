"""Factory helpers for consistent error construction.

Each factory fixes the category; only dependency errors default to
retryable, since a storage outage is the one failure a caller can wait out.
"""

from __future__ import annotations

from typing import Mapping

from . import codes
from .types import ErrorCategory, ErrorDetail

Metadata = Mapping[str, object] | None


def validation_error(
    message: str, *, code: str = codes.VALIDATION_ERROR, metadata: Metadata = None
) -> ErrorDetail:
    return _build(ErrorCategory.VALIDATION, code, message, False, metadata)


def not_found_error(
    message: str, *, code: str = codes.NOT_FOUND, metadata: Metadata = None
) -> ErrorDetail:
    return _build(ErrorCategory.NOT_FOUND, code, message, False, metadata)


def conflict_error(
    message: str, *, code: str = codes.CONFLICT, metadata: Metadata = None
) -> ErrorDetail:
    return _build(ErrorCategory.CONFLICT, code, message, False, metadata)


def dependency_error(
    message: str,
    *,
    code: str = codes.DEPENDENCY_FAILURE,
    retryable: bool = True,
    metadata: Metadata = None,
) -> ErrorDetail:
    return _build(ErrorCategory.DEPENDENCY, code, message, retryable, metadata)


def internal_error(
    message: str, *, code: str = codes.INTERNAL_ERROR, metadata: Metadata = None
) -> ErrorDetail:
    return _build(ErrorCategory.INTERNAL, code, message, False, metadata)


def _build(
    category: ErrorCategory,
    code: str,
    message: str,
    retryable: bool,
    metadata: Metadata,
) -> ErrorDetail:
    """Create one ``ErrorDetail`` with metadata coerced to ``str -> str``."""
    return ErrorDetail(
        code=code,
        message=message,
        category=category,
        retryable=retryable,
        metadata={str(key): str(value) for key, value in (metadata or {}).items()},
    )
