"""Tests for envelope model and builder behavior."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from packages.shiftbook_shared.envelope import (
    Envelope,
    EnvelopeKind,
    EnvelopeMeta,
    failure,
    new_meta,
    success,
)
from packages.shiftbook_shared.errors import ErrorCategory, ErrorDetail


def _meta() -> EnvelopeMeta:
    """Return deterministic metadata for envelope tests."""
    return new_meta(
        kind=EnvelopeKind.RESULT,
        source="service_log_distribution",
        principal="operator",
        timestamp=datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC),
        envelope_id="env-1",
        trace_id="trace-1",
    )


def _error(code: str = "VALIDATION_ERROR") -> ErrorDetail:
    """Return a deterministic error detail for envelope tests."""
    return ErrorDetail(
        code=code,
        message="Invalid input",
        category=ErrorCategory.VALIDATION,
        retryable=False,
    )


def test_success_builder_returns_ok_envelope_with_payload() -> None:
    """success should build an ok envelope with payload and no errors."""
    envelope = success(meta=_meta(), payload={"log_id": "01ABC"})

    assert envelope.ok is True
    assert envelope.has_payload is True
    assert envelope.value == {"log_id": "01ABC"}
    assert envelope.errors == []


def test_success_builder_keeps_none_payload_value() -> None:
    """A successful envelope may carry an explicit ``None`` value."""
    envelope = success(meta=_meta(), payload=None)

    assert envelope.ok is True
    assert envelope.has_payload is True
    assert envelope.value is None


def test_failure_builder_returns_non_ok_envelope_with_errors() -> None:
    """failure should build a non-ok envelope containing provided errors."""
    envelope = failure(meta=_meta(), errors=[_error("DEPENDENCY_UNAVAILABLE")])

    assert envelope.ok is False
    assert envelope.has_payload is False
    assert envelope.value is None
    assert [item.code for item in envelope.errors] == ["DEPENDENCY_UNAVAILABLE"]


def test_envelope_model_validation_rejects_invalid_error_shape() -> None:
    """Envelope model validation should fail for malformed error entries."""
    with pytest.raises(ValidationError):
        Envelope[dict[str, str]].model_validate(
            {
                "metadata": _meta(),
                "payload": {"value": {"log_id": "01ABC"}},
                "errors": [{"code": "BAD"}],
            }
        )


def test_envelope_model_validation_rejects_invalid_metadata_shape() -> None:
    """Envelope model validation should fail for malformed metadata."""
    with pytest.raises(ValidationError):
        Envelope[int].model_validate(
            {
                "metadata": {"kind": "result"},
                "payload": {"value": 1},
                "errors": [],
            }
        )
