"""Call logging for public service API methods.

Each decorated call emits a ``public_api_invocation`` record before the body
runs and a ``public_api_completion`` record after it returns. Outcome is read
off the returned envelope; batch payloads also contribute their item counts.
"""

from __future__ import annotations

import logging
from functools import wraps
from time import perf_counter
from typing import Any, Callable, Mapping

from . import fields
from .config import log_context

_BATCH_COUNT_FIELDS = ("total_count", "success_count", "failed_count")


def public_api_instrumented(
    *,
    logger: logging.Logger,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Wrap one keyword-only service method with invocation/completion logs.

    ``id_fields`` names keyword arguments whose values identify the entity the
    call touches (``log_id``, ``workcenter``, ``plant``); they are copied into
    both records. Exceptions escaping the method are logged and re-raised.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        method_name = api_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            call_fields = _call_fields(
                component_id=component_id,
                api_name=method_name,
                meta=kwargs.get("meta"),
                references={
                    name: kwargs[name]
                    for name in id_fields
                    if kwargs.get(name) not in (None, "")
                },
            )
            with log_context(
                {fields.EVENT: fields.PUBLIC_API_INVOCATION_EVENT, **call_fields}
            ):
                logger.debug("Public API invocation")

            started = perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _log_completion(
                    logger,
                    call_fields,
                    success=False,
                    started=started,
                    extra={fields.ERRORS: [f"{type(exc).__name__}: {exc}"]},
                )
                raise

            success, errors = _envelope_outcome(result)
            extra: dict[str, object] = {fields.ERRORS: errors}
            extra.update(_batch_counts(result))
            _log_completion(
                logger, call_fields, success=success, started=started, extra=extra
            )
            return result

        return wrapper

    return decorator


def _call_fields(
    *,
    component_id: str,
    api_name: str,
    meta: object | None,
    references: Mapping[str, object],
) -> dict[str, object]:
    return {
        fields.COMPONENT_ID: component_id,
        fields.API_NAME: api_name,
        fields.TRACE_ID: getattr(meta, "trace_id", None),
        fields.ENVELOPE_ID: getattr(meta, "envelope_id", None),
        fields.PRINCIPAL: getattr(meta, "principal", None),
        **references,
    }


def _log_completion(
    logger: logging.Logger,
    call_fields: Mapping[str, object],
    *,
    success: bool,
    started: float,
    extra: Mapping[str, object],
) -> None:
    with log_context(
        {
            fields.EVENT: fields.PUBLIC_API_COMPLETION_EVENT,
            **call_fields,
            fields.SUCCESS: success,
            fields.DURATION_MS: round((perf_counter() - started) * 1000.0, 3),
            **extra,
        }
    ):
        logger.log(
            logging.INFO if success else logging.WARNING, "Public API completion"
        )


def _envelope_outcome(result: object) -> tuple[bool, list[str]]:
    """Return ``(ok, ["CODE: message", ...])`` for an envelope-like result."""
    errors = getattr(result, "errors", None) or []
    summaries = [
        f"{item.code}: {item.message}" if getattr(item, "code", "") else item.message
        for item in errors
        if getattr(item, "message", "")
    ]
    ok = getattr(result, "ok", None)
    return (ok if isinstance(ok, bool) else not summaries), summaries


def _batch_counts(result: object) -> dict[str, object]:
    value = getattr(getattr(result, "payload", None), "value", None)
    if not all(hasattr(value, name) for name in _BATCH_COUNT_FIELDS):
        return {}
    return {name: getattr(value, name) for name in _BATCH_COUNT_FIELDS}
