"""Audit records for state-changing service operations.

Audit lines are ordinary log records tagged ``event=audit`` with the action,
the entity touched and an outcome, so they can be filtered out of the shared
stdout stream.
"""

from __future__ import annotations

import logging
from typing import Any

from . import fields
from .config import log_context


def audit_success(
    logger: logging.Logger,
    *,
    action: str,
    entity: str,
    entity_id: str,
    **details: object,
) -> None:
    """Emit one successful audit record at INFO."""
    _emit(logger, logging.INFO, action, entity, entity_id, "success", details)


def audit_failure(
    logger: logging.Logger,
    *,
    action: str,
    entity: str,
    entity_id: str,
    reason: str,
    **details: object,
) -> None:
    """Emit one failed audit record at WARNING."""
    _emit(
        logger,
        logging.WARNING,
        action,
        entity,
        entity_id,
        "failure",
        {"reason": reason, **details},
    )


def _emit(
    logger: logging.Logger,
    level: int,
    action: str,
    entity: str,
    entity_id: str,
    outcome: str,
    details: dict[str, Any],
) -> None:
    with log_context(
        {
            fields.EVENT: fields.AUDIT_EVENT,
            fields.ACTION: action,
            fields.ENTITY: entity,
            fields.ENTITY_ID: entity_id,
            fields.OUTCOME: outcome,
            **details,
        }
    ):
        logger.log(level, "%s %s", action, outcome)
