"""Public logging API for shiftbook services.

Stdout logging with structured context carried in ``contextvars``, plus the
call and audit records service implementations emit.
"""

from .audit import audit_failure, audit_success
from .config import (
    bind_context,
    clear_context,
    configure_logging,
    get_context,
    get_logger,
    log_context,
)
from .public_api import public_api_instrumented

__all__ = [
    "audit_failure",
    "audit_success",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_context",
    "get_logger",
    "log_context",
    "public_api_instrumented",
]
