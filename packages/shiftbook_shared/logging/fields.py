"""Structured log field names shared by formatters and service code."""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"
SERVICE = "service"
ENVIRONMENT = "environment"

# Correlation, copied from the request envelope.
TRACE_ID = "trace_id"
ENVELOPE_ID = "envelope_id"
PRINCIPAL = "principal"

# Public API call records.
PUBLIC_API_INVOCATION_EVENT = "public_api_invocation"
PUBLIC_API_COMPLETION_EVENT = "public_api_completion"
COMPONENT_ID = "component_id"
API_NAME = "api_name"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"

# Audit records for acknowledgment and fan-out.
AUDIT_EVENT = "audit"
ACTION = "action"
ENTITY = "entity"
ENTITY_ID = "entity_id"
OUTCOME = "outcome"
