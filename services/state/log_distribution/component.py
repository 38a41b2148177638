"""Component identity for the Log Distribution Service."""

from __future__ import annotations

SERVICE_COMPONENT_ID = "service_log_distribution"


def log_distribution_schema() -> str:
    """Return the Postgres schema owned by this service."""
    return SERVICE_COMPONENT_ID
