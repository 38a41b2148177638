"""Data-layer exports for Log Distribution Service."""

from services.state.log_distribution.data.repository import (
    SqlLogDistributionRepository,
)
from services.state.log_distribution.data.runtime import LogDistributionRuntime
from services.state.log_distribution.data.schema import (
    distributions,
    log_entries,
    metadata,
)

__all__ = [
    "LogDistributionRuntime",
    "SqlLogDistributionRepository",
    "distributions",
    "log_entries",
    "metadata",
]
