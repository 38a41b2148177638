"""Log Distribution Service native package exports."""

from packages.shiftbook_shared.envelope import Envelope, EnvelopeKind, EnvelopeMeta
from packages.shiftbook_shared.errors import ErrorCategory, ErrorDetail
from services.state.log_distribution.clock import Clock, MonotonicUtcClock
from services.state.log_distribution.component import SERVICE_COMPONENT_ID
from services.state.log_distribution.config import (
    CategoryRouteSettings,
    LogDistributionSettings,
)
from services.state.log_distribution.domain import (
    BatchOutcome,
    Distribution,
    DistributionKey,
    HealthStatus,
    LogEntry,
    LogPage,
    RecordedEntry,
    WorkcenterScope,
)
from services.state.log_distribution.implementation import (
    DefaultLogDistributionService,
)
from services.state.log_distribution.service import (
    LogDistributionService,
    build_log_distribution_service,
)

__all__ = [
    "SERVICE_COMPONENT_ID",
    "LogDistributionService",
    "DefaultLogDistributionService",
    "build_log_distribution_service",
    "LogDistributionSettings",
    "CategoryRouteSettings",
    "Clock",
    "MonotonicUtcClock",
    "BatchOutcome",
    "Distribution",
    "DistributionKey",
    "HealthStatus",
    "LogEntry",
    "LogPage",
    "RecordedEntry",
    "WorkcenterScope",
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "ErrorCategory",
    "ErrorDetail",
]
