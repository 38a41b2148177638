"""Machine-readable error codes carried in ``ErrorDetail.code``."""

# Request shape
VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_ARGUMENT = "INVALID_ARGUMENT"
BATCH_EMPTY = "BATCH_EMPTY"
BATCH_TOO_LARGE = "BATCH_TOO_LARGE"

# Lookups: missing log, or work center the log was never distributed to
NOT_FOUND = "NOT_FOUND"
RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

# Duplicate (log_id, workcenter) rows and other constraint violations
CONFLICT = "CONFLICT"
ALREADY_EXISTS = "ALREADY_EXISTS"

# Storage
DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"

INTERNAL_ERROR = "INTERNAL_ERROR"
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"
