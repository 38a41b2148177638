"""Process entrypoint that prepares storage for the shift-book services."""

from __future__ import annotations

import sys

from packages.shiftbook_core.migrations import (
    MigrationExecutionError,
    run_startup_migrations,
)
from packages.shiftbook_shared.config import load_settings
from packages.shiftbook_shared.logging import configure_logging, get_logger
from services.state.log_distribution.component import log_distribution_schema

_LOGGER = get_logger(__name__)


def main() -> int:
    """Load settings, configure logging and run startup migrations."""
    settings = load_settings()
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
    )
    try:
        result = run_startup_migrations(
            settings=settings, schemas=(log_distribution_schema(),)
        )
    except MigrationExecutionError:
        _LOGGER.exception("Startup migrations failed")
        return 1
    _LOGGER.info(
        "Startup migrations complete: schemas=%s configs=%d",
        ",".join(result.provisioned_schemas),
        len(result.executed_alembic_configs),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
