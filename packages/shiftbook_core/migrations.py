"""Startup migration orchestration for service-owned schemas."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from alembic import command
from alembic.config import Config

from packages.shiftbook_shared.config import ShiftbookSettings
from packages.shiftbook_shared.logging import get_logger
from resources.substrates.postgres import create_postgres_engine
from resources.substrates.postgres.bootstrap import provision_service_schemas
from resources.substrates.postgres.config import resolve_postgres_settings

_LOGGER = get_logger(__name__)

SERVICE_MODULE_ROOTS: tuple[str, ...] = ("services.state.log_distribution",)


class MigrationExecutionError(RuntimeError):
    """Raised when startup migration execution fails."""


@dataclass(frozen=True, slots=True)
class MigrationRunResult:
    """Summary of one startup migration pass."""

    provisioned_schemas: tuple[str, ...]
    executed_alembic_configs: tuple[str, ...]


def discover_service_migration_configs(
    *,
    repo_root: Path | None = None,
    module_roots: tuple[str, ...] = SERVICE_MODULE_ROOTS,
) -> tuple[Path, ...]:
    """Return existing ``migrations/alembic.ini`` paths for service modules."""
    root = (repo_root or Path.cwd()).resolve()
    config_paths: list[Path] = []
    for module_root in module_roots:
        candidate = root / Path(*module_root.split(".")) / "migrations" / "alembic.ini"
        if candidate.exists():
            config_paths.append(candidate)
    return tuple(config_paths)


def run_startup_migrations(
    *,
    settings: ShiftbookSettings,
    schemas: tuple[str, ...],
    repo_root: Path | None = None,
    upgrade_fn: Callable[[Config, str], None] = command.upgrade,
) -> MigrationRunResult:
    """Provision schemas, then upgrade every discovered service to head."""
    postgres_settings = resolve_postgres_settings(settings)
    engine = create_postgres_engine(postgres_settings)
    try:
        provisioned = provision_service_schemas(engine=engine, schemas=schemas)
    finally:
        engine.dispose()

    executed: list[str] = []
    for config_path in discover_service_migration_configs(repo_root=repo_root):
        config = Config(str(config_path))
        config.set_main_option("sqlalchemy.url", postgres_settings.url)
        try:
            upgrade_fn(config, "head")
        except Exception as exc:
            raise MigrationExecutionError(
                f"startup migration failed for config '{config_path}'"
            ) from exc
        _LOGGER.info("Applied migrations: config=%s", config_path)
        executed.append(str(config_path))

    return MigrationRunResult(
        provisioned_schemas=provisioned,
        executed_alembic_configs=tuple(executed),
    )
