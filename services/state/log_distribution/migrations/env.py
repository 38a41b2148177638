"""Alembic environment for Log Distribution Service schema migrations."""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from packages.shiftbook_shared.config import load_settings
from resources.substrates.postgres.config import resolve_postgres_settings
from services.state.log_distribution.component import log_distribution_schema
from services.state.log_distribution.data.schema import metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = metadata

if not config.get_main_option("sqlalchemy.url"):
    postgres_settings = resolve_postgres_settings(load_settings())
    config.set_main_option("sqlalchemy.url", postgres_settings.url)

schema_name = log_distribution_schema()


def run_migrations_offline() -> None:
    """Run migrations without a live DB connection."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_schemas=True,
        version_table_schema=schema_name,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations using a live DB connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_schemas=True,
            version_table_schema=schema_name,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
