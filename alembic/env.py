"""Alembic environment for the ballot store (async SQLAlchemy).

Runs against PostgreSQL in production and SQLite for local development;
SQLite gets batch mode so ALTER-style operations can be replayed.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool, text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from ballot_api.core.config import Settings, get_settings

# Importing the registry registers every model with Base.metadata
from ballot_api.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _migration_options(settings: Settings, dialect_name: str) -> dict[str, object]:
    options: dict[str, object] = {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": dialect_name == "sqlite",
    }
    if settings.database_schema is not None and dialect_name == "postgresql":
        options["version_table_schema"] = settings.database_schema
    return options


def run_migrations_offline() -> None:
    """Emit migration SQL without connecting."""
    settings = get_settings()
    dialect_name = settings.database_url.split(":", 1)[0].split("+", 1)[0]
    context.configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_migration_options(settings, dialect_name),
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """Run migrations synchronously within a connection."""
    settings = get_settings()
    dialect_name = connection.dialect.name
    if settings.database_schema is not None and dialect_name == "postgresql":
        connection.execute(text(f'SET search_path TO "{settings.database_schema}", public'))
    context.configure(connection=connection, **_migration_options(settings, dialect_name))

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations in async mode."""
    settings = get_settings()
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = settings.database_url

    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        if settings.database_schema is not None and connection.dialect.name == "postgresql":
            await connection.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{settings.database_schema}"'))
            await connection.commit()
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
