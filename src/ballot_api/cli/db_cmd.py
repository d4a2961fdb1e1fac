"""Database migration CLI commands using Alembic programmatically."""

import asyncio
from typing import TYPE_CHECKING

import typer
from loguru import logger

if TYPE_CHECKING:
    from alembic.config import Config

db_app = typer.Typer()

_ALEMBIC_INI = typer.Option("alembic.ini", "--config", "-c", help="Path to alembic.ini")


def _alembic_config(path: str) -> "Config":
    from alembic.config import Config

    return Config(path)


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
    config_path: str = _ALEMBIC_INI,
) -> None:
    """Run database migrations up to the target revision."""
    from alembic import command

    logger.info("Upgrading database to {}", revision)
    command.upgrade(_alembic_config(config_path), revision)
    logger.info("Database upgrade complete")


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Target revision"),
    config_path: str = _ALEMBIC_INI,
) -> None:
    """Rollback database migration to the target revision."""
    from alembic import command

    logger.info("Downgrading database to {}", revision)
    command.downgrade(_alembic_config(config_path), revision)
    logger.info("Database downgrade complete")


@db_app.command()
def current(config_path: str = _ALEMBIC_INI) -> None:
    """Show the current database migration revision."""
    from alembic import command

    command.current(_alembic_config(config_path), verbose=True)


@db_app.command("create-all")
def create_all() -> None:
    """Create all tables directly from the models (local development only)."""
    asyncio.run(_create_all_impl())


async def _create_all_impl() -> None:
    from ballot_api.core.config import get_settings
    from ballot_api.core.database import create_all_tables, dispose_engine, init_engine

    settings = get_settings()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)
    try:
        await create_all_tables()
        typer.echo("Created all tables")
    finally:
        await dispose_engine()
