"""Database CLI commands."""

import asyncio

import typer
from loguru import logger

db_app = typer.Typer()


@db_app.command()
def init() -> None:
    """Create the place document tables if they do not exist."""
    asyncio.run(_init())


async def _init() -> None:
    from osm_geocoder.core.config import get_settings
    from osm_geocoder.core.database import create_tables, dispose_engine, init_engine

    settings = get_settings()
    init_engine(settings.database_url)
    try:
        logger.info("Creating database tables")
        await create_tables()
        typer.echo("Database initialized")
    finally:
        await dispose_engine()
