"""Import CLI command for OSM-derived GeoJSON place files."""

import asyncio
from pathlib import Path

import typer


def import_places(
    file: Path = typer.Argument(..., help="Path to a GeoJSON FeatureCollection", exists=True),  # noqa: B008
    batch_size: int | None = typer.Option(None, "--batch-size", help="Documents per bulk upsert"),  # noqa: B008
) -> None:
    """Import places from a GeoJSON file into the document store."""
    asyncio.run(_import_places(file, batch_size))


async def _import_places(file_path: Path, batch_size: int | None) -> None:
    """Async implementation of place import."""
    from osm_geocoder.core.config import get_settings
    from osm_geocoder.core.database import create_tables, dispose_engine, get_session_factory, init_engine
    from osm_geocoder.lib.place_loader import SimplifyOptions, load_places
    from osm_geocoder.services.document_service import SqlDocumentStore

    settings = get_settings()
    batch_size = batch_size or settings.feed_bulk_size
    options = SimplifyOptions(
        method=settings.simplify_method,
        min_size=settings.small_boundary,
        key_resolution=settings.spatial_key_resolution,
        window=settings.simplify_window,
        tolerance=settings.douglas_peucker_tolerance,
    )

    try:
        places = load_places(file_path, options)
    except ValueError as e:
        typer.echo(f"Cannot read {file_path}: {e}", err=True)
        raise typer.Exit(code=1) from e

    init_engine(settings.database_url)
    try:
        await create_tables()
        factory = get_session_factory()
        async with factory() as session:
            store = SqlDocumentStore(session)
            failed: list[str] = []
            for start in range(0, len(places), batch_size):
                chunk = places[start : start + batch_size]
                failed.extend(await store.bulk_upsert({p.id: p.document for p in chunk}))

            boundaries = sum(1 for p in places if p.document.get("has_boundary"))
            typer.echo(f"\nImport of {file_path.name} completed:")
            typer.echo(f"  Places:      {len(places)}")
            typer.echo(f"  Boundaries:  {boundaries}")
            typer.echo(f"  Stored:      {len(places) - len(failed)}")
            typer.echo(f"  Failed:      {len(failed)}")
    finally:
        await dispose_engine()
