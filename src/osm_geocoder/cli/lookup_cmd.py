"""Point lookup CLI command against the boundaries in the store."""

import asyncio

import typer


def lookup(
    lat: float = typer.Option(..., "--lat", help="Latitude (-90 to 90)"),  # noqa: B008
    lon: float = typer.Option(..., "--lon", help="Longitude (-180 to 180)"),  # noqa: B008
    max_distance: float | None = typer.Option(  # noqa: B008
        None, "--max-distance", help="Maximum distance in meters for the closest center"
    ),
) -> None:
    """Show the boundaries containing a point and the closest boundary center."""
    from osm_geocoder.lib.geometry import validate_coordinates

    try:
        validate_coordinates(lat, lon)
    except ValueError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1) from e
    asyncio.run(_lookup(lat, lon, max_distance))


async def _lookup(lat: float, lon: float, max_distance: float | None) -> None:
    """Async implementation of the point lookup."""
    from osm_geocoder.core.config import get_settings
    from osm_geocoder.core.database import create_tables, dispose_engine, get_session_factory, init_engine
    from osm_geocoder.lib.geometry import calc_distance
    from osm_geocoder.services.document_service import SqlDocumentStore
    from osm_geocoder.services.relationship_service import RelationshipFixer, compose_name

    settings = get_settings().model_copy(update={"dry_run": True})
    if max_distance is None:
        max_distance = settings.closest_max_distance_meters

    init_engine(settings.database_url)
    try:
        await create_tables()
        factory = get_session_factory()
        async with factory() as session:
            fixer = RelationshipFixer(SqlDocumentStore(session), settings)
            index = fixer.build_index(await fixer.assign_boundaries_to_parents())
            if index is None:
                typer.echo("No boundaries in the store")
                raise typer.Exit(code=1)

            containing = sorted(index.search_containing(lat, lon), key=lambda info: info.area)
            typer.echo(f"Boundaries containing ({lat}, {lon}): {len(containing)}")
            for info in containing:
                typer.echo(f"  {info.id}: {compose_name(None, info.is_in)}")

            closest = index.search_closest(lat, lon, max_distance)
            if closest is None:
                typer.echo(f"No boundary center within {max_distance:.0f}m")
            else:
                distance = calc_distance(lat, lon, closest.center.lat, closest.center.lon)
                typer.echo(f"Closest center: {closest.id} ({distance:.0f}m): {compose_name(None, closest.is_in)}")
    finally:
        await dispose_engine()
