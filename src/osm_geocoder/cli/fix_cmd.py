"""Relationship fixing CLI command."""

import asyncio

import typer


def fix_relations(
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute assignments without writing"),  # noqa: FBT001
    tile_width: float | None = typer.Option(None, "--tile-width", help="Index tile width in meters"),  # noqa: B008
    max_distance: float | None = typer.Option(  # noqa: B008
        None, "--max-distance", help="Maximum distance in meters for the closest-center fallback"
    ),
) -> None:
    """Assign is_in hierarchies to places from administrative boundaries."""
    asyncio.run(_fix_relations(dry_run, tile_width, max_distance))


async def _fix_relations(dry_run: bool, tile_width: float | None, max_distance: float | None) -> None:
    """Async implementation of relationship fixing."""
    from osm_geocoder.core.config import get_settings
    from osm_geocoder.core.database import create_tables, dispose_engine, get_session_factory, init_engine
    from osm_geocoder.services.document_service import SqlDocumentStore
    from osm_geocoder.services.relationship_service import RelationshipFixer

    updates: dict[str, object] = {"dry_run": dry_run or get_settings().dry_run}
    if tile_width is not None:
        updates["tile_width_meters"] = tile_width
    if max_distance is not None:
        updates["closest_max_distance_meters"] = max_distance
    settings = get_settings().model_copy(update=updates)

    init_engine(settings.database_url)
    try:
        await create_tables()
        factory = get_session_factory()
        async with factory() as session:
            fixer = RelationshipFixer(SqlDocumentStore(session), settings)
            result = await fixer.run()

            typer.echo(f"\nRelationship fixing {'(dry run) ' if settings.dry_run else ''}completed:")
            typer.echo(f"  Boundaries:        {result.boundaries_seen}")
            typer.echo(f"  Indexed:           {result.boundaries_indexed}")
            typer.echo(f"  Parents updated:   {result.parents_updated}")
            typer.echo(f"  Assigned:          {result.assigned}")
            typer.echo(f"  Assigned closest:  {result.assigned_closest}")
            typer.echo(f"  Unassigned:        {result.unassigned}")
            typer.echo(f"  Failed writes:     {len(result.failed_ids)}")
    finally:
        await dispose_engine()
