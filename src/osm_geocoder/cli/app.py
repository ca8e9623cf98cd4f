"""Typer CLI root application."""

import typer

from osm_geocoder.core.config import get_settings
from osm_geocoder.core.logging import setup_logging

app = typer.Typer(name="osm-geocoder", help="OpenStreetMap place import and is_in relationship tooling")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


def _register_subcommands() -> None:
    """Register all CLI subcommands."""
    from osm_geocoder.cli.db_cmd import db_app
    from osm_geocoder.cli.fix_cmd import fix_relations
    from osm_geocoder.cli.import_cmd import import_places
    from osm_geocoder.cli.lookup_cmd import lookup

    app.add_typer(db_app, name="db", help="Database commands")
    app.command("import")(import_places)
    app.command("fix-relations")(fix_relations)
    app.command("lookup")(lookup)


_register_subcommands()
