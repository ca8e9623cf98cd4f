"""Place loader library — reads OSM-derived GeoJSON into place documents.

Public API:
    - load_places: Auto-detect format and parse a place file
    - read_places: Direct GeoJSON reader
    - feature_to_place: Convert a single GeoJSON feature
    - parse_is_in: Split an OSM is_in tag into names
    - PlaceRecord: Parsed place (id + document)
    - SimplifyOptions: Boundary ring simplification options
"""

from pathlib import Path

from osm_geocoder.lib.place_loader.geojson import (
    PlaceRecord,
    SimplifyOptions,
    feature_to_place,
    is_boundary_feature,
    parse_is_in,
    read_places,
)


def load_places(file_path: Path, options: SimplifyOptions | None = None) -> list[PlaceRecord]:
    """Load places from a file with format detection by suffix.

    Supports .geojson and .json (GeoJSON) files.

    Raises:
        ValueError: If the file format is not supported.
    """
    suffix = file_path.suffix.lower()
    if suffix in (".geojson", ".json"):
        return read_places(file_path, options)

    msg = f"Unsupported place file format: {suffix}. Supported: .geojson, .json"
    raise ValueError(msg)


__all__ = [
    "PlaceRecord",
    "SimplifyOptions",
    "feature_to_place",
    "is_boundary_feature",
    "load_places",
    "parse_is_in",
    "read_places",
]
