"""GeoJSON reader — turns OSM-derived features into place documents."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from loguru import logger
from shapely.errors import ShapelyError
from shapely.geometry import LineString, MultiLineString, MultiPolygon, Point, Polygon, shape

from osm_geocoder.lib.geometry import (
    GeoPoint,
    Ring,
    calc_area,
    calc_centroid,
    calc_middle_point,
    ring_to_coords,
    to_ring,
)
from osm_geocoder.lib.simplifier import SimplifyStats, simplify, simplify_douglas_peucker

# Properties handled explicitly; everything else is copied as-is.
_RESERVED_PROPERTIES = {"id", "name", "title", "is_in", "admin_centre", "center_node", "has_boundary"}


@dataclass
class SimplifyOptions:
    """How boundary rings are simplified before they are stored."""

    method: Literal["key", "douglas_peucker", "none"] = "key"
    min_size: int = 25
    key_resolution: int = 40
    window: int = 3
    tolerance: float = 0.0001
    stats: SimplifyStats = field(default_factory=SimplifyStats)

    def apply(self, ring: Ring) -> Ring:
        if self.method == "key":
            return tuple(simplify(ring, self.min_size, self.key_resolution, self.window, self.stats))
        if self.method == "douglas_peucker":
            return tuple(simplify_douglas_peucker(ring, self.min_size, self.tolerance, self.stats))
        return ring


@dataclass
class PlaceRecord:
    """A parsed place ready for the document store."""

    id: str
    document: dict[str, Any]


def parse_is_in(value: object) -> list[str]:
    """Split an OSM ``is_in`` tag into ancestor names.

    Semicolons separate values when present, commas otherwise.  Lists are
    passed through with blank entries removed.
    """
    if value is None:
        return []
    if isinstance(value, list | tuple):
        parts = [str(v) for v in value]
    else:
        text = str(value)
        parts = text.split(";") if ";" in text else text.split(",")
    return [p.strip() for p in parts if p.strip()]


def is_boundary_feature(props: dict[str, Any]) -> bool:
    """True for administrative boundaries (tagged boundary or admin_level)."""
    return props.get("boundary") == "administrative" or props.get("admin_level") is not None


def _outer_rings(geom: MultiPolygon) -> list[Ring]:
    # interior rings (holes) are dropped
    return [to_ring(polygon.exterior.coords) for polygon in geom.geoms if not polygon.is_empty]


def _center_of(geom: Any) -> GeoPoint | None:
    if isinstance(geom, Point):
        return GeoPoint(geom.y, geom.x)
    if isinstance(geom, LineString):
        return calc_middle_point(to_ring(geom.coords))
    if isinstance(geom, MultiLineString):
        longest = max(geom.geoms, key=lambda line: line.length)
        return calc_middle_point(to_ring(longest.coords))
    if isinstance(geom, MultiPolygon):
        rings = _outer_rings(geom)
        if not rings:
            return None
        return calc_centroid(max(rings, key=calc_area))
    return None


def feature_to_place(feature: dict[str, Any], index: int, options: SimplifyOptions) -> PlaceRecord | None:
    """Convert one GeoJSON feature into a place record.

    Args:
        feature: GeoJSON Feature dict.
        index: Position in the collection, used in log messages.
        options: Boundary ring simplification options.

    Returns:
        The place record, or None when the feature has no usable geometry
        or id.
    """
    props = feature.get("properties", {}) or {}
    doc_id = feature.get("id") or props.get("id")
    if not doc_id:
        logger.warning(f"Skipping feature {index} without id")
        return None
    doc_id = str(doc_id)

    geom_data = feature.get("geometry")
    if not geom_data:
        logger.warning(f"Skipping feature {doc_id} without geometry")
        return None

    try:
        geom = shape(geom_data)
    except (ShapelyError, ValueError, TypeError) as e:
        logger.warning(f"Skipping {doc_id}: malformed geometry: {e}")
        return None
    if isinstance(geom, Polygon):
        geom = MultiPolygon([geom])
    elif not isinstance(geom, Point | LineString | MultiLineString | MultiPolygon):
        logger.warning(f"Skipping {doc_id}: unsupported geometry type {geom.geom_type}")
        return None
    if geom.is_empty:
        logger.warning(f"Skipping {doc_id}: empty geometry")
        return None

    center = _center_of(geom)
    if center is None:
        logger.warning(f"Skipping {doc_id}: cannot determine a center")
        return None

    document: dict[str, Any] = {k: v for k, v in props.items() if k not in _RESERVED_PROPERTIES}
    name = props.get("name") or props.get("title")
    if name:
        document["name"] = str(name)
    document["center"] = [center.lon, center.lat]

    is_in = parse_is_in(props.get("is_in"))
    if is_in:
        document["is_in"] = is_in

    center_node = props.get("center_node") or props.get("admin_centre")
    if center_node is not None:
        document["center_node"] = str(center_node)

    has_boundary = isinstance(geom, MultiPolygon) and is_boundary_feature(props)
    document["has_boundary"] = has_boundary
    if has_boundary:
        if not geom.is_valid:
            logger.warning(f"Boundary {doc_id} has invalid geometry, storing it unchanged")
        rings = [options.apply(ring) for ring in _outer_rings(geom)]
        document["bounds"] = {
            "type": "MultiPolygon",
            "coordinates": [[ring_to_coords(ring)] for ring in rings],
        }

    return PlaceRecord(id=doc_id, document=document)


def read_places(file_path: Path, options: SimplifyOptions | None = None) -> list[PlaceRecord]:
    """Read a GeoJSON FeatureCollection and return place records.

    Args:
        file_path: Path to .geojson or .json file.
        options: Boundary simplification options (defaults apply when None).

    Returns:
        List of PlaceRecord objects.

    Raises:
        ValueError: If the file is not a FeatureCollection or has no features.
    """
    logger.info(f"Reading GeoJSON: {file_path}")
    options = options or SimplifyOptions()

    with file_path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if data.get("type") != "FeatureCollection":
        msg = f"Expected FeatureCollection, got {data.get('type')}"
        raise ValueError(msg)

    features = data.get("features", [])
    if not features:
        msg = f"GeoJSON has no features: {file_path}"
        raise ValueError(msg)

    places: list[PlaceRecord] = []
    for i, feature in enumerate(features):
        place = feature_to_place(feature, i, options)
        if place is not None:
            places.append(place)

    stats = options.stats
    logger.info(
        f"Parsed {len(places)} places from GeoJSON; "
        f"simplified {stats.simplified}/{stats.rings} boundary rings ({stats.reduction:.1%} fewer points)"
    )
    return places
