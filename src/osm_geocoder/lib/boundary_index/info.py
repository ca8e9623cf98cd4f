"""Boundary record — one administrative area's rings and metadata."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from osm_geocoder.lib.geometry import (
    BBox,
    GeoPoint,
    Ring,
    calc_area,
    calc_bbox,
    calc_distance,
    point_in_polygons,
)

MIN_RING_SIZE = 4


class MalformedGeometryError(ValueError):
    """Raised when a boundary ring is not closed or has too few points."""


@dataclass(frozen=True, eq=False)
class Info:
    """Immutable boundary record used by :class:`BoundaryIndex`.

    Equality and hashing are by identity: two records with the same rings
    are still distinct boundaries.  Rings may be passed as any sequence of
    ``(lat, lon)`` pairs and are normalized to tuples of GeoPoint.  ``bbox``
    and ``area`` are computed once at construction.

    Attributes:
        id: Opaque identifier used for tracing (e.g. ``"osmnode/1|osmrelation/2"``).
        center: Representative point, usually the admin centre node.
        polygons: Outer rings; holes are not modeled.
        is_in: Ancestor names, outermost last as supplied by the source.
        bbox: Tight bounds of all rings.
        area: Sum of absolute ring areas in degree².

    Raises:
        MalformedGeometryError: If any ring is not closed or has fewer than
            four entries (three distinct points plus the closing one).
    """

    id: str
    center: GeoPoint
    polygons: Sequence[Ring] = field(repr=False)
    is_in: Sequence[str] = ()
    bbox: BBox = field(init=False, repr=False)
    area: float = field(init=False)

    def __post_init__(self) -> None:
        rings = tuple(tuple(GeoPoint(float(p[0]), float(p[1])) for p in ring) for ring in self.polygons)
        for index, ring in enumerate(rings):
            if len(ring) < MIN_RING_SIZE:
                msg = f"Ring {index} of {self.id} has {len(ring)} points, at least {MIN_RING_SIZE} required"
                raise MalformedGeometryError(msg)
            if ring[0] != ring[-1]:
                msg = f"Ring {index} of {self.id} should start and end with the same point"
                raise MalformedGeometryError(msg)

        object.__setattr__(self, "center", GeoPoint(float(self.center[0]), float(self.center[1])))
        object.__setattr__(self, "polygons", rings)
        object.__setattr__(self, "is_in", tuple(self.is_in))
        object.__setattr__(self, "bbox", calc_bbox(rings))
        object.__setattr__(self, "area", sum(calc_area(ring) for ring in rings))

    def contains(self, lat: float, lon: float) -> bool:
        """True if the point lies inside any of the record's rings."""
        if not self.bbox.contains(lat, lon):
            return False
        return point_in_polygons(self.polygons, lat, lon)

    def calculate_distance(self, lat: float, lon: float) -> float:
        """Planar distance in meters from ``center`` to the given point."""
        return calc_distance(self.center.lat, self.center.lon, lat, lon)

    def __str__(self) -> str:
        return f"{self.id} {tuple(self.center)} {list(self.is_in)}"
