"""Geometry value types: points, rings and bounding boxes.

Coordinates are always ``(lat, lon)`` in degrees inside this package.
GeoJSON ``[lon, lat]`` pairs are converted at the loader boundary.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import NamedTuple


class GeoPoint(NamedTuple):
    """A latitude/longitude pair in degrees."""

    lat: float
    lon: float


Ring = tuple[GeoPoint, ...]


def to_ring(coords: Iterable[Sequence[float]]) -> Ring:
    """Convert GeoJSON ``[lon, lat]`` positions into a ring of GeoPoints."""
    return tuple(GeoPoint(float(c[1]), float(c[0])) for c in coords)


def ring_to_coords(ring: Sequence[GeoPoint]) -> list[list[float]]:
    """Convert a ring back into GeoJSON ``[lon, lat]`` positions."""
    return [[p.lon, p.lat] for p in ring]


@dataclass
class BBox:
    """Axis-aligned bounding box in degrees.

    Start from :meth:`inverse` and :meth:`extend` with every point to
    accumulate a tight bound.
    """

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @classmethod
    def inverse(cls) -> BBox:
        """Return an empty accumulator (min = +inf, max = -inf)."""
        return cls(math.inf, -math.inf, math.inf, -math.inf)

    @classmethod
    def parse(cls, value: str) -> BBox:
        """Parse ``"min_lon,min_lat,max_lon,max_lat"`` (GeoJSON bbox order).

        Raises:
            ValueError: If the value does not hold four numbers or min > max.
        """
        parts = [p.strip() for p in value.split(",")]
        if len(parts) != 4:
            msg = f"Expected 'min_lon,min_lat,max_lon,max_lat', got {value!r}"
            raise ValueError(msg)
        min_lon, min_lat, max_lon, max_lat = (float(p) for p in parts)
        bbox = cls(min_lat, max_lat, min_lon, max_lon)
        if not bbox.is_valid():
            msg = f"Bounding box minimum exceeds maximum: {value!r}"
            raise ValueError(msg)
        return bbox

    def extend(self, lat: float, lon: float) -> None:
        if lat < self.min_lat:
            self.min_lat = lat
        if lat > self.max_lat:
            self.max_lat = lat
        if lon < self.min_lon:
            self.min_lon = lon
        if lon > self.max_lon:
            self.max_lon = lon

    def union(self, other: BBox) -> BBox:
        """Return a new box covering both boxes."""
        return BBox(
            min(self.min_lat, other.min_lat),
            max(self.max_lat, other.max_lat),
            min(self.min_lon, other.min_lon),
            max(self.max_lon, other.max_lon),
        )

    def is_valid(self) -> bool:
        """True once at least one point has been accumulated."""
        return self.min_lat <= self.max_lat and self.min_lon <= self.max_lon

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

    def copy(self) -> BBox:
        return BBox(self.min_lat, self.max_lat, self.min_lon, self.max_lon)
