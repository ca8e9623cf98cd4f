"""Ring simplification before boundary polygons are stored.

The primary method walks a ring and drops points whose coarse spatial key
matches one of the last few kept keys.  It is lossy and depends on the
traversal direction; self-intersections are possible.  A Douglas-Peucker
alternative backed by shapely is provided as well.
"""

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass

from shapely.geometry import LineString

from osm_geocoder.lib.geometry import GeoPoint, SpatialKeyAlgo

MIN_SIMPLIFIED_SIZE = 4
DEFAULT_WINDOW = 3


@dataclass
class SimplifyStats:
    """Running counters across simplified rings.

    Attributes:
        rings: Rings passed to a simplifier.
        simplified: Rings that were actually replaced by a smaller ring.
        reverted: Rings where simplification went below four points and the
            original was kept.
        points_in: Total input points.
        points_out: Total output points.
    """

    rings: int = 0
    simplified: int = 0
    reverted: int = 0
    points_in: int = 0
    points_out: int = 0

    @property
    def reduction(self) -> float:
        """Fraction of points removed, 0.0 when nothing was processed."""
        if self.points_in == 0:
            return 0.0
        return 1 - self.points_out / self.points_in

    def record(self, original: Sequence[GeoPoint], result: Sequence[GeoPoint], *, reverted: bool = False) -> None:
        self.rings += 1
        self.points_in += len(original)
        self.points_out += len(result)
        if reverted:
            self.reverted += 1
        elif len(result) < len(original):
            self.simplified += 1


def _finish(
    ring: Sequence[GeoPoint],
    result: list[GeoPoint],
    stats: SimplifyStats | None,
) -> Sequence[GeoPoint]:
    if len(result) < MIN_SIMPLIFIED_SIZE:
        if stats is not None:
            stats.record(ring, ring, reverted=True)
        return ring
    if stats is not None:
        stats.record(ring, result)
    return tuple(result)


def simplify(
    ring: Sequence[GeoPoint],
    min_size: int,
    key_resolution: int,
    window: int = DEFAULT_WINDOW,
    stats: SimplifyStats | None = None,
) -> Sequence[GeoPoint]:
    """Drop ring points that share a coarse spatial key with recent points.

    Args:
        ring: Closed ring of (lat, lon) points.
        min_size: Rings with fewer points are returned unchanged.
        key_resolution: Bits of the coarse spatial key; fewer bits merge
            more points.
        window: How many of the most recently kept keys a point is compared
            against.
        stats: Optional accumulator updated with the outcome.

    Returns:
        The simplified ring, or the input ring itself when it is below
        ``min_size`` or the result would have fewer than four points.
    """
    if len(ring) < min_size:
        if stats is not None:
            stats.record(ring, ring)
        return ring

    key_algo = SpatialKeyAlgo(key_resolution)
    last = len(ring) - 1
    recent: deque[int] = deque(maxlen=max(window, 1))
    result: list[GeoPoint] = []
    for index, point in enumerate(ring):
        key = key_algo.encode(point.lat, point.lon)
        if 0 < index < last and key in recent:
            continue
        result.append(point)
        recent.append(key)

    return _finish(ring, result, stats)


def simplify_douglas_peucker(
    ring: Sequence[GeoPoint],
    min_size: int,
    tolerance: float,
    stats: SimplifyStats | None = None,
) -> Sequence[GeoPoint]:
    """Douglas-Peucker simplification of a ring via shapely.

    Args:
        ring: Closed ring of (lat, lon) points.
        min_size: Rings with fewer points are returned unchanged.
        tolerance: Maximum deviation in degrees.
        stats: Optional accumulator updated with the outcome.

    Returns:
        The simplified ring, or the input ring itself when it is below
        ``min_size`` or the result would have fewer than four points.
    """
    if len(ring) < min_size:
        if stats is not None:
            stats.record(ring, ring)
        return ring

    line = LineString([(p.lon, p.lat) for p in ring])
    simplified = line.simplify(tolerance, preserve_topology=False)
    result = [GeoPoint(lat, lon) for lon, lat in simplified.coords]
    if result and result[0] != result[-1]:
        result.append(result[0])
    return _finish(ring, result, stats)
