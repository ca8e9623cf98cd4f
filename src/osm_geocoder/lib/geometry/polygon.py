"""Polygon primitives — point-in-polygon, area, centroid and bounds.

Rings are sequences of ``GeoPoint`` (lat, lon) whose first and last entries
are equal.  Containment is tested in raw degrees: no ``cos(lat)`` correction
is applied to either the ring or the query point.
"""

from collections.abc import Iterable, Sequence

from osm_geocoder.lib.geometry.distance import calc_distance
from osm_geocoder.lib.geometry.types import BBox, GeoPoint

# Below this absolute area (degree²) the centroid formula is unstable.
DEGENERATE_AREA_EPSILON = 1e-18
# Rings whose area is below this fraction of their bounding box area are
# treated as collinear.
DEGENERATE_AREA_RATIO = 1e-9


def point_in_ring(ring: Sequence[GeoPoint], lat: float, lon: float) -> bool:
    """Ray-casting test for a single ring.

    Casts a ray toward increasing longitude and toggles on every edge
    crossing.  Points exactly on an edge may land on either side.

    Args:
        ring: Closed ring of (lat, lon) points.
        lat: Query latitude.
        lon: Query longitude.

    Returns:
        True if the point lies inside the ring.
    """
    inside = False
    size = len(ring)
    j = size - 1
    for i in range(size):
        lat_i, lon_i = ring[i]
        lat_j, lon_j = ring[j]
        if (lat_i > lat) != (lat_j > lat) and lon < (lon_j - lon_i) * (lat - lat_i) / (lat_j - lat_i) + lon_i:
            inside = not inside
        j = i
    return inside


def point_in_polygons(rings: Iterable[Sequence[GeoPoint]], lat: float, lon: float) -> bool:
    """True if the point is inside any ring (holes are not modeled)."""
    return any(point_in_ring(ring, lat, lon) for ring in rings if ring)


def calc_signed_area(ring: Sequence[GeoPoint]) -> float:
    """Shoelace area in degree², positive for counter-clockwise (lon, lat) rings."""
    area = 0.0
    for i in range(len(ring) - 1):
        lat_i, lon_i = ring[i]
        lat_n, lon_n = ring[i + 1]
        area += lon_i * lat_n - lon_n * lat_i
    return area / 2


def calc_area(ring: Sequence[GeoPoint]) -> float:
    return abs(calc_signed_area(ring))


def calc_simple_mean(ring: Sequence[GeoPoint]) -> GeoPoint | None:
    """Arithmetic mean of all ring entries, including the closing duplicate.

    Less precise than :func:`calc_centroid` for non-convex rings; kept as
    the degenerate-ring fallback.
    """
    if not ring:
        return None
    lat = sum(p.lat for p in ring)
    lon = sum(p.lon for p in ring)
    return GeoPoint(lat / len(ring), lon / len(ring))


def calc_centroid(ring: Sequence[GeoPoint]) -> GeoPoint | None:
    """Area-weighted centroid of a closed ring.

    Uses the polygon centroid formula
    ``C = 1/(6A) * Σ (p_i + p_{i+1}) * (lon_i * lat_{i+1} - lon_{i+1} * lat_i)``.
    Zero-area rings (collinear or repeated points) fall back to the
    simple mean instead of dividing by zero.  Degeneracy is judged on the
    area of the ring shifted to its first vertex: at real-world coordinates
    the raw cross products of a collinear ring cancel to a rounding residual
    around 1e-14 degree², not to zero.  A result outside the ring's bounding
    box also falls back to the simple mean.

    Args:
        ring: Closed ring of (lat, lon) points.

    Returns:
        Centroid as a GeoPoint, or None for an empty ring.
    """
    if not ring:
        return None

    origin_lat, origin_lon = ring[0]
    lat = 0.0
    lon = 0.0
    area = 0.0
    local_area = 0.0
    for i in range(len(ring) - 1):
        lat_i, lon_i = ring[i]
        lat_n, lon_n = ring[i + 1]
        cross = lon_i * lat_n - lon_n * lat_i
        area += cross
        lat += (lat_i + lat_n) * cross
        lon += (lon_i + lon_n) * cross
        local_area += (lon_i - origin_lon) * (lat_n - origin_lat) - (lon_n - origin_lon) * (lat_i - origin_lat)
    area /= 2
    local_area /= 2

    bbox = calc_bbox([ring])
    box_area = (bbox.max_lat - bbox.min_lat) * (bbox.max_lon - bbox.min_lon)
    tolerance = max(DEGENERATE_AREA_EPSILON, DEGENERATE_AREA_RATIO * box_area)
    if abs(local_area) < tolerance or abs(area) < DEGENERATE_AREA_EPSILON:
        return calc_simple_mean(ring)

    center = GeoPoint(lat / (6 * area), lon / (6 * area))
    if not bbox.contains(center.lat, center.lon):
        return calc_simple_mean(ring)
    return center


def calc_bbox(rings: Iterable[Sequence[GeoPoint]]) -> BBox:
    """Tight bounding box over all rings; inverse box when there are no points."""
    bbox = BBox.inverse()
    for ring in rings:
        for lat, lon in ring:
            bbox.extend(lat, lon)
    return bbox


def calc_middle_point(points: Sequence[GeoPoint]) -> GeoPoint | None:
    """Pick the vertex of a line closest to the midpoint of its endpoints.

    Used as the representative point of streets and other LineStrings.
    """
    if not points:
        return None

    first, last = points[0], points[-1]
    mid_lat = (first.lat + last.lat) / 2
    mid_lon = (first.lon + last.lon) / 2
    return min(points, key=lambda p: calc_distance(mid_lat, mid_lon, p.lat, p.lon))
