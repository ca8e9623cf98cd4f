"""Planar distance and coordinate validation.

Distances use an equirectangular (plane) projection: fast and accurate
enough at the regional scale boundaries are indexed at.  Not geodesic.
"""

import math

EARTH_RADIUS_METERS = 6_371_000.0


def calc_distance(from_lat: float, from_lon: float, to_lat: float, to_lon: float) -> float:
    """Return the plane-projected distance between two points in meters.

    Args:
        from_lat: Start latitude in degrees.
        from_lon: Start longitude in degrees.
        to_lat: End latitude in degrees.
        to_lon: End longitude in degrees.

    Returns:
        Distance in meters.
    """
    d_lat = math.radians(to_lat - from_lat)
    d_lon = math.radians(to_lon - from_lon)
    # longitude shrinks with the cosine of the mean latitude
    tmp = math.cos(math.radians((from_lat + to_lat) / 2)) * d_lon
    return EARTH_RADIUS_METERS * math.sqrt(d_lat * d_lat + tmp * tmp)


def validate_coordinates(lat: float, lon: float) -> None:
    """Validate that coordinates are within WGS84 bounds.

    Raises:
        ValueError: If latitude or longitude is out of range.
    """
    if not (-90 <= lat <= 90):
        msg = f"latitude must be between -90 and 90, got {lat}"
        raise ValueError(msg)
    if not (-180 <= lon <= 180):
        msg = f"longitude must be between -180 and 180, got {lon}"
        raise ValueError(msg)
