"""Geometry library — pure-Python polygon primitives for boundary lookups.

Public API:
    - GeoPoint / Ring / BBox: value types (lat, lon order)
    - to_ring / ring_to_coords: GeoJSON [lon, lat] conversion
    - point_in_ring / point_in_polygons: ray-casting containment
    - calc_signed_area / calc_area: shoelace area
    - calc_centroid / calc_simple_mean: ring centers
    - calc_bbox: bounding box accumulation
    - calc_middle_point: representative point of a line
    - calc_distance: plane-projected distance in meters
    - validate_coordinates: WGS84 range check
    - LinearKeyAlgo / SpatialKeyAlgo: tile and coarse spatial keys
"""

from osm_geocoder.lib.geometry.distance import EARTH_RADIUS_METERS, calc_distance, validate_coordinates
from osm_geocoder.lib.geometry.keys import LinearKeyAlgo, SpatialKeyAlgo
from osm_geocoder.lib.geometry.polygon import (
    DEGENERATE_AREA_EPSILON,
    DEGENERATE_AREA_RATIO,
    calc_area,
    calc_bbox,
    calc_centroid,
    calc_middle_point,
    calc_signed_area,
    calc_simple_mean,
    point_in_polygons,
    point_in_ring,
)
from osm_geocoder.lib.geometry.types import BBox, GeoPoint, Ring, ring_to_coords, to_ring

__all__ = [
    "DEGENERATE_AREA_EPSILON",
    "DEGENERATE_AREA_RATIO",
    "EARTH_RADIUS_METERS",
    "BBox",
    "GeoPoint",
    "LinearKeyAlgo",
    "Ring",
    "SpatialKeyAlgo",
    "calc_area",
    "calc_bbox",
    "calc_centroid",
    "calc_distance",
    "calc_middle_point",
    "calc_signed_area",
    "calc_simple_mean",
    "point_in_polygons",
    "point_in_ring",
    "ring_to_coords",
    "to_ring",
    "validate_coordinates",
]
