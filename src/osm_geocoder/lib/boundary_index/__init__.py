"""Boundary index library — tiled containment and nearest-center lookups.

Public API:
    - BoundaryIndex: Tiled spatial index over boundary records
    - Info: Immutable boundary record (rings, center, is_in, bbox, area)
    - MalformedGeometryError: Raised for unclosed or too-small rings
    - bbox_of_records: Union bounding box of a record collection
"""

from collections.abc import Iterable

from osm_geocoder.lib.boundary_index.index import BoundaryIndex
from osm_geocoder.lib.boundary_index.info import MIN_RING_SIZE, Info, MalformedGeometryError
from osm_geocoder.lib.geometry import BBox


def bbox_of_records(records: Iterable[Info]) -> BBox:
    """Return the union of all record bounds (inverse box when empty)."""
    bbox = BBox.inverse()
    for info in records:
        if info.bbox.is_valid():
            bbox = bbox.union(info.bbox)
    return bbox


__all__ = [
    "MIN_RING_SIZE",
    "BoundaryIndex",
    "Info",
    "MalformedGeometryError",
    "bbox_of_records",
]
