"""Simplifier library — reduces boundary ring sizes before storage.

Public API:
    - simplify: Coarse spatial-key dedup over a trailing window of kept points
    - simplify_douglas_peucker: Douglas-Peucker alternative (shapely)
    - SimplifyStats: Explicit accumulator for simplification counters
"""

from osm_geocoder.lib.simplifier.simplify import (
    DEFAULT_WINDOW,
    MIN_SIMPLIFIED_SIZE,
    SimplifyStats,
    simplify,
    simplify_douglas_peucker,
)

__all__ = [
    "DEFAULT_WINDOW",
    "MIN_SIMPLIFIED_SIZE",
    "SimplifyStats",
    "simplify",
    "simplify_douglas_peucker",
]
