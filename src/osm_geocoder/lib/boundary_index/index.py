"""Tiled spatial index over boundary records.

Lookups run in two phases: a coarse filter collects the records stored in
the tiles around the query point, then each candidate is confirmed with the
exact point-in-polygon test.  A record is stored in every tile one of its
vertices falls into, so a polygon much larger than a tile can be missed when
all of its vertices are far from the query; callers fall back to
:meth:`BoundaryIndex.search_closest` when nothing matches.

The index holds references to records owned by the caller.  Build it with
``add`` from a single thread, then query it freely.
"""

from collections.abc import Iterator

from osm_geocoder.lib.boundary_index.info import Info
from osm_geocoder.lib.geometry import BBox, LinearKeyAlgo, calc_distance


class BoundaryIndex:
    """Uniform grid of tiles mapping to the boundary records touching them.

    Args:
        bbox: Region covered by the grid.  Points outside it are clamped to
            the edge tiles.
        tile_width_meters: Target real-world width of one tile.
        neighborhood: Number of tiles scanned in each direction around the
            query tile (1 scans a 3x3 block).

    Raises:
        ValueError: If ``tile_width_meters`` is not positive, ``neighborhood``
            is negative or ``bbox`` holds no points.
    """

    def __init__(self, bbox: BBox, tile_width_meters: float, neighborhood: int = 1) -> None:
        if tile_width_meters <= 0:
            msg = f"tile_width_meters must be positive, got {tile_width_meters}"
            raise ValueError(msg)
        if neighborhood < 0:
            msg = f"neighborhood must not be negative, got {neighborhood}"
            raise ValueError(msg)
        if not bbox.is_valid():
            msg = f"Cannot build an index over an empty bounding box: {bbox}"
            raise ValueError(msg)

        lat_distance = calc_distance(bbox.min_lat, bbox.min_lon, bbox.max_lat, bbox.min_lon)
        lon_distance = calc_distance(bbox.min_lat, bbox.min_lon, bbox.min_lat, bbox.max_lon)
        lat_tiles = max(1, int(lat_distance / tile_width_meters))
        lon_tiles = max(1, int(lon_distance / tile_width_meters))

        self._key_algo = LinearKeyAlgo(lat_tiles, lon_tiles, bbox)
        self._tiles: list[list[Info] | None] = [None] * self._key_algo.key_count
        self._neighborhood = neighborhood
        self._size = 0

    @property
    def bbox(self) -> BBox:
        return self._key_algo.bounds.copy()

    @property
    def lat_tiles(self) -> int:
        return self._key_algo.lat_units

    @property
    def lon_tiles(self) -> int:
        return self._key_algo.lon_units

    @property
    def tile_count(self) -> int:
        return self._key_algo.key_count

    @property
    def delta_lat(self) -> float:
        """Height of one tile in degrees."""
        return self._key_algo.delta_lat

    @property
    def delta_lon(self) -> float:
        """Width of one tile in degrees."""
        return self._key_algo.delta_lon

    def add(self, info: Info) -> None:
        """Store a record in every tile one of its vertices falls into.

        Each tile receives the record at most once.  A record without rings
        is stored in the tile of its center.  Adding the same record twice
        stores it twice.
        """
        keys = {self._key_algo.encode(lat, lon) for ring in info.polygons for lat, lon in ring}
        if not keys:
            keys.add(self._key_algo.encode(info.center.lat, info.center.lon))
        for key in keys:
            bucket = self._tiles[key]
            if bucket is None:
                bucket = []
                self._tiles[key] = bucket
            bucket.append(info)
        self._size += 1

    def size(self) -> int:
        """Number of records added."""
        return self._size

    def __len__(self) -> int:
        return self._size

    def tile_records(self, key: int) -> list[Info]:
        """Records stored in a tile (empty list when the tile was never used)."""
        return list(self._tiles[key] or ())

    def _candidates(self, lat: float, lon: float) -> Iterator[Info]:
        row, col = self._key_algo.row_col(lat, lon)
        n = self._neighborhood
        rows = range(max(row - n, 0), min(row + n, self.lat_tiles - 1) + 1)
        cols = range(max(col - n, 0), min(col + n, self.lon_tiles - 1) + 1)
        for r in rows:
            for c in cols:
                bucket = self._tiles[self._key_algo.key_of(r, c)]
                if bucket:
                    yield from bucket

    def search_containing(self, lat: float, lon: float) -> set[Info]:
        """Return all records whose polygons contain the point.

        An empty set is a normal result for points outside every stored
        boundary.
        """
        result: set[Info] = set()
        checked: set[int] = set()
        for info in self._candidates(lat, lon):
            if id(info) in checked:
                continue
            checked.add(id(info))
            if info.contains(lat, lon):
                result.add(info)
        return result

    def search_closest(self, lat: float, lon: float, max_distance: float) -> Info | None:
        """Return the record whose center is nearest to the point.

        Only records stored in the scanned tile neighborhood are considered.

        Args:
            lat: Query latitude.
            lon: Query longitude.
            max_distance: Maximum accepted distance in meters.

        Returns:
            The closest record, or None if none lies within ``max_distance``.
        """
        closest: Info | None = None
        distance = float("inf")
        for info in self._candidates(lat, lon):
            tmp_distance = info.calculate_distance(lat, lon)
            if tmp_distance < distance:
                distance = tmp_distance
                closest = info
        if distance > max_distance:
            return None
        return closest
