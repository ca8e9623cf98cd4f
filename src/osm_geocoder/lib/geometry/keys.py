"""Integer keys for coordinates.

``LinearKeyAlgo`` maps a point to its tile in a rows x cols grid laid over
a fixed bounding box (row-major).  ``SpatialKeyAlgo`` is a coarse z-order
key over the whole globe, used to detect nearby points while simplifying
rings.
"""

from osm_geocoder.lib.geometry.types import BBox, GeoPoint


class LinearKeyAlgo:
    """Row-major tile keys over a bounding box.

    Points outside the bounds are clamped to the nearest edge tile, so every
    input maps to a valid key in ``[0, lat_units * lon_units)``.
    """

    def __init__(self, lat_units: int, lon_units: int, bounds: BBox) -> None:
        if lat_units < 1 or lon_units < 1:
            msg = f"Tile counts must be positive, got {lat_units}x{lon_units}"
            raise ValueError(msg)
        if not bounds.is_valid():
            msg = f"Invalid bounds for tile keys: {bounds}"
            raise ValueError(msg)
        self.lat_units = lat_units
        self.lon_units = lon_units
        self.bounds = bounds.copy()
        self.delta_lat = (bounds.max_lat - bounds.min_lat) / lat_units
        self.delta_lon = (bounds.max_lon - bounds.min_lon) / lon_units

    @property
    def key_count(self) -> int:
        return self.lat_units * self.lon_units

    def _index(self, value: float, minimum: float, delta: float, units: int) -> int:
        if delta <= 0:
            return 0
        index = int((value - minimum) / delta)
        return min(max(index, 0), units - 1)

    def row_col(self, lat: float, lon: float) -> tuple[int, int]:
        """Return the (row, col) tile coordinates for a point, clamped to the grid."""
        row = self._index(lat, self.bounds.min_lat, self.delta_lat, self.lat_units)
        col = self._index(lon, self.bounds.min_lon, self.delta_lon, self.lon_units)
        return row, col

    def key_of(self, row: int, col: int) -> int:
        return row * self.lon_units + col

    def encode(self, lat: float, lon: float) -> int:
        row, col = self.row_col(lat, lon)
        return self.key_of(row, col)

    def decode(self, key: int) -> GeoPoint:
        """Return the center point of the tile with the given key."""
        if not 0 <= key < self.key_count:
            msg = f"Tile key {key} out of range [0, {self.key_count})"
            raise ValueError(msg)
        row, col = divmod(key, self.lon_units)
        return GeoPoint(
            self.bounds.min_lat + (row + 0.5) * self.delta_lat,
            self.bounds.min_lon + (col + 0.5) * self.delta_lon,
        )


class SpatialKeyAlgo:
    """Z-order (bit-interleaved) key over the world bounds.

    ``bits`` is the total key length; each axis gets ``bits // 2`` bits, so
    a larger value means smaller cells.  With 40 bits a cell is roughly
    0.00017° of latitude by 0.00034° of longitude.
    """

    def __init__(self, bits: int) -> None:
        if not 2 <= bits <= 62:
            msg = f"Spatial key resolution must be between 2 and 62 bits, got {bits}"
            raise ValueError(msg)
        self.bits = bits - bits % 2
        self._axis_bits = self.bits // 2
        self._cells = 1 << self._axis_bits

    def _cell(self, value: float, minimum: float, span: float) -> int:
        cell = int((value - minimum) / span * self._cells)
        return min(max(cell, 0), self._cells - 1)

    def encode(self, lat: float, lon: float) -> int:
        lat_cell = self._cell(lat, -90.0, 180.0)
        lon_cell = self._cell(lon, -180.0, 360.0)
        key = 0
        for bit in range(self._axis_bits - 1, -1, -1):
            key = (key << 1) | ((lat_cell >> bit) & 1)
            key = (key << 1) | ((lon_cell >> bit) & 1)
        return key
