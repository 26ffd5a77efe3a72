"""
Slippy-map tile geodesy.

Converts between longitude/latitude and tile indices for the standard
power-of-two Web Mercator tiling scheme, and computes the ground distance
covered by one tile pixel.

Tiling scheme:
    - Zoom z splits the globe into 2^z × 2^z square tiles
    - x grows eastward from -180°, y grows southward from ~85.05°N
    - A nominal tile is 256 pixels wide; "@2x" tiles carry 512 pixels

Usage::

    from src.terrain.geodesy import GeoBounds, tile_range, grid_bounds

    bounds = GeoBounds(south=41.35, west=-111.82, north=41.42, east=-111.73)
    tiles = tile_range(bounds, zoom=14)
    print(tiles.cols, tiles.rows)
    print(grid_bounds(bounds, zoom=14))
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterator, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

# Earth's mean equatorial circumference in meters
EARTH_CIRCUMFERENCE = 40075016.686

# Pixels per nominal (1x) tile
TILE_PIXELS = 256

TileIndex = Union[int, float]


@dataclass(frozen=True)
class GeoBounds:
    """
    Geographic bounding box in WGS84 degrees.

    Attributes:
        south: Latitude of the southwest corner
        west: Longitude of the southwest corner
        north: Latitude of the northeast corner
        east: Longitude of the northeast corner
    """

    south: float
    west: float
    north: float
    east: float

    def __post_init__(self):
        """Validate that southwest is strictly south-and-west of northeast."""
        if not (self.south < self.north and self.west < self.east):
            raise ValueError(
                "Invalid bounds: southwest corner must be strictly south and west of "
                f"northeast. Got sw=({self.south}, {self.west}) ne=({self.north}, {self.east})"
            )

    @classmethod
    def from_tuple(cls, bbox: Tuple[float, float, float, float]) -> "GeoBounds":
        """Build from a (south, west, north, east) tuple."""
        if len(bbox) != 4:
            raise ValueError("bbox must have 4 values (south, west, north, east)")
        south, west, north, east = bbox
        return cls(south=south, west=west, north=north, east=east)

    @property
    def mid_lat(self) -> float:
        return (self.south + self.north) / 2


@dataclass(frozen=True)
class TileCoord:
    """Integer tile index (x, y) at a zoom level."""

    x: TileIndex
    y: TileIndex
    zoom: int


@dataclass(frozen=True)
class TileRange:
    """
    Inclusive rectangular range of tiles covering a bounding box.

    Tiles are addressed by their (col, row) offset from the minimum
    (north-west) tile of the range.
    """

    min_x: int
    max_x: int
    min_y: int
    max_y: int
    zoom: int

    @property
    def cols(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def rows(self) -> int:
        return self.max_y - self.min_y + 1

    def __len__(self) -> int:
        return self.cols * self.rows

    def __iter__(self) -> Iterator[TileCoord]:
        """Iterate tile coordinates in row-major order."""
        for ty in range(self.min_y, self.max_y + 1):
            for tx in range(self.min_x, self.max_x + 1):
                yield TileCoord(tx, ty, self.zoom)

    def offset(self, coord: TileCoord) -> Tuple[int, int]:
        """Return the (col, row) offset of a tile within this range."""
        return coord.x - self.min_x, coord.y - self.min_y


def _as_index(value: float) -> TileIndex:
    # NaN from out-of-domain input is passed through instead of raising
    return int(value) if np.isfinite(value) else float(value)


def lon_lat_to_tile(lon: float, lat: float, zoom: int) -> TileCoord:
    """
    Convert a longitude/latitude to the slippy-map tile containing it.

    Callers must supply lon in [-180, 180] and lat in (-90, 90). Outside that
    domain the result carries NaN indices.

    Args:
        lon: Longitude in decimal degrees
        lat: Latitude in decimal degrees
        zoom: Tile zoom level

    Returns:
        TileCoord of the containing tile

    Examples:
        >>> lon_lat_to_tile(0.0, 0.0, 1)
        TileCoord(x=1, y=1, zoom=1)
    """
    n = 2.0 ** zoom
    with np.errstate(invalid="ignore", divide="ignore"):
        lat_rad = np.radians(np.float64(lat))
        x = np.floor((np.float64(lon) + 180.0) / 360.0 * n)
        y = np.floor(
            (1.0 - np.log(np.tan(lat_rad) + 1.0 / np.cos(lat_rad)) / np.pi) / 2.0 * n
        )
    return TileCoord(_as_index(x), _as_index(y), zoom)


def tile_to_bounds(x: int, y: int, zoom: int) -> Dict[str, float]:
    """
    Get the geographic footprint of a tile.

    Args:
        x: Tile column
        y: Tile row
        zoom: Tile zoom level

    Returns:
        Dictionary with lon_min, lon_max, lat_min, lat_max in degrees
    """
    n = 2.0 ** zoom
    lon_min = x / n * 360.0 - 180.0
    lon_max = (x + 1) / n * 360.0 - 180.0
    lat_max_rad = math.atan(math.sinh(math.pi * (1 - 2 * y / n)))
    lat_min_rad = math.atan(math.sinh(math.pi * (1 - 2 * (y + 1) / n)))
    return {
        "lon_min": lon_min,
        "lon_max": lon_max,
        "lat_min": math.degrees(lat_min_rad),
        "lat_max": math.degrees(lat_max_rad),
    }


def cell_size_meters(zoom: int, lat: float, resolution: int = 1) -> float:
    """
    Ground distance covered by one tile pixel.

    Args:
        zoom: Tile zoom level
        lat: Latitude in degrees where the distance is measured
        resolution: Pixel density multiplier of the tiles (2 for @2x tiles)

    Returns:
        Meters per pixel
    """
    nominal = EARTH_CIRCUMFERENCE * math.cos(math.radians(lat)) / (TILE_PIXELS * 2 ** zoom)
    return nominal / resolution


def tile_range(bounds: GeoBounds, zoom: int) -> TileRange:
    """
    Compute the rectangular range of tiles covering a bounding box.

    Args:
        bounds: Area of interest
        zoom: Tile zoom level

    Returns:
        TileRange spanning the southwest and northeast corner tiles
    """
    sw = lon_lat_to_tile(bounds.west, bounds.south, zoom)
    ne = lon_lat_to_tile(bounds.east, bounds.north, zoom)

    tiles = TileRange(
        min_x=min(sw.x, ne.x),
        max_x=max(sw.x, ne.x),
        min_y=min(sw.y, ne.y),
        max_y=max(sw.y, ne.y),
        zoom=zoom,
    )
    logger.debug(
        f"Tile range z{zoom}: x {tiles.min_x}-{tiles.max_x}, y {tiles.min_y}-{tiles.max_y} "
        f"({tiles.cols}x{tiles.rows} tiles)"
    )
    return tiles


def grid_bounds(bounds: GeoBounds, zoom: int) -> Dict[str, float]:
    """
    Geographic footprint of the stitched tile grid covering a bounding box.

    Tiles are whole units, so this always contains the requested bounds. The
    overlay image is registered against this rectangle, not the request.

    Args:
        bounds: Requested area of interest
        zoom: Tile zoom level

    Returns:
        Dictionary with north, south, east, west in degrees
    """
    tiles = tile_range(bounds, zoom)
    top_left = tile_to_bounds(tiles.min_x, tiles.min_y, zoom)
    bottom_right = tile_to_bounds(tiles.max_x, tiles.max_y, zoom)
    return {
        "north": top_left["lat_max"],
        "south": bottom_right["lat_min"],
        "east": bottom_right["lon_max"],
        "west": top_left["lon_min"],
    }
