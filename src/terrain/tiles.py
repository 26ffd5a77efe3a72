"""
Terrain-RGB elevation tiles.

Fetches raw Terrain-RGB tiles and decodes them into elevation grids.

Encoding:
    elevation = -10000 + (R * 256 * 256 + G * 256 + B) * 0.1   (meters)

Only this encoding is supported. A payload that cannot be decoded fails the
whole tile; there is no partial-tile recovery.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import requests
from PIL import Image, UnidentifiedImageError

from src import config
from src.terrain.geodesy import TileCoord

logger = logging.getLogger(__name__)

ELEVATION_OFFSET = -10000.0
ELEVATION_SCALE = 0.1


class TileFetchError(RuntimeError):
    """Raised when a tile cannot be retrieved from the tile server."""


class TileDecodeError(ValueError):
    """Raised when a tile payload is malformed or undersized."""


@dataclass(frozen=True)
class ElevationTile:
    """Decoded square tile of elevations in meters."""

    elevations: np.ndarray
    size: int


def decode_rgb_elevation(rgb: np.ndarray) -> np.ndarray:
    """
    Apply the Terrain-RGB affine decode to an (H, W, 3) channel array.

    Args:
        rgb: Array of R, G, B channels in [0, 255]

    Returns:
        Float32 elevation array of shape (H, W)
    """
    channels = rgb.astype(np.float64)
    encoded = channels[..., 0] * 65536.0 + channels[..., 1] * 256.0 + channels[..., 2]
    return (ELEVATION_OFFSET + encoded * ELEVATION_SCALE).astype(np.float32)


def decode_terrain_rgb(payload: bytes, expected_size: Optional[int] = None) -> ElevationTile:
    """
    Decode one Terrain-RGB tile payload into an elevation grid.

    Args:
        payload: Raw PNG bytes as served by the tile server
        expected_size: Required side length in pixels (e.g. 512 for @2x
            tiles). If None, any square size is accepted.

    Returns:
        ElevationTile with a (size, size) float32 elevation array

    Raises:
        TileDecodeError: If the payload is empty, unreadable, not square, or
            smaller than expected_size
    """
    if not payload:
        raise TileDecodeError("Empty tile payload")

    try:
        with Image.open(io.BytesIO(payload)) as img:
            rgb = np.asarray(img.convert("RGB"))
    except (UnidentifiedImageError, OSError) as e:
        raise TileDecodeError(f"Unreadable tile payload: {e}") from e

    height, width = rgb.shape[:2]
    if height != width:
        raise TileDecodeError(f"Tile is not square: {width}x{height}")
    if expected_size is not None and width < expected_size:
        raise TileDecodeError(f"Tile too small: {width}px, expected {expected_size}px")

    return ElevationTile(elevations=decode_rgb_elevation(rgb), size=width)


class MapboxTileFetcher:
    """
    Fetches raw Terrain-RGB tiles from the Mapbox tile API.

    Attributes:
        token: Mapbox access token
        resolution: Pixel density multiplier (2 requests "@2x" 512px tiles)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        token: str,
        resolution: int = 2,
        session: Optional[requests.Session] = None,
        timeout: float = config.REQUEST_TIMEOUT,
    ):
        if resolution not in (1, 2):
            raise ValueError(f"resolution must be 1 or 2, got {resolution}")
        self.token = token
        self.resolution = resolution
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def tile_size(self) -> int:
        return 256 * self.resolution

    def tile_url(self, coord: TileCoord) -> str:
        scale = "@2x" if self.resolution == 2 else ""
        return config.TERRAIN_TILE_URL.format(z=coord.zoom, x=coord.x, y=coord.y, scale=scale)

    def fetch(self, coord: TileCoord) -> bytes:
        """
        Download one tile.

        Args:
            coord: Tile to fetch

        Returns:
            Raw PNG bytes

        Raises:
            TileFetchError: On transport errors or a non-success status
        """
        label = f"{coord.zoom}/{coord.x}/{coord.y}"
        try:
            response = self.session.get(
                self.tile_url(coord),
                params={"access_token": self.token},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TileFetchError(f"Tile fetch failed: {label} ({e})") from e

        if not response.ok:
            raise TileFetchError(f"Tile fetch failed: {label} ({response.status_code})")

        logger.debug(f"Fetched tile {label} ({len(response.content)} bytes)")
        return response.content
