"""
Stitching of decoded elevation tiles into one contiguous grid.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from src.terrain.tiles import ElevationTile

logger = logging.getLogger(__name__)


class MissingTileError(ValueError):
    """Raised when a tile of the requested range was not supplied."""


class TileSizeMismatchError(ValueError):
    """Raised when tiles of one range disagree on side length."""


@dataclass(frozen=True)
class ElevationGrid:
    """
    Stitched elevation grid in meters.

    Row-major with the origin at the minimum-tile (north-west) corner. The
    array is marked read-only once wrapped.
    """

    values: np.ndarray

    def __post_init__(self):
        if self.values.ndim != 2:
            raise ValueError(f"Elevation grid must be 2D, got shape {self.values.shape}")
        self.values.setflags(write=False)

    @property
    def height(self) -> int:
        return self.values.shape[0]

    @property
    def width(self) -> int:
        return self.values.shape[1]


def stitch_tiles(
    tiles: Dict[Tuple[int, int], ElevationTile],
    cols: int,
    rows: int,
) -> ElevationGrid:
    """
    Assemble a rectangular set of decoded tiles into one elevation grid.

    Args:
        tiles: Decoded tiles keyed by their (col, row) offset in the range
        cols: Number of tile columns in the range
        rows: Number of tile rows in the range

    Returns:
        ElevationGrid of shape (rows * tile_size, cols * tile_size)

    Raises:
        MissingTileError: If any (col, row) in the range is absent
        TileSizeMismatchError: If tiles disagree on side length
    """
    if not tiles:
        raise MissingTileError("No tiles to stitch")

    tile_size = next(iter(tiles.values())).size

    width = cols * tile_size
    height = rows * tile_size
    elevations = np.empty((height, width), dtype=np.float32)

    for row in range(rows):
        for col in range(cols):
            tile = tiles.get((col, row))
            if tile is None:
                raise MissingTileError(f"Missing tile at col={col}, row={row}")
            if tile.size != tile_size:
                raise TileSizeMismatchError(
                    f"Tile at col={col}, row={row} has size {tile.size}, expected {tile_size}"
                )

            y0 = row * tile_size
            x0 = col * tile_size
            elevations[y0:y0 + tile_size, x0:x0 + tile_size] = tile.elevations

    logger.info(f"Terrain stitched: {width}x{height} pixels, {cols}x{rows} tiles")
    return ElevationGrid(elevations)
