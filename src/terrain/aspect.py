"""
Aspect (downslope compass direction) computation using Horn's method.

For each interior pixel the 3x3 neighborhood

    NW  N  NE
     W  .  E
    SW  S  SE

gives the partial derivatives

    dz/dx = ((NE + 2E + SE) - (NW + 2W + SW)) / (8 * cell_size)
    dz/dy = ((SW + 2S + SE) - (NW + 2N + NE)) / (8 * cell_size)

and the aspect atan2(dz/dx, -dz/dy) in degrees, 0=North, clockwise.

Edge pixels and exactly flat pixels have no aspect. They are masked in the
returned array rather than given a bearing, so 0 degrees always means north.
"""

import logging
import time
from dataclasses import dataclass

import numpy as np
from scipy import ndimage

from src.terrain.stitching import ElevationGrid

logger = logging.getLogger(__name__)

# Row-weighted neighbor sums for each side of the 3x3 window
_EAST_KERNEL = np.array([[0, 0, 1], [0, 0, 2], [0, 0, 1]], dtype=np.float64)
_WEST_KERNEL = np.array([[1, 0, 0], [2, 0, 0], [1, 0, 0]], dtype=np.float64)
_SOUTH_KERNEL = np.array([[0, 0, 0], [0, 0, 0], [1, 2, 1]], dtype=np.float64)
_NORTH_KERNEL = np.array([[1, 2, 1], [0, 0, 0], [0, 0, 0]], dtype=np.float64)


@dataclass(frozen=True)
class AspectGrid:
    """
    Per-pixel aspect in degrees [0, 360) with undefined pixels masked.

    Attributes:
        values: Masked float32 array; mask is True where aspect is undefined
    """

    values: np.ma.MaskedArray

    @property
    def height(self) -> int:
        return self.values.shape[0]

    @property
    def width(self) -> int:
        return self.values.shape[1]

    @property
    def defined(self) -> np.ndarray:
        """Boolean array, True where a bearing exists."""
        return ~np.ma.getmaskarray(self.values)

    @classmethod
    def from_arrays(cls, bearings: np.ndarray, undefined: np.ndarray) -> "AspectGrid":
        """Rebuild from a raw bearing array and an undefined-pixel mask."""
        data = np.where(undefined, np.nan, bearings).astype(np.float32)
        # float32 rounding of bearings just below 360 can land on 360 itself
        data[data >= 360.0] = 0.0
        return cls(np.ma.masked_array(data, mask=undefined.astype(bool), fill_value=np.nan))


def horn_gradients(elevations: np.ndarray, cell_size: float):
    """
    Compute Horn's dz/dx and dz/dy for every pixel.

    Values on the outer edge are computed against replicated neighbors and
    are not meaningful; callers mask them.

    Args:
        elevations: 2D elevation array in meters
        cell_size: Ground distance per pixel in meters

    Returns:
        Tuple of (dzdx, dzdy) float64 arrays
    """
    elev = np.asarray(elevations, dtype=np.float64)
    denom = 8.0 * cell_size

    east = ndimage.correlate(elev, _EAST_KERNEL, mode="nearest")
    west = ndimage.correlate(elev, _WEST_KERNEL, mode="nearest")
    south = ndimage.correlate(elev, _SOUTH_KERNEL, mode="nearest")
    north = ndimage.correlate(elev, _NORTH_KERNEL, mode="nearest")

    return (east - west) / denom, (south - north) / denom


def compute_aspect_grid(elevation: ElevationGrid, cell_size: float) -> AspectGrid:
    """
    Derive the aspect grid of an elevation grid.

    Args:
        elevation: Stitched elevation grid
        cell_size: Ground distance per pixel in meters, already adjusted for
            the tile resolution multiplier

    Returns:
        AspectGrid of the same shape as the elevation grid
    """
    if cell_size <= 0:
        raise ValueError(f"cell_size must be positive, got {cell_size}")

    start_time = time.time()
    height, width = elevation.values.shape

    dzdx, dzdy = horn_gradients(elevation.values, cell_size)

    undefined = (dzdx == 0) & (dzdy == 0)
    undefined[0, :] = True
    undefined[-1, :] = True
    undefined[:, 0] = True
    undefined[:, -1] = True

    bearings = np.degrees(np.arctan2(dzdx, -dzdy)) % 360
    aspect = AspectGrid.from_arrays(bearings, undefined)

    elapsed = time.time() - start_time
    logger.info(
        f"Computed aspect for {width}x{height} grid ({elapsed:.2f}s), "
        f"{int(undefined.sum())} undefined pixels"
    )
    return aspect
