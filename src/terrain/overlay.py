"""
Overlay rasterization for powder scores.

Downsamples a score grid to a display-safe size, colors it through the
powder ramp and pairs the RGBA image with the geographic rectangle of the
stitched tile grid it covers.

Output formats:
- PNG bytes plus corner coordinates, for an image-source map layer
- RGBA GeoTIFF in Web Mercator (EPSG:3857), the native CRS of the tiles
"""

import io
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

import numpy as np
import rasterio
from PIL import Image
from rasterio import Affine
from rasterio.enums import ColorInterp
from rasterio.transform import from_bounds
from rasterio.warp import transform_bounds

from src import config
from src.terrain.color_mapping import score_colormap

logger = logging.getLogger(__name__)

WEB_MERCATOR = "EPSG:3857"
WGS84 = "EPSG:4326"


@dataclass(frozen=True)
class OverlayImage:
    """
    RGBA overlay image with its geographic placement.

    Attributes:
        rgba: uint8 array of shape (height, width, 4)
        bounds: Placement rectangle with north, south, east, west in degrees
    """

    rgba: np.ndarray
    bounds: Dict[str, float]

    @property
    def height(self) -> int:
        return self.rgba.shape[0]

    @property
    def width(self) -> int:
        return self.rgba.shape[1]

    @property
    def coordinates(self) -> List[List[float]]:
        """Corner [lon, lat] pairs: top-left, top-right, bottom-right, bottom-left."""
        b = self.bounds
        return [
            [b["west"], b["north"]],
            [b["east"], b["north"]],
            [b["east"], b["south"]],
            [b["west"], b["south"]],
        ]

    def to_png(self) -> bytes:
        """Encode the image as PNG."""
        buffer = io.BytesIO()
        Image.fromarray(np.ascontiguousarray(self.rgba)).save(buffer, format="PNG")
        return buffer.getvalue()

    def save_png(self, path) -> Path:
        path = Path(path)
        path.write_bytes(self.to_png())
        logger.info(f"Saved overlay PNG: {path}")
        return path

    def mercator_transform(self) -> Affine:
        """Affine transform from pixel to Web Mercator coordinates."""
        b = self.bounds
        left, bottom, right, top = transform_bounds(
            WGS84, WEB_MERCATOR, b["west"], b["south"], b["east"], b["north"]
        )
        return from_bounds(left, bottom, right, top, self.width, self.height)

    def save_geotiff(self, path) -> Path:
        """
        Write the overlay as a 4-band RGBA GeoTIFF in Web Mercator.

        Args:
            path: Output file path

        Returns:
            Path of the written file
        """
        path = Path(path)
        profile = {
            "driver": "GTiff",
            "height": self.height,
            "width": self.width,
            "count": 4,
            "dtype": "uint8",
            "crs": WEB_MERCATOR,
            "transform": self.mercator_transform(),
            "photometric": "RGB",
            "compress": "deflate",
        }
        with rasterio.open(path, "w", **profile) as dst:
            dst.write(np.moveaxis(self.rgba, -1, 0))
            dst.colorinterp = [
                ColorInterp.red,
                ColorInterp.green,
                ColorInterp.blue,
                ColorInterp.alpha,
            ]
        logger.info(f"Saved overlay GeoTIFF: {path}")
        return path


def overlay_size(width: int, height: int, max_dim: int = config.MAX_OVERLAY_DIM) -> Tuple[int, int]:
    """
    Output size with the longer side capped at max_dim.

    Args:
        width: Source grid width
        height: Source grid height
        max_dim: Maximum output dimension

    Returns:
        (out_width, out_height); the source size when it already fits
    """
    if width <= max_dim and height <= max_dim:
        return width, height
    scale = max_dim / max(width, height)
    return int(math.floor(width * scale + 0.5)), int(math.floor(height * scale + 0.5))


def downsample_nearest(scores: np.ndarray, out_width: int, out_height: int) -> np.ndarray:
    """
    Nearest-neighbor resample of a grid to (out_height, out_width).

    Output pixel i samples source index min(floor(i * src / out), src - 1).
    """
    height, width = scores.shape
    if (out_width, out_height) == (width, height):
        return scores

    xs = np.minimum(np.floor(np.arange(out_width) * (width / out_width)).astype(int), width - 1)
    ys = np.minimum(np.floor(np.arange(out_height) * (height / out_height)).astype(int), height - 1)
    return scores[np.ix_(ys, xs)]


def render_overlay(
    scores: np.ndarray,
    bounds: Dict[str, float],
    max_dim: int = config.MAX_OVERLAY_DIM,
) -> OverlayImage:
    """
    Rasterize a score grid into a colored overlay image.

    Args:
        scores: 2D powder score grid
        bounds: Geographic rectangle of the stitched tile grid (north,
            south, east, west)
        max_dim: Maximum output dimension

    Returns:
        OverlayImage
    """
    height, width = scores.shape
    out_width, out_height = overlay_size(width, height, max_dim)
    if (out_width, out_height) != (width, height):
        logger.info(f"Downsampling overlay {width}x{height} -> {out_width}x{out_height}")

    sampled = downsample_nearest(scores, out_width, out_height)
    return OverlayImage(rgba=score_colormap(sampled), bounds=dict(bounds))
