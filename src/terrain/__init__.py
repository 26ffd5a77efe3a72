"""
Terrain processing package.

Core functionality:
- Slippy-map tile geodesy and Terrain-RGB tile decoding
- Tile stitching and Horn's-method aspect derivation
- Terrain cache and the async terrain pipeline
- Powder score color mapping and overlay rasterization
"""

from .geodesy import (
    GeoBounds,
    TileCoord,
    TileRange,
    lon_lat_to_tile,
    tile_to_bounds,
    cell_size_meters,
    tile_range,
    grid_bounds,
)
from .tiles import ElevationTile, MapboxTileFetcher, decode_terrain_rgb
from .stitching import ElevationGrid, stitch_tiles
from .aspect import AspectGrid, compute_aspect_grid
from .cache import TerrainCache, MemoryCacheBackend, NpzCacheBackend, terrain_cache_key
from .pipeline import TerrainGrid, TerrainPipeline
from .overlay import OverlayImage, render_overlay

__all__ = [
    "GeoBounds",
    "TileCoord",
    "TileRange",
    "lon_lat_to_tile",
    "tile_to_bounds",
    "cell_size_meters",
    "tile_range",
    "grid_bounds",
    "ElevationTile",
    "MapboxTileFetcher",
    "decode_terrain_rgb",
    "ElevationGrid",
    "stitch_tiles",
    "AspectGrid",
    "compute_aspect_grid",
    "TerrainCache",
    "MemoryCacheBackend",
    "NpzCacheBackend",
    "terrain_cache_key",
    "TerrainGrid",
    "TerrainPipeline",
    "OverlayImage",
    "render_overlay",
]
