"""
Terrain pipeline: tiles -> elevation grid -> aspect grid, with caching.

Example:
    import asyncio
    from src.terrain.cache import TerrainCache
    from src.terrain.geodesy import GeoBounds
    from src.terrain.pipeline import TerrainPipeline
    from src.terrain.tiles import MapboxTileFetcher

    pipeline = TerrainPipeline(MapboxTileFetcher(token), TerrainCache())
    bounds = GeoBounds(41.35, -111.82, 41.42, -111.73)
    terrain = asyncio.run(pipeline.fetch_terrain_grid(bounds, zoom=14))

Stages:
1. load cache: a hit returns the stored grids unchanged
2. fetch tiles: every tile of the range is fetched concurrently
3. decode + stitch: waits for the complete tile set
4. derive aspect: Horn's method at the tile resolution's cell size
5. save cache: failures are logged and the fresh grids still returned

Concurrent requests for the same key share one in-flight computation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from src.terrain.aspect import AspectGrid, compute_aspect_grid
from src.terrain.cache import CacheEntry, TerrainCache, terrain_cache_key
from src.terrain.geodesy import (
    GeoBounds,
    TileCoord,
    cell_size_meters,
    grid_bounds,
    tile_range,
)
from src.terrain.stitching import ElevationGrid, stitch_tiles
from src.terrain.tiles import ElevationTile, decode_terrain_rgb

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TerrainGrid:
    """Elevation and aspect grids for a region, plus placement bounds."""

    elevation: ElevationGrid
    aspect: AspectGrid
    bounds: GeoBounds
    zoom: int
    grid_bounds: Dict[str, float]
    metadata: Dict[str, Any] = field(default_factory=dict)
    from_cache: bool = False

    @property
    def width(self) -> int:
        return self.elevation.width

    @property
    def height(self) -> int:
        return self.elevation.height


class TerrainPipeline:
    """
    Fetches, stitches and derives terrain for a region, caching the result.

    Attributes:
        fetcher: Tile-fetch collaborator with a blocking fetch(TileCoord) -> bytes
        cache: TerrainCache consulted before any fetch
        resolution: Pixel density multiplier of the fetched tiles
    """

    def __init__(self, fetcher, cache: Optional[TerrainCache] = None, resolution: int = 2):
        self.fetcher = fetcher
        self.cache = cache if cache is not None else TerrainCache()
        self.resolution = resolution
        self._inflight: Dict[str, asyncio.Task] = {}

    async def fetch_terrain_grid(self, bounds: GeoBounds, zoom: int) -> TerrainGrid:
        """
        Get terrain for a region, from cache or by fetching tiles.

        Args:
            bounds: Area of interest
            zoom: Tile zoom level

        Returns:
            TerrainGrid for the region

        Raises:
            TileFetchError: If any tile cannot be fetched
            TileDecodeError: If any tile payload is malformed
        """
        key = terrain_cache_key(bounds, zoom)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._build(key, bounds, zoom))
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
        else:
            logger.debug(f"Joining in-flight terrain request for {key}")

        return await task

    async def _build(self, key: str, bounds: GeoBounds, zoom: int) -> TerrainGrid:
        placement = grid_bounds(bounds, zoom)

        cached = await asyncio.to_thread(self.cache.load, key)
        if cached is not None:
            return TerrainGrid(
                elevation=cached.elevation,
                aspect=cached.aspect,
                bounds=bounds,
                zoom=zoom,
                grid_bounds=placement,
                metadata=cached.metadata,
                from_cache=True,
            )

        logger.info("Fetching terrain tiles…")
        start_time = time.time()

        tiles = tile_range(bounds, zoom)
        coords = list(tiles)
        decoded = await asyncio.gather(*(self._fetch_tile(coord) for coord in coords))
        tile_map = {tiles.offset(coord): tile for coord, tile in zip(coords, decoded)}

        elevation = await asyncio.to_thread(stitch_tiles, tile_map, tiles.cols, tiles.rows)

        cell_size = cell_size_meters(zoom, bounds.mid_lat, self.resolution)
        aspect = await asyncio.to_thread(compute_aspect_grid, elevation, cell_size)

        metadata = {
            "zoom": zoom,
            "cell_size": cell_size,
            "cols": tiles.cols,
            "rows": tiles.rows,
            "tile_size": int(decoded[0].size),
            "resolution": self.resolution,
        }
        entry = CacheEntry(elevation=elevation, aspect=aspect, metadata=metadata)
        await asyncio.to_thread(self.cache.save, key, entry)

        elapsed = time.time() - start_time
        logger.info(f"Terrain ready: {elevation.width}x{elevation.height} ({elapsed:.2f}s)")

        return TerrainGrid(
            elevation=elevation,
            aspect=aspect,
            bounds=bounds,
            zoom=zoom,
            grid_bounds=placement,
            metadata=metadata,
        )

    async def _fetch_tile(self, coord: TileCoord) -> ElevationTile:
        payload = await asyncio.to_thread(self.fetcher.fetch, coord)
        return decode_terrain_rgb(payload, expected_size=getattr(self.fetcher, "tile_size", None))
