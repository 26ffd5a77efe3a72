"""
Terrain caching module for the powder-map pipeline.

Persists the stitched elevation grid and derived aspect grid for a
geographic region and zoom so the expensive fetch-stitch-derive path runs
once per region.

The cache is a service object with an injectable storage backend:
- MemoryCacheBackend: in-process dict, used by tests
- NpzCacheBackend: .npz arrays plus a JSON metadata sidecar per key

Entries are written once and replaced wholesale; they are never mutated.
Storage failures never reach the caller: a failed read is a miss and a
failed write is logged.
"""

import hashlib
import json
import logging
import os
import time
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from src import config
from src.terrain.aspect import AspectGrid
from src.terrain.geodesy import GeoBounds
from src.terrain.stitching import ElevationGrid

logger = logging.getLogger(__name__)


class CacheUnavailable(OSError):
    """Raised by a backend when its storage substrate cannot be used."""


@dataclass(frozen=True)
class CacheEntry:
    """
    One cached terrain record.

    Attributes:
        elevation: Stitched elevation grid
        aspect: Aspect grid derived from the elevation grid
        metadata: Generation parameters (zoom, cell_size, cols, rows,
            tile_size, resolution)
        timestamp: Unix time the entry was generated
    """

    elevation: ElevationGrid
    aspect: AspectGrid
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    @property
    def width(self) -> int:
        return self.elevation.width

    @property
    def height(self) -> int:
        return self.elevation.height


def terrain_cache_key(bounds: GeoBounds, zoom: int) -> str:
    """
    Build the cache key for a region and zoom.

    Args:
        bounds: Requested area of interest
        zoom: Tile zoom level

    Returns:
        Key string such as "41.35,-111.82,41.42,-111.73@z14"
    """
    return f"{bounds.south},{bounds.west},{bounds.north},{bounds.east}@z{zoom}"


class MemoryCacheBackend:
    """In-memory backend storing entries in a dict."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    def read(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def write(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def keys(self):
        return list(self._entries)


class NpzCacheBackend:
    """
    File backend storing each entry as compressed .npz plus JSON metadata.

    Attributes:
        cache_dir: Directory where cache files are stored
    """

    def __init__(self, cache_dir: Optional[Path] = None):
        """
        Initialize the file backend.

        Args:
            cache_dir: Directory for cache files. If None, uses the configured
                terrain cache directory
        """
        self.cache_dir = Path(cache_dir) if cache_dir is not None else config.TERRAIN_CACHE

    def _stem(self, key: str) -> str:
        return "terrain_" + hashlib.sha256(key.encode()).hexdigest()

    def get_cache_path(self, key: str) -> Path:
        return self.cache_dir / f"{self._stem(key)}.npz"

    def get_metadata_path(self, key: str) -> Path:
        return self.cache_dir / f"{self._stem(key)}_meta.json"

    def read(self, key: str) -> Optional[CacheEntry]:
        """
        Load an entry from disk.

        Returns:
            CacheEntry or None if nothing is stored under the key

        Raises:
            CacheUnavailable: If the files exist but cannot be read
        """
        cache_path = self.get_cache_path(key)
        metadata_path = self.get_metadata_path(key)

        if not cache_path.exists() or not metadata_path.exists():
            return None

        try:
            with open(metadata_path, "r") as f:
                meta = json.load(f)
            with np.load(cache_path) as data:
                elevation = ElevationGrid(data["elevation"])
                aspect = AspectGrid.from_arrays(data["aspect"], data["aspect_undefined"])
        except (OSError, ValueError, KeyError, EOFError, zipfile.BadZipFile, zlib.error) as e:
            raise CacheUnavailable(f"Cannot read cache entry {cache_path.name}: {e}") from e

        if meta.get("key") != key:
            # Hash collision or a foreign file; treat as absent
            return None

        return CacheEntry(
            elevation=elevation,
            aspect=aspect,
            metadata=meta.get("metadata", {}),
            timestamp=meta.get("timestamp", 0.0),
        )

    def write(self, key: str, entry: CacheEntry) -> None:
        """
        Write an entry, replacing anything stored under the key.

        Raises:
            CacheUnavailable: If the cache directory cannot be written
        """
        cache_path = self.get_cache_path(key)
        metadata_path = self.get_metadata_path(key)

        tmp_cache_path = cache_path.with_name(cache_path.name + ".tmp")
        tmp_metadata_path = metadata_path.with_name(metadata_path.name + ".tmp")

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_cache_path, "wb") as f:
                np.savez_compressed(
                    f,
                    elevation=entry.elevation.values,
                    aspect=np.ma.getdata(entry.aspect.values),
                    aspect_undefined=np.ma.getmaskarray(entry.aspect.values),
                )
            metadata = {
                "key": key,
                "width": entry.width,
                "height": entry.height,
                "metadata": entry.metadata,
                "timestamp": entry.timestamp,
            }
            with open(tmp_metadata_path, "w") as f:
                json.dump(metadata, f, indent=2)

            # Sidecar goes last: arrays without a sidecar read as a miss
            metadata_path.unlink(missing_ok=True)
            os.replace(tmp_cache_path, cache_path)
            os.replace(tmp_metadata_path, metadata_path)
            logger.debug(f"Cache size: {cache_path.stat().st_size / (1024*1024):.1f} MB")
        except OSError as e:
            for tmp_path in (tmp_cache_path, tmp_metadata_path):
                try:
                    tmp_path.unlink(missing_ok=True)
                except OSError as cleanup_error:
                    logger.debug(f"Could not remove {tmp_path.name}: {cleanup_error}")
            raise CacheUnavailable(f"Cannot write cache entry {cache_path.name}: {e}") from e

    def clear(self) -> int:
        deleted_count = 0
        for cache_file in self.cache_dir.glob("terrain_*"):
            try:
                cache_file.unlink()
                deleted_count += 1
            except OSError as e:
                logger.warning(f"Failed to delete {cache_file.name}: {e}")
        return deleted_count

    def keys(self):
        keys = []
        for metadata_path in self.cache_dir.glob("terrain_*_meta.json"):
            try:
                with open(metadata_path, "r") as f:
                    keys.append(json.load(f)["key"])
            except (OSError, ValueError, KeyError):
                continue
        return keys


class TerrainCache:
    """
    Keyed store of terrain grids with a store revision.

    Keys are namespaced by the revision, so bumping the version makes every
    earlier entry unreachable.

    Attributes:
        backend: Storage backend (MemoryCacheBackend or NpzCacheBackend)
        version: Store revision
        enabled: Whether caching is enabled
    """

    def __init__(self, backend=None, version: int = config.STORE_VERSION, enabled: bool = True):
        self.backend = backend if backend is not None else NpzCacheBackend()
        self.version = version
        self.enabled = enabled

    def _storage_key(self, key: str) -> str:
        return f"v{self.version}:{key}"

    def load(self, key: str) -> Optional[CacheEntry]:
        """
        Load cached terrain.

        Args:
            key: Cache key from terrain_cache_key()

        Returns:
            CacheEntry, or None on a miss or when storage is unavailable
        """
        if not self.enabled:
            return None

        start_time = time.time()
        try:
            entry = self.backend.read(self._storage_key(key))
        except OSError as e:
            logger.warning(f"Terrain cache unavailable, treating as miss: {e}")
            return None

        if entry is None:
            logger.debug(f"Cache miss: {key}")
            return None

        elapsed = time.time() - start_time
        logger.info(f"Terrain loaded from cache ({elapsed:.2f}s)")
        logger.debug(f"Cached grid {entry.width}x{entry.height}, metadata={entry.metadata}")
        return entry

    def save(self, key: str, entry: CacheEntry) -> bool:
        """
        Store terrain under a key, replacing any previous entry.

        Args:
            key: Cache key from terrain_cache_key()
            entry: Entry to store

        Returns:
            True if written, False if caching is disabled or the write failed
        """
        if not self.enabled:
            return False

        start_time = time.time()
        try:
            self.backend.write(self._storage_key(key), entry)
        except OSError as e:
            logger.warning(f"Failed to cache terrain: {e}")
            return False

        elapsed = time.time() - start_time
        logger.info(f"Cached terrain {key} ({elapsed:.2f}s)")
        return True

    def clear(self) -> int:
        """
        Remove every stored entry.

        Returns:
            Number of entries (or files) deleted
        """
        if not self.enabled:
            return 0
        try:
            deleted_count = self.backend.clear()
        except OSError as e:
            logger.warning(f"Failed to clear terrain cache: {e}")
            return 0
        logger.info(f"Cleared {deleted_count} terrain cache items")
        return deleted_count

    def stats(self) -> dict:
        """
        Get statistics about cached entries.

        Returns:
            Dictionary with cache statistics
        """
        prefix = f"v{self.version}:"
        try:
            keys = self.backend.keys()
        except OSError:
            keys = []
        return {
            "enabled": self.enabled,
            "version": self.version,
            "backend": type(self.backend).__name__,
            "entries": len(keys),
            "current_entries": sum(1 for k in keys if k.startswith(prefix)),
        }
