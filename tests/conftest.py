"""Pytest configuration and fixtures for powder-map tests."""
import io
import sys
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import pytest
import numpy as np
from PIL import Image


def encode_terrain_rgb(elevations):
    """Encode an elevation array (meters) as Terrain-RGB PNG bytes."""
    encoded = np.rint((np.asarray(elevations, dtype=np.float64) + 10000.0) * 10.0).astype(np.int64)
    rgb = np.stack(
        [(encoded >> 16) & 255, (encoded >> 8) & 255, encoded & 255], axis=-1
    ).astype(np.uint8)
    buffer = io.BytesIO()
    Image.fromarray(rgb).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def terrain_png():
    """Factory building Terrain-RGB PNG payloads from elevation arrays."""
    return encode_terrain_rgb


@pytest.fixture
def sample_dem():
    """Create a small synthetic DEM for testing."""
    # Create a simple 100x100 elevation grid
    x = np.linspace(-10, 10, 100)
    y = np.linspace(-10, 10, 100)
    X, Y = np.meshgrid(x, y)
    # Create a simple terrain with a peak in the center
    Z = 1000 + 100 * np.exp(-(X**2 + Y**2) / 50)
    return Z.astype(np.float32)


@pytest.fixture
def sample_bounds():
    """Powder Mountain bounding box."""
    from src.terrain.geodesy import GeoBounds

    return GeoBounds(south=41.35, west=-111.82, north=41.42, east=-111.73)


@pytest.fixture
def cache_dir(tmp_path):
    """Temporary cache directory for tests."""
    cache = tmp_path / "cache"
    cache.mkdir()
    return cache


@pytest.fixture
def project_root():
    """Get the project root directory."""
    return Path(__file__).parent.parent
