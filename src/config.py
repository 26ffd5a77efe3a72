"""Configuration module for powder-map project.

Centralizes data paths, the analysis region, and external endpoints.
"""
import os
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Data directories
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = DATA_DIR / "output"

# Cache directories (created as needed)
CACHE_DIR = DATA_DIR / "cache"
TERRAIN_CACHE = CACHE_DIR / "terrain"

# Ensure cache directories exist
for cache_dir in [TERRAIN_CACHE]:
    cache_dir.mkdir(parents=True, exist_ok=True)

# Powder Mountain Resort center (lat, lon)
CENTER = (41.3797, -111.7808)

# Bounding box for terrain analysis: (south, west, north, east)
BOUNDS = (41.35, -111.82, 41.42, -111.73)

# Terrain-RGB tile zoom level (~3.6m/pixel at this latitude for @2x tiles)
TERRAIN_ZOOM = 14

# Pixel density multiplier of fetched tiles (2 = 512px "@2x" tiles)
TILE_RESOLUTION = 2

# Longest side of the rendered overlay image
MAX_OVERLAY_DIM = 1024

# Terrain cache store revision; bumping it invalidates every cached entry
STORE_VERSION = 1

# Snow-to-liquid ratio for estimating snowfall from liquid precip (SWE).
# Utah cold powder typically 12:1-15:1; 12 is conservative
SNOW_LIQUID_RATIO = 12

# Below this much snowfall (inches) no overlay is rendered
MIN_OVERLAY_SNOWFALL = 0.5

# Lookback windows offered to users (hours)
LOOKBACK_HOURS = (12, 24, 48)

# Mapbox access token for Terrain-RGB tiles
MAPBOX_TOKEN = os.environ.get("MAPBOX_TOKEN", "")
TERRAIN_TILE_URL = (
    "https://api.mapbox.com/v4/mapbox.terrain-rgb/{z}/{x}/{y}{scale}.pngraw"
)

# SNOTEL station on Powder Mountain (#1300): hourly snow depth + precip CSV
SNOTEL_BASE_URL = (
    "https://wcc.sc.egov.usda.gov/reportGenerator/view_csv/"
    "customSingleStationReport/hourly/1300:UT:SNTL/"
)
SNOTEL_ELEMENTS = "SNWD::value,PREC::value,WTEQ::value,TOBS::value"

# Open-Meteo forecast API, used only for wind (SNOTEL wind is unreliable)
WIND_BASE_URL = (
    "https://api.open-meteo.com/v1/forecast"
    "?latitude=41.3797&longitude=-111.7808"
    "&hourly=precipitation,wind_speed_10m,wind_direction_10m,wind_gusts_10m"
    "&forecast_days=0"
    "&wind_speed_unit=mph&precipitation_unit=inch"
    "&timezone=America%2FDenver"
)

# Resort snow report (staff-reported 12/24/48h snowfall); unset disables it
RESORT_API_URL = os.environ.get("RESORT_API_URL") or None

# HTTP timeout for tile and weather requests (seconds)
REQUEST_TIMEOUT = 30

# Default settings
DEFAULT_LOG_LEVEL = "INFO"
