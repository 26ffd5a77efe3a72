#!/usr/bin/env python3
"""
Powder Mountain powder overlay.

Fetches Terrain-RGB tiles, SNOTEL snowfall and Open-Meteo wind for the
configured region, scores every terrain pixel for wind-deposited powder and
writes the colored overlay.

Outputs (in --output-dir):
    powder_overlay.png    RGBA overlay image
    powder_overlay.json   placement corners, bounds, wind and snowfall
    powder_overlay.tif    RGBA GeoTIFF in EPSG:3857 (with --geotiff)
    powder_preview.png    matplotlib preview with colorbar (with --preview)

Requires MAPBOX_TOKEN in the environment. Set RESORT_API_URL to include the
resort snow report.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src import config
from src.session import PowderMapSession
from src.terrain.cache import MemoryCacheBackend, NpzCacheBackend, TerrainCache
from src.terrain.geodesy import GeoBounds
from src.terrain.pipeline import TerrainPipeline
from src.terrain.tiles import MapboxTileFetcher

logger = logging.getLogger(__name__)


def save_preview(overlay, output_path: Path) -> Path:
    """Save a matplotlib preview of the overlay with a score colorbar."""
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    from matplotlib.colors import Normalize

    from src.terrain.color_mapping import powder_colormap

    b = overlay.bounds
    fig, ax = plt.subplots(figsize=(8, 8))
    ax.set_facecolor("#556b2f")
    ax.imshow(overlay.rgba, extent=(b["west"], b["east"], b["south"], b["north"]))
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.set_title("Powder score")
    fig.colorbar(
        plt.cm.ScalarMappable(norm=Normalize(0, 1), cmap=powder_colormap()),
        ax=ax,
        label="Score",
    )
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    logger.info(f"Saved preview: {output_path}")
    return output_path


def write_outputs(result, output_dir: Path, geotiff: bool, preview: bool) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    overlay = result.overlay

    info = {
        "hours": result.hours,
        "snowfall_in": result.snowfall,
        "precip_in": result.total_precip,
        "wind": None if result.wind is None else {
            "direction_deg": result.wind.direction_deg,
            "cardinal": result.wind.cardinal,
            "avg_speed_mph": result.wind.avg_speed_mph,
            "max_gust_mph": result.wind.max_gust_mph,
        },
        "status": result.status,
        "overlay": None,
    }

    if overlay is not None:
        overlay.save_png(output_dir / "powder_overlay.png")
        info["overlay"] = {
            "image": "powder_overlay.png",
            "width": overlay.width,
            "height": overlay.height,
            "bounds": overlay.bounds,
            "coordinates": overlay.coordinates,
        }
        if geotiff:
            overlay.save_geotiff(output_dir / "powder_overlay.tif")
        if preview:
            save_preview(overlay, output_dir / "powder_preview.png")

    with open(output_dir / "powder_overlay.json", "w") as f:
        json.dump(info, f, indent=2)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Powder Mountain wind-deposited powder overlay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Last 24 hours, default output directory
  MAPBOX_TOKEN=... python examples/powder_mountain.py

  # 48 hour window with GeoTIFF and preview, bypassing the terrain cache
  python examples/powder_mountain.py --hours 48 --geotiff --preview --no-cache
        """,
    )
    parser.add_argument(
        "--hours", type=int, choices=config.LOOKBACK_HOURS, default=24,
        help="Lookback window in hours (default: 24)",
    )
    parser.add_argument(
        "--output-dir", type=Path, default=config.OUTPUT_DIR,
        help=f"Output directory (default: {config.OUTPUT_DIR})",
    )
    parser.add_argument(
        "--cache-dir", type=Path, default=config.TERRAIN_CACHE,
        help=f"Terrain cache directory (default: {config.TERRAIN_CACHE})",
    )
    parser.add_argument("--no-cache", action="store_true", help="Keep terrain in memory only")
    parser.add_argument("--geotiff", action="store_true", help="Also write an RGBA GeoTIFF")
    parser.add_argument("--preview", action="store_true", help="Also write a matplotlib preview")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, config.DEFAULT_LOG_LEVEL),
        format="%(asctime)s - %(name)s - %(levelname)s: %(message)s",
    )

    if not config.MAPBOX_TOKEN:
        logger.warning("MAPBOX_TOKEN is not set; terrain tiles will fail to load")

    backend = MemoryCacheBackend() if args.no_cache else NpzCacheBackend(args.cache_dir)
    pipeline = TerrainPipeline(
        MapboxTileFetcher(config.MAPBOX_TOKEN, resolution=config.TILE_RESOLUTION),
        TerrainCache(backend),
        resolution=config.TILE_RESOLUTION,
    )
    session = PowderMapSession(
        pipeline,
        GeoBounds.from_tuple(config.BOUNDS),
        zoom=config.TERRAIN_ZOOM,
    )

    result = asyncio.run(session.load_and_render(args.hours))
    print(result.summary())

    write_outputs(result, args.output_dir, args.geotiff, args.preview)
    return 0


if __name__ == "__main__":
    sys.exit(main())
