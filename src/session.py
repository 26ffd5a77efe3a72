"""
Powder map session: weather + terrain -> scores -> overlay.

One session serves repeated renders for different lookback windows. SNOTEL
and wind are fetched fresh on every render; resort snow and terrain are
fetched once and reused. All legs run concurrently and a failed leg is
replaced by None, so the render continues in degraded mode where it can:

- no terrain           -> no overlay, status explains
- no snow source       -> no overlay, status explains
- snowfall < 0.5 in    -> no overlay
- wind fetch failed    -> no overlay
- calm / no wind signal -> no overlay, reported separately
- one snow source down -> the other one is used

No overlay is ever drawn from incomplete inputs.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

from src import config
from src.scoring.powder import compute_powder_scores
from src.snow.wind import DominantWind, dominant_wind_from_samples, format_inches
from src.snow.weather import (
    ResortSnow,
    SnotelReport,
    WeatherClient,
    WeatherDataError,
    WeatherFetchError,
    average_snowfall,
    resort_snow_for_period,
)
from src.terrain.geodesy import GeoBounds
from src.terrain.overlay import OverlayImage, render_overlay
from src.terrain.pipeline import TerrainGrid, TerrainPipeline
from src.terrain.stitching import MissingTileError, TileSizeMismatchError
from src.terrain.tiles import TileDecodeError, TileFetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that make one input leg absent instead of failing the render
LEG_FAILURES = (
    TileFetchError,
    TileDecodeError,
    MissingTileError,
    TileSizeMismatchError,
    WeatherFetchError,
    WeatherDataError,
)


@dataclass(frozen=True)
class PowderMapResult:
    """
    Outcome of one render.

    Attributes:
        hours: Lookback window
        snowfall: Merged snowfall estimate in inches
        total_precip: SNOTEL liquid precipitation in inches
        snotel: SNOTEL report, or None if unavailable
        resort_snowfall: Resort figure for the window, or None
        wind: Dominant wind, or None if unavailable or degenerate
        overlay: Rendered overlay, or None if it was suppressed
        status: Human-readable explanation when no overlay was drawn
    """

    hours: int
    snowfall: float
    total_precip: float
    snotel: Optional[SnotelReport]
    resort_snowfall: Optional[float]
    wind: Optional[DominantWind]
    overlay: Optional[OverlayImage]
    status: Optional[str] = None

    def summary(self) -> str:
        snotel_str = format_inches(self.snotel.total_snowfall) if self.snotel else "—"
        resort_str = format_inches(self.resort_snowfall)
        lines = [
            f"{self.hours}h Snowfall: {format_inches(self.snowfall)} "
            f"(SNOTEL {snotel_str} / Resort {resort_str})",
        ]
        if self.wind is not None:
            lines.append(
                f"Wind: {self.wind.avg_speed_mph:.0f} mph from {self.wind.cardinal} "
                f"({self.wind.direction_deg:.0f}°), gusts {self.wind.max_gust_mph:.0f} mph"
            )
        else:
            lines.append("Wind: N/A")
        if self.status:
            lines.append(self.status)
        return "\n".join(lines)


class PowderMapSession:
    """
    Orchestrates weather and terrain legs for repeated renders.

    Attributes:
        terrain_pipeline: TerrainPipeline used for the terrain leg
        bounds: Area of interest
        zoom: Terrain tile zoom
        weather: Weather collaborator (WeatherClient or compatible)
    """

    def __init__(
        self,
        terrain_pipeline: TerrainPipeline,
        bounds: GeoBounds,
        zoom: int = config.TERRAIN_ZOOM,
        weather: Optional[WeatherClient] = None,
        max_dim: int = config.MAX_OVERLAY_DIM,
        min_snowfall: float = config.MIN_OVERLAY_SNOWFALL,
    ):
        self.terrain_pipeline = terrain_pipeline
        self.bounds = bounds
        self.zoom = zoom
        self.weather = weather if weather is not None else WeatherClient()
        self.max_dim = max_dim
        self.min_snowfall = min_snowfall

        self.terrain: Optional[TerrainGrid] = None
        self.resort: Optional[ResortSnow] = None

    async def _settle(self, label: str, awaitable: Awaitable[T]) -> Optional[T]:
        try:
            return await awaitable
        except LEG_FAILURES as e:
            logger.error(f"{label} fetch failed: {e}")
            return None

    async def _none(self):
        return None

    async def load_and_render(self, hours: int = 24) -> PowderMapResult:
        """
        Fetch inputs for a lookback window and render the overlay.

        Args:
            hours: Lookback window (12, 24, or 48)

        Returns:
            PowderMapResult; overlay is None when any required input is missing
        """
        logger.info(f"Loading powder data for {hours}h window")

        need_resort = self.resort is None
        need_terrain = self.terrain is None

        snotel, samples, resort, terrain = await asyncio.gather(
            self._settle("SNOTEL", asyncio.to_thread(self.weather.snotel, hours)),
            self._settle("Wind", asyncio.to_thread(self.weather.wind, hours)),
            self._settle("Resort API", asyncio.to_thread(self.weather.resort))
            if need_resort else self._none(),
            self._settle(
                "Terrain", self.terrain_pipeline.fetch_terrain_grid(self.bounds, self.zoom)
            ) if need_terrain else self._none(),
        )

        if need_resort and resort is not None:
            self.resort = resort
        if need_terrain and terrain is not None:
            self.terrain = terrain

        wind = dominant_wind_from_samples(samples) if samples else None

        snotel_snowfall = snotel.total_snowfall if snotel is not None else None
        resort_snowfall = resort_snow_for_period(self.resort, hours)
        total_snowfall = average_snowfall(snotel_snowfall, resort_snowfall)
        total_precip = snotel.total_precip if snotel is not None else 0.0

        logger.info(
            f"{hours}h Snow: SNOTEL {format_inches(snotel_snowfall)}, "
            f"Resort {format_inches(resort_snowfall)}, Avg {total_snowfall:.1f}\""
        )

        def result(overlay=None, status=None) -> PowderMapResult:
            return PowderMapResult(
                hours=hours,
                snowfall=total_snowfall,
                total_precip=total_precip,
                snotel=snotel,
                resort_snowfall=resort_snowfall,
                wind=wind,
                overlay=overlay,
                status=status,
            )

        if self.terrain is None:
            return result(status="Terrain data unavailable. Check your Mapbox token.")

        if snotel is None and resort_snowfall is None:
            logger.warning("Weather data unavailable: no SNOTEL or resort snowfall")
            return result(status="Snow data unavailable, powder overlay not shown.")

        if total_snowfall < self.min_snowfall:
            logger.info(f"Only {total_snowfall:.2f}\" snowfall in last {hours}h, overlay not shown")
            return result(status=f"Not enough new snow in the last {hours}h for a powder overlay.")

        if samples is None:
            logger.info("No wind data, overlay not shown")
            return result(status="Wind data unavailable, powder overlay not shown.")

        if wind is None:
            logger.info(f"No wind signal in {len(samples)} samples, overlay not shown")
            return result(status=f"No wind signal in the last {hours}h, powder overlay not shown.")

        terrain = self.terrain
        scores = await asyncio.to_thread(
            compute_powder_scores,
            terrain.aspect,
            wind.direction_deg,
            total_snowfall,
            total_precip,
            wind.avg_speed_mph,
            terrain.width,
            terrain.height,
        )
        overlay = await asyncio.to_thread(render_overlay, scores, terrain.grid_bounds, self.max_dim)

        logger.info(f"Powder overlay rendered for {hours}h window")
        return result(overlay=overlay)
