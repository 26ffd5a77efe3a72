"""
Dominant wind aggregation over an hourly time series.

Direction is a vector (circular) mean of wind-from bearings weighted by

    weight = speed * (1 + precip * 10)

so hours that were both windy and snowy dominate the bearing. Average speed
is a plain arithmetic mean over the same samples, so it describes the whole
window rather than the stormy hours.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

PRECIP_WEIGHT = 10.0

CARDINAL_DIRECTIONS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]


@dataclass(frozen=True)
class WindSample:
    """One hourly wind observation. Any field may be missing."""

    speed_mph: Optional[float]
    direction_deg: Optional[float]
    gust_mph: Optional[float] = None
    precip_in: Optional[float] = None


@dataclass(frozen=True)
class DominantWind:
    """Aggregate wind over a lookback window."""

    direction_deg: float
    avg_speed_mph: float
    max_gust_mph: float

    @property
    def cardinal(self) -> str:
        return degrees_to_cardinal(self.direction_deg)


def _at(values: Optional[Sequence], i: int) -> Optional[float]:
    # Missing and NaN entries (numpy series) both read as None
    if values is None or i >= len(values) or values[i] is None:
        return None
    value = float(values[i])
    return None if math.isnan(value) else value


def compute_dominant_wind(
    speeds: Sequence[Optional[float]],
    directions: Sequence[Optional[float]],
    gusts: Optional[Sequence[Optional[float]]] = None,
    precip: Optional[Sequence[Optional[float]]] = None,
) -> Optional[DominantWind]:
    """
    Reduce parallel hourly series to one dominant wind.

    Series may be lists or numpy arrays. Samples lacking speed or direction
    (None or NaN) are skipped. Missing precipitation counts as zero.

    Args:
        speeds: Wind speed per hour (mph)
        directions: Wind-from bearing per hour (degrees)
        gusts: Gust speed per hour (mph), optional
        precip: Precipitation per hour (inches), optional

    Returns:
        DominantWind, or None when there is no wind signal (no valid samples
        or zero total weight)
    """
    if len(speeds) == 0 or len(directions) == 0:
        logger.info("No wind samples")
        return None

    sum_x = 0.0
    sum_y = 0.0
    total_weight = 0.0
    total_speed = 0.0
    max_gust = 0.0
    valid_count = 0

    for i in range(len(speeds)):
        speed = _at(speeds, i)
        direction = _at(directions, i)
        if speed is None or direction is None:
            continue

        p = _at(precip, i)
        weight = speed * (1 + (p if p is not None else 0.0) * PRECIP_WEIGHT)
        rad = math.radians(direction)

        sum_x += weight * math.sin(rad)
        sum_y += weight * math.cos(rad)
        total_weight += weight
        total_speed += speed
        valid_count += 1

        gust = _at(gusts, i)
        if gust is not None and gust > max_gust:
            max_gust = gust

    if valid_count == 0 or total_weight == 0:
        logger.info(f"No wind signal ({valid_count} valid samples, total weight {total_weight})")
        return None

    direction = math.degrees(math.atan2(sum_x, sum_y)) % 360

    wind = DominantWind(
        direction_deg=direction,
        avg_speed_mph=total_speed / valid_count,
        max_gust_mph=max_gust,
    )
    logger.debug(
        f"Dominant wind {wind.cardinal} ({direction:.0f}°) from {valid_count} samples, "
        f"avg {wind.avg_speed_mph:.1f} mph, gust {max_gust:.1f} mph"
    )
    return wind


def dominant_wind_from_samples(samples: Sequence[WindSample]) -> Optional[DominantWind]:
    """Aggregate a sequence of WindSample records."""
    return compute_dominant_wind(
        [s.speed_mph for s in samples],
        [s.direction_deg for s in samples],
        [s.gust_mph for s in samples],
        [s.precip_in for s in samples],
    )


def degrees_to_cardinal(deg: float) -> str:
    """
    Convert a bearing to a 16-point compass direction.

    Examples:
        >>> degrees_to_cardinal(270)
        'W'
        >>> degrees_to_cardinal(350)
        'N'
    """
    idx = int(math.floor((deg % 360) / 22.5 + 0.5)) % 16
    return CARDINAL_DIRECTIONS[idx]


def format_inches(value: Optional[float]) -> str:
    """Format a depth in inches with one decimal, or an em dash when missing."""
    if value is None or math.isnan(value):
        return "—"
    return f'{value:.1f}"'

