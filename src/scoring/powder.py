"""
Powder quality scoring.

Combines terrain aspect with recent snowfall and the dominant wind into a
per-pixel score in [0, 1]. Wind strips snow from windward slopes and
deposits it on leeward ones, so slopes facing the leeward direction score
highest.

Formula:
    snow_factor     = clamp(snowfall / 6, 0, 1)
    leeward         = (wind_from + 180) mod 360
    wind_transport  = clamp(avg_speed / 30, 0.2, 1)
    leeward_score   = (cos(angle_difference(aspect, leeward)) + 1) / 2
    score           = snow_factor * (0.5 + (leeward_score - 0.5) * wind_transport)

Pixels without an aspect (flat or grid edge) score snow_factor * 0.5.
"""

import logging
from typing import Optional

import numpy as np

from src.scoring.transforms import angle_difference, leeward_alignment, linear
from src.terrain.aspect import AspectGrid

logger = logging.getLogger(__name__)

# Snowfall (inches) at which the snow factor saturates
FULL_SNOWFALL_IN = 6.0

# Wind speed (mph) at which redistribution reaches full strength
FULL_TRANSPORT_MPH = 30.0

# Weakest redistribution, applied in calm conditions
MIN_TRANSPORT = 0.2

NEUTRAL_SCORE = 0.5


def snow_factor(total_snowfall: float) -> float:
    """Fraction of a full powder day's snowfall, in [0, 1]."""
    return linear(total_snowfall, value_range=(0.0, FULL_SNOWFALL_IN))


def wind_transport(avg_wind_speed: float) -> float:
    """Strength of wind redistribution, in [0.2, 1]."""
    return linear(
        avg_wind_speed,
        value_range=(0.0, FULL_TRANSPORT_MPH),
        clip=(MIN_TRANSPORT, 1.0),
    )


def leeward_direction(wind_from_deg: float) -> float:
    """Direction snow is blown toward: opposite the wind-from bearing."""
    return (wind_from_deg + 180.0) % 360.0


def compute_powder_scores(
    aspect: AspectGrid,
    wind_direction: float,
    total_snowfall: float,
    total_precip: float,
    avg_wind_speed: float,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> np.ndarray:
    """
    Compute the powder score of every pixel.

    Args:
        aspect: Aspect grid (undefined pixels masked)
        wind_direction: Dominant wind-from direction in degrees
        total_snowfall: Snowfall over the window in inches
        total_precip: Liquid precipitation in inches. Carried for context;
            the score does not use it
        avg_wind_speed: Average wind speed in mph
        width: Expected grid width, checked against the aspect grid
        height: Expected grid height, checked against the aspect grid

    Returns:
        float32 array of shape (height, width) with scores in [0, 1]
    """
    grid_height, grid_width = aspect.values.shape
    if (width is not None and width != grid_width) or (height is not None and height != grid_height):
        raise ValueError(
            f"Grid size {width}x{height} does not match aspect grid {grid_width}x{grid_height}"
        )

    scores = np.zeros((grid_height, grid_width), dtype=np.float32)

    # No snow: all zeros, overlay will be transparent
    snow = snow_factor(total_snowfall)
    if snow == 0:
        logger.info("No snowfall, all powder scores are zero")
        return scores

    leeward = leeward_direction(wind_direction)
    transport = wind_transport(avg_wind_speed)

    defined = ~np.ma.getmaskarray(aspect.values)
    bearings = np.ma.getdata(aspect.values)[defined]

    leeward_score = leeward_alignment(angle_difference(bearings, leeward))
    scores[defined] = snow * (NEUTRAL_SCORE + (np.asarray(leeward_score) - NEUTRAL_SCORE) * transport)
    scores[~defined] = snow * NEUTRAL_SCORE

    logger.info(
        f"Powder scores: snow factor {snow:.2f}, leeward {leeward:.0f}°, "
        f"transport {transport:.2f}, precip {total_precip:.2f}\", "
        f"mean {float(scores.mean()):.3f}"
    )
    return scores
