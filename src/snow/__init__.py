"""
Snow and wind data processing.

This module provides utilities for working with weather inputs:
- Dominant wind aggregation (snow-weighted circular mean)
- SNOTEL, resort report and Open-Meteo collaborators
"""

from .wind import (
    WindSample,
    DominantWind,
    compute_dominant_wind,
    dominant_wind_from_samples,
)
from .weather import (
    WeatherClient,
    average_snowfall,
    fetch_snotel_data,
    fetch_wind_data,
)

__all__ = [
    "WindSample",
    "DominantWind",
    "compute_dominant_wind",
    "dominant_wind_from_samples",
    "WeatherClient",
    "average_snowfall",
    "fetch_snotel_data",
    "fetch_wind_data",
]
