"""
Weather data collaborators.

Fetches and reduces the three weather sources behind the powder score:
- SNOTEL hourly report (CSV): precipitation and SWE deltas, snow depth
- Resort snow report (JSON): staff-reported 12/24/48h snowfall
- Open-Meteo hourly forecast (JSON): wind speed, direction, gusts, precip

Snowfall is estimated from SNOTEL liquid precipitation times a
snow-to-liquid ratio and averaged with the resort figure when both exist.
"""

import csv
import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from src import config
from src.snow.wind import WindSample

logger = logging.getLogger(__name__)

HOURLY_WIND_FIELDS = (
    "time",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "precipitation",
)


class WeatherFetchError(RuntimeError):
    """Raised when a weather source is unreachable or returns an error status."""


class WeatherDataError(ValueError):
    """Raised when a weather response has too few records to summarize."""


@dataclass(frozen=True)
class SnotelReport:
    """Snow figures derived from one SNOTEL lookback window."""

    total_snowfall: float
    total_precip: float
    swe_change: float
    base_depth: Optional[float]
    temp_f: Optional[float]


@dataclass(frozen=True)
class ResortSnow:
    """Resort-reported snowfall and base depth in inches."""

    snow_12h: Optional[float]
    snow_24h: Optional[float]
    snow_48h: Optional[float]
    base_depth: Optional[float]


# =============================================================================
# SNOTEL
# =============================================================================


def snotel_url(hours: int) -> str:
    """Build the SNOTEL report URL for a lookback period."""
    return f"{config.SNOTEL_BASE_URL}-{hours},0/{config.SNOTEL_ELEMENTS}"


def _parse_float(value: str) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_snotel_csv(text: str) -> List[Dict[str, Any]]:
    """
    Parse the SNOTEL Report Generator CSV into row dicts.

    Comment lines (#) and blank lines are skipped, as is the first remaining
    line (the header). Rows with fewer than five columns are ignored and
    unparsable values become None.

    Args:
        text: CSV response body

    Returns:
        List of dicts with keys date, snwd, prec, wteq, tobs
    """
    lines = [
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]

    rows = []
    for cols in csv.reader(io.StringIO("\n".join(lines[1:]))):
        if len(cols) < 5:
            continue
        rows.append(
            {
                "date": cols[0].strip(),
                "snwd": _parse_float(cols[1]),
                "prec": _parse_float(cols[2]),
                "wteq": _parse_float(cols[3]),
                "tobs": _parse_float(cols[4]),
            }
        )
    return rows


def _positive_delta(first: Optional[float], last: Optional[float]) -> float:
    if first is None or last is None:
        return 0.0
    return max(0.0, last - first)


def summarize_snotel(
    rows: List[Dict[str, Any]],
    snow_liquid_ratio: float = config.SNOW_LIQUID_RATIO,
) -> SnotelReport:
    """
    Reduce SNOTEL rows to new precipitation, SWE change and estimated snowfall.

    Precipitation is water-year cumulative, so new precip is the difference
    between the last and first rows.

    Args:
        rows: Parsed rows in chronological order
        snow_liquid_ratio: Snow depth per unit of liquid precipitation

    Returns:
        SnotelReport

    Raises:
        WeatherDataError: If fewer than two rows are available
    """
    if len(rows) < 2:
        raise WeatherDataError(f"Not enough SNOTEL data ({len(rows)} rows)")

    first = rows[0]
    last = rows[-1]

    total_precip = _positive_delta(first["prec"], last["prec"])
    swe_change = _positive_delta(first["wteq"], last["wteq"])

    return SnotelReport(
        total_snowfall=total_precip * snow_liquid_ratio,
        total_precip=total_precip,
        swe_change=swe_change,
        base_depth=last["snwd"],
        temp_f=last["tobs"],
    )


def _get(session: Optional[requests.Session], url: str, source: str) -> requests.Response:
    http = session or requests
    try:
        response = http.get(url, timeout=config.REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise WeatherFetchError(f"{source} request failed: {e}") from e
    if not response.ok:
        raise WeatherFetchError(f"{source} returned {response.status_code}")
    return response


def fetch_snotel_data(hours: int = 24, session: Optional[requests.Session] = None) -> SnotelReport:
    """
    Fetch hourly SNOTEL data for a lookback period and derive snowfall.

    Args:
        hours: Lookback period (12, 24, or 48)
        session: Optional requests session

    Returns:
        SnotelReport

    Raises:
        WeatherFetchError: If the request fails
        WeatherDataError: If the report has fewer than two rows
    """
    response = _get(session, snotel_url(hours), "SNOTEL")
    report = summarize_snotel(parse_snotel_csv(response.text))
    logger.info(
        f"SNOTEL {hours}h: {report.total_precip:.2f}\" precip -> "
        f"{report.total_snowfall:.1f}\" snow"
    )
    return report


# =============================================================================
# Resort report
# =============================================================================


def parse_resort_snow(data: Dict[str, Any]) -> ResortSnow:
    """
    Extract snowfall fields from the resort report JSON.

    Raises:
        WeatherDataError: If the expected fields are absent
    """
    try:
        snow = data["conditions"]["currentSnow"]
        return ResortSnow(
            snow_12h=snow["freshSnowFallDepth12H"]["countryValue"],
            snow_24h=snow["freshSnowFallDepth24H"]["countryValue"],
            snow_48h=snow["freshSnowFallDepth48H"]["countryValue"],
            base_depth=snow["snowTotalDepth"]["countryValue"],
        )
    except (KeyError, TypeError) as e:
        raise WeatherDataError(f"Unexpected resort report format: {e}") from e


def fetch_resort_snow(url: str, session: Optional[requests.Session] = None) -> ResortSnow:
    """
    Fetch the resort-reported snow figures.

    Raises:
        WeatherFetchError: If the request fails or the body is not JSON
        WeatherDataError: If the expected fields are absent
    """
    response = _get(session, url, "Resort API")
    try:
        data = response.json()
    except ValueError as e:
        raise WeatherFetchError(f"Resort API returned invalid JSON: {e}") from e
    return parse_resort_snow(data)


def resort_snow_for_period(resort: Optional[ResortSnow], hours: int) -> Optional[float]:
    """Pick the resort figure matching a lookback period."""
    if resort is None:
        return None
    if hours <= 12:
        return resort.snow_12h
    if hours <= 24:
        return resort.snow_24h
    return resort.snow_48h


def average_snowfall(snotel_snowfall: Optional[float], resort_snowfall: Optional[float]) -> float:
    """
    Average SNOTEL-derived and resort-reported snowfall.

    If one source is missing the other is used; if both are missing, 0.
    """
    if snotel_snowfall is not None and resort_snowfall is not None:
        return (snotel_snowfall + resort_snowfall) / 2
    if snotel_snowfall is not None:
        return snotel_snowfall
    if resort_snowfall is not None:
        return resort_snowfall
    return 0.0


# =============================================================================
# Open-Meteo wind
# =============================================================================


def wind_url(hours: int) -> str:
    """Build the Open-Meteo URL covering a lookback period."""
    past_days = 1 if hours <= 24 else 2
    return f"{config.WIND_BASE_URL}&past_days={past_days}"


def trim_hourly(hourly: Dict[str, List], hours: int) -> Dict[str, List]:
    """
    Keep only the last `hours` entries of every hourly series.

    Open-Meteo returns whole days, so the window is cut from the end.
    """
    if "time" not in hourly:
        return dict(hourly)
    total = len(hourly["time"])
    start = total - min(hours, total)
    return {key: list(values)[start:] for key, values in hourly.items()}


def fetch_wind_data(hours: int = 24, session: Optional[requests.Session] = None) -> Dict[str, List]:
    """
    Fetch hourly wind data for a lookback period.

    Args:
        hours: Lookback period (12, 24, or 48)
        session: Optional requests session

    Returns:
        Hourly series dict (time, wind_speed_10m, wind_direction_10m,
        wind_gusts_10m, precipitation) trimmed to the last `hours` entries

    Raises:
        WeatherFetchError: If the request fails or the body is malformed
    """
    response = _get(session, wind_url(hours), "Wind API")
    try:
        data = response.json()
    except ValueError as e:
        raise WeatherFetchError(f"Wind API returned invalid JSON: {e}") from e

    hourly = data.get("hourly") if isinstance(data, dict) else None
    if not isinstance(hourly, dict):
        raise WeatherFetchError("Wind API response has no hourly data")

    hourly = trim_hourly(hourly, hours)
    logger.info(f"Wind data: {len(hourly.get('time', []))} hourly samples")
    return hourly


def samples_from_hourly(hourly: Dict[str, List]) -> List[WindSample]:
    """Convert Open-Meteo hourly series to WindSample records."""
    speeds = hourly.get("wind_speed_10m") or []
    directions = hourly.get("wind_direction_10m") or []
    gusts = hourly.get("wind_gusts_10m") or []
    precip = hourly.get("precipitation") or []

    def at(values, i):
        return values[i] if i < len(values) else None

    return [
        WindSample(
            speed_mph=speed,
            direction_deg=at(directions, i),
            gust_mph=at(gusts, i),
            precip_in=at(precip, i),
        )
        for i, speed in enumerate(speeds)
    ]


class WeatherClient:
    """
    Weather collaborator bundling the three sources behind one object.

    Attributes:
        session: Shared requests session
        resort_url: Resort report URL, or None to skip that source
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        resort_url: Optional[str] = config.RESORT_API_URL,
    ):
        self.session = session or requests.Session()
        self.resort_url = resort_url

    def snotel(self, hours: int) -> SnotelReport:
        return fetch_snotel_data(hours, session=self.session)

    def wind(self, hours: int) -> List[WindSample]:
        return samples_from_hourly(fetch_wind_data(hours, session=self.session))

    def resort(self) -> Optional[ResortSnow]:
        if not self.resort_url:
            logger.debug("No resort API configured")
            return None
        return fetch_resort_snow(self.resort_url, session=self.session)
