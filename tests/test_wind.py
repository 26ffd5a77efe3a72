"""
Tests for dominant wind aggregation.
"""

import math

import pytest

from src.snow.wind import (
    DominantWind,
    WindSample,
    compute_dominant_wind,
    degrees_to_cardinal,
    dominant_wind_from_samples,
    format_inches,
)


class TestComputeDominantWind:
    """Tests for compute_dominant_wind."""

    def test_constant_wind(self):
        wind = compute_dominant_wind([10.0] * 3, [270.0] * 3, [15.0, 20.0, 18.0])
        assert wind.direction_deg == pytest.approx(270.0)
        assert wind.avg_speed_mph == pytest.approx(10.0)
        assert wind.max_gust_mph == pytest.approx(20.0)

    def test_circular_mean_across_north(self):
        """350 and 10 average to north, not south."""
        wind = compute_dominant_wind([10.0, 10.0], [350.0, 10.0])
        assert min(wind.direction_deg, 360 - wind.direction_deg) == pytest.approx(0.0, abs=1e-9)

    def test_speed_weighting(self):
        """Stronger hours pull the bearing toward them."""
        wind = compute_dominant_wind([30.0, 10.0], [270.0, 180.0])
        assert 180.0 < wind.direction_deg < 270.0
        assert wind.direction_deg > 225.0

    def test_precip_weighting_shifts_direction(self):
        """A snowy hour outweighs an equally windy dry hour."""
        dry = compute_dominant_wind([10.0, 10.0], [270.0, 180.0], precip=[0.0, 0.0])
        snowy = compute_dominant_wind([10.0, 10.0], [270.0, 180.0], precip=[0.0, 0.2])
        assert dry.direction_deg == pytest.approx(225.0)
        assert snowy.direction_deg < dry.direction_deg

    def test_precip_does_not_weight_average_speed(self):
        wind = compute_dominant_wind([10.0, 20.0], [270.0, 270.0], precip=[1.0, 0.0])
        assert wind.avg_speed_mph == pytest.approx(15.0)

    def test_skips_missing_samples(self):
        wind = compute_dominant_wind([10.0, None, 20.0], [270.0, 90.0, None])
        assert wind.direction_deg == pytest.approx(270.0)
        assert wind.avg_speed_mph == pytest.approx(10.0)

    def test_direction_in_range(self):
        wind = compute_dominant_wind([5.0, 5.0], [300.0, 340.0])
        assert 0.0 <= wind.direction_deg < 360.0
        assert wind.direction_deg == pytest.approx(320.0)

    def test_missing_gusts_give_zero(self):
        wind = compute_dominant_wind([5.0], [90.0])
        assert wind.max_gust_mph == 0.0

    def test_empty_series(self):
        assert compute_dominant_wind([], []) is None

    def test_all_invalid(self):
        assert compute_dominant_wind([None, None], [None, 90.0]) is None

    def test_calm_has_no_signal(self):
        """Zero total weight gives no direction."""
        assert compute_dominant_wind([0.0, 0.0], [90.0, 270.0]) is None

    def test_shorter_direction_series(self):
        wind = compute_dominant_wind([10.0, 10.0], [90.0])
        assert wind.direction_deg == pytest.approx(90.0)
        assert wind.avg_speed_mph == pytest.approx(10.0)


class TestDominantWindFromSamples:
    """Tests for dominant_wind_from_samples."""

    def test_from_samples(self):
        samples = [
            WindSample(speed_mph=12.0, direction_deg=250.0, gust_mph=20.0, precip_in=0.1),
            WindSample(speed_mph=8.0, direction_deg=250.0, gust_mph=None, precip_in=None),
        ]
        wind = dominant_wind_from_samples(samples)
        assert wind.direction_deg == pytest.approx(250.0)
        assert wind.avg_speed_mph == pytest.approx(10.0)
        assert wind.max_gust_mph == pytest.approx(20.0)
        assert wind.cardinal == "WSW"

    def test_empty(self):
        assert dominant_wind_from_samples([]) is None


class TestCardinal:
    """Tests for degrees_to_cardinal."""

    @pytest.mark.parametrize(
        "deg,expected",
        [
            (0, "N"),
            (11.24, "N"),
            (11.25, "NNE"),
            (90, "E"),
            (180, "S"),
            (270, "W"),
            (348.75, "N"),
            (359.9, "N"),
            (360, "N"),
        ],
    )
    def test_cardinal(self, deg, expected):
        assert degrees_to_cardinal(deg) == expected

    def test_dominant_wind_cardinal(self):
        assert DominantWind(direction_deg=315.0, avg_speed_mph=1, max_gust_mph=2).cardinal == "NW"


class TestFormatInches:
    """Tests for format_inches."""

    def test_value(self):
        assert format_inches(3.14) == '3.1"'

    def test_missing(self):
        assert format_inches(None) == "—"
        assert format_inches(math.nan) == "—"


class TestNumpySeries:
    """compute_dominant_wind accepts numpy arrays as series."""

    def test_arrays(self):
        import numpy as np

        wind = compute_dominant_wind(
            np.array([10.0, 10.0]),
            np.array([270.0, 270.0]),
            gusts=np.array([12.0, 18.0]),
            precip=np.array([0.0, 0.1]),
        )
        assert wind.direction_deg == pytest.approx(270.0)
        assert wind.avg_speed_mph == pytest.approx(10.0)
        assert wind.max_gust_mph == pytest.approx(18.0)

    def test_empty_arrays(self):
        import numpy as np

        assert compute_dominant_wind(np.array([]), np.array([])) is None

    def test_nan_samples_skipped(self):
        import numpy as np

        wind = compute_dominant_wind(
            np.array([10.0, np.nan, 20.0]),
            np.array([90.0, 270.0, np.nan]),
            precip=np.array([np.nan, 0.0, 0.0]),
        )
        assert wind.direction_deg == pytest.approx(90.0)
        assert wind.avg_speed_mph == pytest.approx(10.0)
