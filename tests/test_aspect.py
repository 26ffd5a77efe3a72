"""
Tests for Horn's-method aspect computation.

Bearings follow atan2(dz/dx, -dz/dy) with rows increasing southward, so a
plane rising toward the east reads 90 and one rising toward the north reads 0.
"""

import numpy as np
import pytest

from src.terrain.aspect import AspectGrid, compute_aspect_grid, horn_gradients
from src.terrain.stitching import ElevationGrid


def _plane(dx=0.0, dy=0.0, size=6):
    """Plane with slope dx per column (east) and dy per row (south)."""
    rows, cols = np.mgrid[0:size, 0:size].astype(np.float64)
    return ElevationGrid((1000.0 + dx * cols + dy * rows).astype(np.float32))


def _interior(aspect: AspectGrid):
    return np.ma.getdata(aspect.values)[1:-1, 1:-1]


class TestComputeAspectGrid:
    """Tests for compute_aspect_grid."""

    def test_shape_matches_elevation(self, sample_dem):
        aspect = compute_aspect_grid(ElevationGrid(sample_dem), cell_size=10.0)
        assert (aspect.height, aspect.width) == sample_dem.shape

    def test_rising_east(self):
        aspect = compute_aspect_grid(_plane(dx=1.0), cell_size=1.0)
        np.testing.assert_allclose(_interior(aspect), 90.0, atol=1e-4)

    def test_rising_west(self):
        aspect = compute_aspect_grid(_plane(dx=-1.0), cell_size=1.0)
        np.testing.assert_allclose(_interior(aspect), 270.0, atol=1e-4)

    def test_rising_south(self):
        aspect = compute_aspect_grid(_plane(dy=1.0), cell_size=1.0)
        np.testing.assert_allclose(_interior(aspect), 180.0, atol=1e-4)

    def test_rising_north(self):
        aspect = compute_aspect_grid(_plane(dy=-1.0), cell_size=1.0)
        assert np.all(_interior(aspect) == 0.0)

    def test_diagonal(self):
        aspect = compute_aspect_grid(_plane(dx=1.0, dy=1.0), cell_size=1.0)
        np.testing.assert_allclose(_interior(aspect), 135.0, atol=1e-4)

    def test_edges_undefined(self, sample_dem):
        aspect = compute_aspect_grid(ElevationGrid(sample_dem), cell_size=10.0)
        defined = aspect.defined
        assert not defined[0, :].any()
        assert not defined[-1, :].any()
        assert not defined[:, 0].any()
        assert not defined[:, -1].any()

    def test_flat_undefined(self):
        aspect = compute_aspect_grid(_plane(), cell_size=1.0)
        assert not aspect.defined.any()

    def test_flat_patch_in_slope(self):
        """A 3x3 flat window is undefined at its center, slopes around it are not."""
        elev = np.tile(np.arange(9, dtype=np.float32), (9, 1))
        elev[2:7, 2:7] = 100.0
        aspect = compute_aspect_grid(ElevationGrid(elev), cell_size=1.0)
        assert not aspect.defined[4, 4]
        assert aspect.defined[4, 1]

    def test_defined_values_in_range(self, sample_dem):
        aspect = compute_aspect_grid(ElevationGrid(sample_dem), cell_size=10.0)
        values = aspect.values.compressed()
        assert values.size > 0
        assert np.all(values >= 0.0)
        assert np.all(values < 360.0)

    def test_peak_faces_outward(self, sample_dem):
        """East of a central peak reads about 270, west of it about 90."""
        aspect = compute_aspect_grid(ElevationGrid(sample_dem), cell_size=10.0)
        data = np.ma.getdata(aspect.values)
        assert data[50, 75] == pytest.approx(270.0, abs=3.0)
        assert data[50, 25] == pytest.approx(90.0, abs=3.0)

    def test_cell_size_does_not_change_bearing(self):
        a = compute_aspect_grid(_plane(dx=2.0, dy=1.0), cell_size=1.0)
        b = compute_aspect_grid(_plane(dx=2.0, dy=1.0), cell_size=7.5)
        np.testing.assert_allclose(_interior(a), _interior(b), atol=1e-4)

    def test_non_positive_cell_size_raises(self):
        with pytest.raises(ValueError):
            compute_aspect_grid(_plane(dx=1.0), cell_size=0.0)

    def test_undefined_pixels_hold_no_bearing(self, sample_dem):
        aspect = compute_aspect_grid(ElevationGrid(sample_dem), cell_size=10.0)
        data = np.ma.getdata(aspect.values)
        assert np.all(np.isnan(data[~aspect.defined]))


class TestHornGradients:
    """Tests for horn_gradients."""

    def test_gradient_magnitude(self):
        dzdx, dzdy = horn_gradients(_plane(dx=3.0).values, cell_size=1.5)
        np.testing.assert_allclose(dzdx[1:-1, 1:-1], 2.0)
        np.testing.assert_allclose(dzdy[1:-1, 1:-1], 0.0)


class TestAspectGrid:
    """Tests for AspectGrid.from_arrays."""

    def test_masks_undefined(self):
        bearings = np.array([[10.0, 20.0]])
        undefined = np.array([[False, True]])
        grid = AspectGrid.from_arrays(bearings, undefined)
        assert grid.defined.tolist() == [[True, False]]
        assert float(grid.values[0, 0]) == pytest.approx(10.0)

    def test_wraps_360(self):
        grid = AspectGrid.from_arrays(np.array([[360.0]]), np.array([[False]]))
        assert float(grid.values[0, 0]) == 0.0
