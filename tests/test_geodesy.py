"""
Tests for slippy-map tile geodesy.

Covers tile lookup, tile footprints, pixel ground size and the tile range
and placement rectangle for a bounding box.
"""

import math

import pytest

from src.terrain.geodesy import (
    GeoBounds,
    TileCoord,
    TileRange,
    cell_size_meters,
    grid_bounds,
    lon_lat_to_tile,
    tile_range,
    tile_to_bounds,
)


class TestLonLatToTile:
    """Tests for lon_lat_to_tile."""

    def test_origin_at_zoom_zero(self):
        """Everything lies in the single tile at zoom 0."""
        assert lon_lat_to_tile(0.0, 0.0, 0) == TileCoord(0, 0, 0)

    def test_origin_at_zoom_one(self):
        """(0, 0) falls on the south-east quadrant at zoom 1."""
        assert lon_lat_to_tile(0.0, 0.0, 1) == TileCoord(1, 1, 1)

    def test_western_hemisphere_north(self):
        """North-west quadrant at zoom 1."""
        assert lon_lat_to_tile(-100.0, 45.0, 1) == TileCoord(0, 0, 1)

    def test_known_tile_powder_mountain(self):
        """The resort center falls in the expected zoom-14 tile."""
        coord = lon_lat_to_tile(-111.7808, 41.3797, 14)
        expected_x = math.floor((-111.7808 + 180) / 360 * 2 ** 14)
        lat = math.radians(41.3797)
        expected_y = math.floor(
            (1 - math.log(math.tan(lat) + 1 / math.cos(lat)) / math.pi) / 2 * 2 ** 14
        )
        assert coord == TileCoord(expected_x, expected_y, 14)

    def test_indices_are_ints(self):
        """Indices are plain ints for in-domain input."""
        coord = lon_lat_to_tile(10.0, 20.0, 5)
        assert isinstance(coord.x, int)
        assert isinstance(coord.y, int)

    def test_nan_input_propagates(self):
        """NaN input yields NaN indices instead of raising."""
        coord = lon_lat_to_tile(float("nan"), float("nan"), 3)
        assert math.isnan(coord.x)
        assert math.isnan(coord.y)


class TestTileToBounds:
    """Tests for tile_to_bounds."""

    def test_zoom_zero_covers_world(self):
        """The single zoom-0 tile spans the whole Web Mercator world."""
        b = tile_to_bounds(0, 0, 0)
        assert b["lon_min"] == pytest.approx(-180.0)
        assert b["lon_max"] == pytest.approx(180.0)
        assert b["lat_max"] == pytest.approx(85.0511, abs=1e-4)
        assert b["lat_min"] == pytest.approx(-85.0511, abs=1e-4)

    def test_round_trip_contains_point(self):
        """A point lies inside the footprint of the tile containing it."""
        lon, lat, zoom = -111.7808, 41.3797, 14
        coord = lon_lat_to_tile(lon, lat, zoom)
        b = tile_to_bounds(coord.x, coord.y, zoom)
        assert b["lon_min"] <= lon < b["lon_max"]
        assert b["lat_min"] < lat <= b["lat_max"]

    def test_adjacent_tiles_share_edges(self):
        """Neighboring tiles meet exactly."""
        a = tile_to_bounds(5, 7, 4)
        east = tile_to_bounds(6, 7, 4)
        south = tile_to_bounds(5, 8, 4)
        assert a["lon_max"] == pytest.approx(east["lon_min"])
        assert a["lat_min"] == pytest.approx(south["lat_max"])


class TestCellSize:
    """Tests for cell_size_meters."""

    def test_equator_zoom_zero(self):
        """One zoom-0 pixel at the equator is circumference / 256."""
        assert cell_size_meters(0, 0.0) == pytest.approx(40075016.686 / 256)

    def test_halves_per_zoom(self):
        """Each zoom level halves the pixel size."""
        assert cell_size_meters(11, 30.0) == pytest.approx(cell_size_meters(10, 30.0) / 2)

    def test_resolution_multiplier(self):
        """@2x tiles halve the ground size per pixel."""
        assert cell_size_meters(14, 41.38, resolution=2) == pytest.approx(
            cell_size_meters(14, 41.38) / 2
        )

    def test_powder_mountain_scale(self):
        """About 3.6 m per pixel for @2x tiles at zoom 14 over the resort."""
        size = cell_size_meters(14, 41.385, resolution=2)
        assert 3.4 < size < 3.8


class TestGeoBounds:
    """Tests for GeoBounds validation."""

    def test_valid_bounds(self):
        b = GeoBounds(south=41.35, west=-111.82, north=41.42, east=-111.73)
        assert b.mid_lat == pytest.approx(41.385)

    def test_inverted_latitudes_rejected(self):
        with pytest.raises(ValueError):
            GeoBounds(south=41.42, west=-111.82, north=41.35, east=-111.73)

    def test_degenerate_longitudes_rejected(self):
        with pytest.raises(ValueError):
            GeoBounds(south=41.35, west=-111.8, north=41.42, east=-111.8)

    def test_from_tuple(self):
        b = GeoBounds.from_tuple((41.35, -111.82, 41.42, -111.73))
        assert (b.south, b.west, b.north, b.east) == (41.35, -111.82, 41.42, -111.73)

    def test_from_tuple_wrong_length(self):
        with pytest.raises(ValueError):
            GeoBounds.from_tuple((1.0, 2.0, 3.0))


class TestTileRange:
    """Tests for tile_range and TileRange."""

    def test_range_spans_corner_tiles(self, sample_bounds):
        """The range runs from the north-west to the south-east corner tile."""
        tiles = tile_range(sample_bounds, 14)
        nw = lon_lat_to_tile(sample_bounds.west, sample_bounds.north, 14)
        se = lon_lat_to_tile(sample_bounds.east, sample_bounds.south, 14)
        assert (tiles.min_x, tiles.min_y) == (nw.x, nw.y)
        assert (tiles.max_x, tiles.max_y) == (se.x, se.y)
        assert tiles.cols >= 1 and tiles.rows >= 1

    def test_iteration_is_row_major(self):
        tiles = TileRange(min_x=10, max_x=11, min_y=20, max_y=21, zoom=5)
        coords = [(c.x, c.y) for c in tiles]
        assert coords == [(10, 20), (11, 20), (10, 21), (11, 21)]
        assert len(tiles) == 4

    def test_offset(self):
        tiles = TileRange(min_x=10, max_x=12, min_y=20, max_y=21, zoom=5)
        assert tiles.offset(TileCoord(12, 21, 5)) == (2, 1)

    def test_single_tile_box(self):
        """A box inside one tile gives a 1x1 range."""
        b = GeoBounds(south=41.380, west=-111.781, north=41.381, east=-111.780)
        tiles = tile_range(b, 10)
        assert (tiles.cols, tiles.rows) == (1, 1)


class TestGridBounds:
    """Tests for grid_bounds."""

    def test_contains_requested_bounds(self, sample_bounds):
        placement = grid_bounds(sample_bounds, 14)
        assert placement["north"] >= sample_bounds.north
        assert placement["south"] <= sample_bounds.south
        assert placement["west"] <= sample_bounds.west
        assert placement["east"] >= sample_bounds.east

    def test_matches_corner_tile_edges(self, sample_bounds):
        tiles = tile_range(sample_bounds, 14)
        placement = grid_bounds(sample_bounds, 14)
        top_left = tile_to_bounds(tiles.min_x, tiles.min_y, 14)
        bottom_right = tile_to_bounds(tiles.max_x, tiles.max_y, 14)
        assert placement["north"] == top_left["lat_max"]
        assert placement["west"] == top_left["lon_min"]
        assert placement["south"] == bottom_right["lat_min"]
        assert placement["east"] == bottom_right["lon_max"]
