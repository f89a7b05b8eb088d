"""
Tests for the tile map terrain model.
"""

import numpy as np
import pytest

from townlink.core.errors import ValidationError
from townlink.core.geometry import (
    INVALID_TILE,
    Direction,
    RoadBits,
    RoadKind,
    Slope,
    TileType,
    TrackBits,
)
from townlink.models.terrain import NO_TOWN, Owner, RailTileKind, RoadTileKind, TileMap


@pytest.fixture
def tile_map():
    return TileMap(6, 4)


class TestCoordinates:
    """Tests for tile addressing."""

    def test_index_round_trip(self, tile_map):
        tile = tile_map.tile_index(4, 2)

        assert tile == 2 * 6 + 4
        assert tile_map.tile_xy(tile) == (4, 2)

    @pytest.mark.parametrize("x,y", [(-1, 0), (6, 0), (0, 4), (0, -1)])
    def test_index_outside_map(self, tile_map, x, y):
        with pytest.raises(ValidationError):
            tile_map.tile_index(x, y)

    def test_invalid_tiles(self, tile_map):
        assert tile_map.is_valid_tile(0)
        assert tile_map.is_valid_tile(23)
        assert not tile_map.is_valid_tile(24)
        assert not tile_map.is_valid_tile(INVALID_TILE)

        with pytest.raises(ValidationError):
            tile_map.tile_xy(INVALID_TILE)

    def test_add_direction(self, tile_map):
        tile = tile_map.tile_index(0, 0)

        assert tile_map.add_direction(tile, Direction.E) == tile_map.tile_index(1, 0)
        assert tile_map.add_direction(tile, Direction.S) == tile_map.tile_index(0, 1)
        assert tile_map.add_direction(tile, Direction.N) == INVALID_TILE
        assert tile_map.add_direction(tile, Direction.W) == INVALID_TILE

    def test_add_direction_does_not_wrap(self, tile_map):
        """Test that stepping east off a row does not land on the next row."""
        assert tile_map.add_direction(tile_map.tile_index(5, 1), Direction.E) == INVALID_TILE

    def test_distance_and_direction(self, tile_map):
        a, b = tile_map.tile_index(1, 1), tile_map.tile_index(4, 3)

        assert tile_map.distance_manhattan(a, b) == 5
        assert tile_map.direction_between_tiles(a, tile_map.tile_index(1, 0)) == Direction.N
        assert tile_map.direction_between_tiles(a, b) is None

    @pytest.mark.parametrize("width,height", [(0, 4), (4, 0), (-2, 3)])
    def test_invalid_size(self, width, height):
        with pytest.raises(ValidationError):
            TileMap(width, height)


class TestFromHeightmap:
    """Tests for slope derivation from corner heights."""

    def test_incline_and_plateau(self):
        tile_map = TileMap.from_heightmap(np.array([[0, 1, 1], [0, 1, 1]]))

        assert (tile_map.width, tile_map.height) == (2, 1)
        assert tile_map.slope_and_height(0) == (Slope.INCLINED_E, 0)
        assert tile_map.slope_and_height(1) == (Slope.FLAT, 1)

    def test_steep_corner(self):
        tile_map = TileMap.from_heightmap([[0, 2], [0, 0]])

        assert tile_map.slope_and_height(0) == (Slope.NE | Slope.STEEP, 0)

    def test_all_clear(self):
        tile_map = TileMap.from_heightmap(np.zeros((4, 5)))

        assert all(tile_map.tile_type(t) == TileType.CLEAR for t in range(12))

    @pytest.mark.parametrize("corners", [[1, 2, 3], [[1]], [[1, 2]]])
    def test_invalid_shape(self, corners):
        with pytest.raises(ValidationError):
            TileMap.from_heightmap(corners)


class TestTileContents:
    """Tests for tile builders and queries."""

    def test_default_tile(self, tile_map):
        tile = tile_map.tile_index(2, 2)

        assert tile_map.tile_type(tile) == TileType.CLEAR
        assert tile_map.slope_and_height(tile) == (Slope.FLAT, 0)
        assert tile_map.get_road_bits(tile) == RoadBits.NONE
        assert tile_map.get_road_owner(tile) == (NO_TOWN, Owner.NONE, Owner.NONE)

    def test_road_tile(self, tile_map):
        tile = tile_map.tile_index(1, 1)
        tile_map.set_road(tile, RoadBits.X, tram_bits=RoadBits.E)

        assert tile_map.is_normal_road_tile(tile)
        assert tile_map.get_road_bits(tile, RoadKind.ROAD) == RoadBits.X
        assert tile_map.get_any_road_bits(tile, RoadKind.TRAM) == RoadBits.E
        assert tile_map.road_tile_count() == 1
        assert tile_map.road_bits_snapshot() == {tile: (int(RoadBits.X), int(RoadBits.E))}

    def test_depot_is_not_normal_road(self, tile_map):
        tile = tile_map.tile_index(1, 1)
        tile_map.set_road(tile, RoadBits.N, kind=RoadTileKind.DEPOT)

        assert tile_map.is_tile_type(tile, TileType.ROAD)
        assert not tile_map.is_normal_road_tile(tile)

    def test_any_road_bits_ignores_other_tiles(self, tile_map):
        tile = tile_map.tile_index(1, 1)
        tile_map.set_road(tile, RoadBits.X)
        tile_map.set_other(tile)

        assert tile_map.get_any_road_bits(tile) == RoadBits.NONE
        assert tile_map.road_tile_count() == 0

    def test_water_and_shore(self, tile_map):
        water, shore = tile_map.tile_index(0, 0), tile_map.tile_index(1, 0)
        tile_map.set_water(water)
        tile_map.set_water(shore, shore=True)

        assert tile_map.is_water(water)
        assert not tile_map.is_shore(water)
        assert tile_map.is_shore(shore)
        assert not tile_map.is_water(shore)

    def test_rail_tile(self, tile_map):
        tile = tile_map.tile_index(3, 2)
        tile_map.set_rail(tile, TrackBits.Y)

        assert tile_map.is_plain_rail_tile(tile)
        assert tile_map.get_track_bits(tile) == TrackBits.Y
        assert not tile_map.is_level_crossing(tile)

        tile_map.set_road_bits(tile, RoadBits.X)
        assert tile_map.is_level_crossing(tile)
        assert tile_map.get_any_road_bits(tile) == RoadBits.X

    def test_rail_with_signals(self, tile_map):
        tile = tile_map.tile_index(3, 2)
        tile_map.set_rail(tile, TrackBits.X, kind=RailTileKind.SIGNALS)

        assert not tile_map.is_plain_rail_tile(tile)

    def test_builder_keeps_slope(self, tile_map):
        tile = tile_map.tile_index(2, 1)
        tile_map.set_slope(tile, Slope.INCLINED_S, 3)
        tile_map.set_trees(tile)

        assert tile_map.slope_and_height(tile) == (Slope.INCLINED_S, 3)

    def test_builder_resets_contents(self, tile_map):
        tile = tile_map.tile_index(2, 1)
        tile_map.make_road_normal(tile, RoadBits.Y, town_id=4)
        tile_map.set_clear(tile)

        assert tile_map.get_road_bits(tile) == RoadBits.NONE
        assert tile_map.get_road_owner(tile) == (NO_TOWN, Owner.NONE, Owner.NONE)

    def test_make_road_normal(self, tile_map):
        tile = tile_map.tile_index(5, 3)
        tile_map.set_trees(tile)
        tile_map.make_road_normal(tile, RoadBits.W, town_id=2, owner=Owner.TOWN)

        assert tile_map.is_normal_road_tile(tile)
        assert tile_map.get_road_bits(tile) == RoadBits.W
        assert tile_map.get_road_owner(tile) == (2, Owner.TOWN, Owner.NONE)

    def test_station_and_bridge(self, tile_map):
        station, bridge = tile_map.tile_index(0, 3), tile_map.tile_index(1, 3)
        tile_map.set_station(station, road_bits=RoadBits.Y)
        tile_map.set_tunnel_bridge(bridge, tram_bits=RoadBits.X)

        assert tile_map.get_any_road_bits(station) == RoadBits.Y
        assert tile_map.get_any_road_bits(bridge, RoadKind.TRAM) == RoadBits.X
        assert not tile_map.is_normal_road_tile(station)
