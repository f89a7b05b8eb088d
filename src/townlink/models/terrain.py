"""
In-memory tile map used as the terrain oracle for road generation.

The map keeps one numpy array per tile attribute (type, slope, height, road
bits per road kind, rail track, ownership...). Tiles are addressed by an
opaque integer index ``y * width + x``.
"""

from enum import IntEnum
from typing import Any, Dict, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from townlink.core.errors import ValidationError
from townlink.core.geometry import (
    INVALID_TILE,
    Direction,
    RoadBits,
    RoadKind,
    Slope,
    TileType,
    TrackBits,
    direction_between,
)

_TILE_TYPES = list(TileType)
_TILE_TYPE_CODES = {tile_type: code for code, tile_type in enumerate(_TILE_TYPES)}

NO_TOWN = -1


class RoadTileKind(IntEnum):
    """Layout of a ROAD tile."""

    NORMAL = 0
    DEPOT = 1


class RailTileKind(IntEnum):
    """Layout of a RAILWAY tile."""

    NORMAL = 0
    SIGNALS = 1
    DEPOT = 2


class Owner(IntEnum):
    """Owner of a piece of road infrastructure."""

    NONE = 0
    TOWN = 1


class TileMap:
    """
    Grid terrain with road, rail and water information.

    All tiles start as flat clear land at height 0.
    """

    def __init__(self, width: int, height: int):
        """
        Initialize an empty tile map.

        Args:
            width: Number of tiles along X
            height: Number of tiles along Y
        """
        if width <= 0 or height <= 0:
            raise ValidationError(
                f"Map size must be positive, got {width}x{height}", field="size"
            )

        self.width = width
        self.height = height

        shape = (height, width)
        self._type: NDArray[np.uint8] = np.full(
            shape, _TILE_TYPE_CODES[TileType.CLEAR], dtype=np.uint8
        )
        self._slope: NDArray[np.uint8] = np.zeros(shape, dtype=np.uint8)
        self._height: NDArray[np.int16] = np.zeros(shape, dtype=np.int16)
        self._road_bits: NDArray[np.uint8] = np.zeros((len(RoadKind),) + shape, dtype=np.uint8)
        self._road_tile_kind: NDArray[np.uint8] = np.zeros(shape, dtype=np.uint8)
        self._rail_tile_kind: NDArray[np.uint8] = np.zeros(shape, dtype=np.uint8)
        self._track_bits: NDArray[np.uint8] = np.zeros(shape, dtype=np.uint8)
        self._shore: NDArray[np.bool_] = np.zeros(shape, dtype=bool)
        self._town: NDArray[np.int32] = np.full(shape, NO_TOWN, dtype=np.int32)
        self._owner: NDArray[np.uint8] = np.zeros(shape, dtype=np.uint8)
        self._secondary_owner: NDArray[np.uint8] = np.zeros(shape, dtype=np.uint8)

    @classmethod
    def from_heightmap(cls, corner_heights: NDArray[Any]) -> "TileMap":
        """
        Build a clear map whose slopes follow a corner height grid.

        Args:
            corner_heights: (height + 1, width + 1) array of integer corner
                heights, indexed [y, x]

        Returns:
            TileMap with slope and height set for every tile
        """
        corners = np.asarray(corner_heights, dtype=np.int16)
        if corners.ndim != 2 or corners.shape[0] < 2 or corners.shape[1] < 2:
            raise ValidationError(
                "Corner heights must be a 2D array of at least 2x2",
                field="corner_heights",
                details={"shape": list(corners.shape)},
            )

        tile_map = cls(corners.shape[1] - 1, corners.shape[0] - 1)

        nw = corners[:-1, :-1]
        ne = corners[:-1, 1:]
        se = corners[1:, 1:]
        sw = corners[1:, :-1]
        low = np.minimum.reduce([nw, ne, se, sw])
        high = np.maximum.reduce([nw, ne, se, sw])

        slope = np.zeros(low.shape, dtype=np.uint8)
        slope |= np.where(nw > low, int(Slope.NW), 0).astype(np.uint8)
        slope |= np.where(ne > low, int(Slope.NE), 0).astype(np.uint8)
        slope |= np.where(se > low, int(Slope.SE), 0).astype(np.uint8)
        slope |= np.where(sw > low, int(Slope.SW), 0).astype(np.uint8)
        slope |= np.where(high - low > 1, int(Slope.STEEP), 0).astype(np.uint8)

        tile_map._slope[:] = slope
        tile_map._height[:] = low
        return tile_map

    # Coordinates

    def tile_index(self, x: int, y: int) -> int:
        """Encode grid coordinates as a tile index."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise ValidationError(
                f"Position ({x}, {y}) is outside the {self.width}x{self.height} map",
                field="position",
            )
        return y * self.width + x

    def tile_xy(self, tile: int) -> Tuple[int, int]:
        """Decode a tile index into (x, y)."""
        if not self.is_valid_tile(tile):
            raise ValidationError(f"Invalid tile index {tile}", field="tile")
        return tile % self.width, tile // self.width

    def is_valid_tile(self, tile: int) -> bool:
        """True if ``tile`` addresses a tile on this map."""
        return 0 <= tile < self.width * self.height

    def add_direction(self, tile: int, direction: Direction) -> int:
        """Tile one step away, or INVALID_TILE when the step leaves the map."""
        x, y = self.tile_xy(tile)
        dx, dy = direction.offset
        nx, ny = x + dx, y + dy
        if not (0 <= nx < self.width and 0 <= ny < self.height):
            return INVALID_TILE
        return ny * self.width + nx

    def distance_manhattan(self, tile_a: int, tile_b: int) -> int:
        """Manhattan distance between two tiles."""
        ax, ay = self.tile_xy(tile_a)
        bx, by = self.tile_xy(tile_b)
        return abs(ax - bx) + abs(ay - by)

    def direction_between_tiles(self, tile_from: int, tile_to: int) -> Optional[Direction]:
        """Direction of the single step between two adjacent tiles."""
        return direction_between(self.tile_xy(tile_from), self.tile_xy(tile_to))

    def _yx(self, tile: int) -> Tuple[int, int]:
        x, y = self.tile_xy(tile)
        return y, x

    # Queries

    def tile_type(self, tile: int) -> TileType:
        """Terrain category of a tile."""
        return _TILE_TYPES[int(self._type[self._yx(tile)])]

    def is_tile_type(self, tile: int, tile_type: TileType) -> bool:
        """True if the tile has the given category."""
        return self.tile_type(tile) == tile_type

    def slope_and_height(self, tile: int) -> Tuple[Slope, int]:
        """Slope and (lowest corner) height of a tile."""
        yx = self._yx(tile)
        return Slope(int(self._slope[yx])), int(self._height[yx])

    def is_normal_road_tile(self, tile: int) -> bool:
        """True for plain road tiles (not depots)."""
        return (
            self.tile_type(tile) == TileType.ROAD
            and self._road_tile_kind[self._yx(tile)] == RoadTileKind.NORMAL
        )

    def get_road_bits(self, tile: int, road_kind: RoadKind = RoadKind.ROAD) -> RoadBits:
        """Road bits stored on the tile for one road kind."""
        return RoadBits(int(self._road_bits[(int(road_kind),) + self._yx(tile)]))

    def get_any_road_bits(self, tile: int, road_kind: RoadKind = RoadKind.ROAD) -> RoadBits:
        """
        Directions the tile connects to for one road kind, whatever its type.

        Tiles that cannot carry road report no bits.
        """
        if self.tile_type(tile) not in (
            TileType.ROAD,
            TileType.RAILWAY,
            TileType.STATION,
            TileType.TUNNELBRIDGE,
        ):
            return RoadBits.NONE
        return self.get_road_bits(tile, road_kind)

    def get_road_owner(self, tile: int) -> Tuple[int, Owner, Owner]:
        """(town id, owner, secondary owner) of the road on a tile."""
        yx = self._yx(tile)
        return int(self._town[yx]), Owner(int(self._owner[yx])), Owner(int(self._secondary_owner[yx]))

    def is_plain_rail_tile(self, tile: int) -> bool:
        """True for railway tiles without signals or depots."""
        return (
            self.tile_type(tile) == TileType.RAILWAY
            and self._rail_tile_kind[self._yx(tile)] == RailTileKind.NORMAL
        )

    def get_track_bits(self, tile: int) -> TrackBits:
        """Rail track pieces on a railway tile."""
        return TrackBits(int(self._track_bits[self._yx(tile)]))

    def is_level_crossing(self, tile: int) -> bool:
        """True for railway tiles that also carry road."""
        return (
            self.tile_type(tile) == TileType.RAILWAY
            and self.get_road_bits(tile, RoadKind.ROAD) != RoadBits.NONE
        )

    def is_water(self, tile: int) -> bool:
        """True for open water (not shore)."""
        return self.tile_type(tile) == TileType.WATER and not bool(self._shore[self._yx(tile)])

    def is_shore(self, tile: int) -> bool:
        """True for water tiles that are coast."""
        return self.tile_type(tile) == TileType.WATER and bool(self._shore[self._yx(tile)])

    def road_tile_count(self) -> int:
        """Number of tiles carrying any road bits."""
        return int(np.count_nonzero(self._road_bits.any(axis=0)))

    def road_bits_snapshot(self) -> Dict[int, Tuple[int, ...]]:
        """Road bits per kind for every tile that has some, keyed by tile."""
        carrying = np.argwhere(self._road_bits.any(axis=0))
        return {
            int(y) * self.width + int(x): tuple(int(bits) for bits in self._road_bits[:, y, x])
            for y, x in carrying
        }

    # Mutations

    def _reset(self, tile: int, tile_type: TileType) -> Tuple[int, int]:
        yx = self._yx(tile)
        self._type[yx] = _TILE_TYPE_CODES[tile_type]
        self._road_bits[(slice(None),) + yx] = 0
        self._road_tile_kind[yx] = RoadTileKind.NORMAL
        self._rail_tile_kind[yx] = RailTileKind.NORMAL
        self._track_bits[yx] = TrackBits.NONE
        self._shore[yx] = False
        self._town[yx] = NO_TOWN
        self._owner[yx] = Owner.NONE
        self._secondary_owner[yx] = Owner.NONE
        return yx

    def set_slope(self, tile: int, slope: Slope, height: int = 0) -> None:
        """Set the slope and height of a tile."""
        yx = self._yx(tile)
        self._slope[yx] = int(slope)
        self._height[yx] = height

    def set_clear(self, tile: int) -> None:
        self._reset(tile, TileType.CLEAR)

    def set_trees(self, tile: int) -> None:
        self._reset(tile, TileType.TREES)

    def set_other(self, tile: int) -> None:
        """Mark a tile as unusable for roads (houses, industry...)."""
        self._reset(tile, TileType.OTHER)

    def set_water(self, tile: int, shore: bool = False) -> None:
        yx = self._reset(tile, TileType.WATER)
        self._shore[yx] = shore

    def set_road(
        self,
        tile: int,
        road_bits: RoadBits,
        tram_bits: RoadBits = RoadBits.NONE,
        kind: RoadTileKind = RoadTileKind.NORMAL,
    ) -> None:
        """Place a road tile with the given road and tram pieces."""
        yx = self._reset(tile, TileType.ROAD)
        self._road_bits[(int(RoadKind.ROAD),) + yx] = int(road_bits)
        self._road_bits[(int(RoadKind.TRAM),) + yx] = int(tram_bits)
        self._road_tile_kind[yx] = kind

    def set_rail(
        self, tile: int, track_bits: TrackBits, kind: RailTileKind = RailTileKind.NORMAL
    ) -> None:
        """Place a railway tile."""
        yx = self._reset(tile, TileType.RAILWAY)
        self._track_bits[yx] = int(track_bits)
        self._rail_tile_kind[yx] = kind

    def set_station(
        self, tile: int, road_bits: RoadBits = RoadBits.NONE, tram_bits: RoadBits = RoadBits.NONE
    ) -> None:
        """Place a station tile, optionally with road stop pieces."""
        yx = self._reset(tile, TileType.STATION)
        self._road_bits[(int(RoadKind.ROAD),) + yx] = int(road_bits)
        self._road_bits[(int(RoadKind.TRAM),) + yx] = int(tram_bits)

    def set_tunnel_bridge(
        self, tile: int, road_bits: RoadBits = RoadBits.NONE, tram_bits: RoadBits = RoadBits.NONE
    ) -> None:
        """Place a tunnel portal or bridge head, optionally carrying road."""
        yx = self._reset(tile, TileType.TUNNELBRIDGE)
        self._road_bits[(int(RoadKind.ROAD),) + yx] = int(road_bits)
        self._road_bits[(int(RoadKind.TRAM),) + yx] = int(tram_bits)

    def set_road_bits(
        self, tile: int, road_bits: RoadBits, road_kind: RoadKind = RoadKind.ROAD
    ) -> None:
        """Overwrite the road bits of one road kind on an existing tile."""
        self._road_bits[(int(road_kind),) + self._yx(tile)] = int(road_bits)

    def set_road_owner(
        self,
        tile: int,
        town_id: int,
        owner: Owner = Owner.TOWN,
        secondary_owner: Owner = Owner.NONE,
    ) -> None:
        """Record who owns the road on a tile."""
        yx = self._yx(tile)
        self._town[yx] = town_id
        self._owner[yx] = owner
        self._secondary_owner[yx] = secondary_owner

    def make_road_normal(
        self,
        tile: int,
        road_bits: RoadBits,
        town_id: int,
        owner: Owner = Owner.TOWN,
        secondary_owner: Owner = Owner.NONE,
    ) -> None:
        """
        Turn a tile into a plain road tile.

        Args:
            tile: Tile to convert
            road_bits: Road pieces to place
            town_id: Settlement the road belongs to
            owner: Owner of the road
            secondary_owner: Owner of any second road kind on the tile
        """
        self.set_road(tile, road_bits)
        self.set_road_owner(tile, town_id, owner, secondary_owner)

    def __repr__(self) -> str:
        return f"TileMap(width={self.width}, height={self.height})"
