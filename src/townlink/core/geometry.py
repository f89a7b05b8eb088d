"""
Grid geometry primitives for road planning.

This module defines the small value types shared by the terrain map, the
connectivity rules and the search engine:
- Cardinal directions with their offsets, axes and reverses
- Road bit sets over those directions
- Corner-based tile slopes
- The tile hash used to bucket search nodes
"""

from enum import Enum, IntEnum, IntFlag
from typing import Optional, Tuple

INVALID_TILE = -1


class Axis(IntEnum):
    """Tile axis: X runs east-west, Y runs north-south."""

    X = 0
    Y = 1


class Direction(IntEnum):
    """Cardinal step directions on the tile grid."""

    N = 0
    E = 1
    S = 2
    W = 3

    @property
    def offset(self) -> Tuple[int, int]:
        """(dx, dy) of one step in this direction."""
        return _OFFSETS[self]

    @property
    def axis(self) -> Axis:
        """Axis this direction runs along."""
        return Axis.X if self in (Direction.E, Direction.W) else Axis.Y

    def reverse(self) -> "Direction":
        """Opposite direction."""
        return Direction((self + 2) % 4)


_OFFSETS = {
    Direction.N: (0, -1),
    Direction.E: (1, 0),
    Direction.S: (0, 1),
    Direction.W: (-1, 0),
}


class RoadBits(IntFlag):
    """Set of directions a road piece on a tile connects to."""

    NONE = 0
    N = 1
    E = 2
    S = 4
    W = 8
    X = E | W
    Y = N | S
    ALL = N | E | S | W


class TrackBits(IntFlag):
    """Rail track pieces on a tile (straight pieces only)."""

    NONE = 0
    X = 1  # track running along the X axis
    Y = 2  # track running along the Y axis


class Slope(IntFlag):
    """
    Tile slope as the set of raised corners.

    A tile is flat when no corner is raised. Raising exactly the two corners
    of one side gives an inclined slope, the only non-flat slope a road can
    run on. STEEP marks a corner two levels above the lowest one.
    """

    FLAT = 0
    NW = 1
    NE = 2
    SE = 4
    SW = 8
    STEEP = 16

    INCLINED_N = NW | NE
    INCLINED_E = NE | SE
    INCLINED_S = SE | SW
    INCLINED_W = SW | NW


INCLINED_SLOPES = frozenset(
    {Slope.INCLINED_N, Slope.INCLINED_E, Slope.INCLINED_S, Slope.INCLINED_W}
)


class TileType(str, Enum):
    """Terrain categories the road generator distinguishes."""

    CLEAR = "clear"
    TREES = "trees"
    ROAD = "road"
    RAILWAY = "railway"
    WATER = "water"
    TUNNELBRIDGE = "tunnelbridge"
    STATION = "station"
    OTHER = "other"


class RoadKind(IntEnum):
    """Road sub-types that may share a tile."""

    ROAD = 0
    TRAM = 1


def direction_to_road_bits(direction: Direction) -> RoadBits:
    """Road bit pointing in ``direction``."""
    return RoadBits(1 << int(direction))


def mirror_road_bits(road_bits: RoadBits) -> RoadBits:
    """Swap every bit with the bit of the opposite direction."""
    mirrored = RoadBits.NONE
    for direction in Direction:
        if road_bits & direction_to_road_bits(direction):
            mirrored |= direction_to_road_bits(direction.reverse())
    return mirrored


def axis_to_road_bits(axis: Axis) -> RoadBits:
    """Straight road piece along ``axis``."""
    return RoadBits.X if axis == Axis.X else RoadBits.Y


def axis_to_track_bits(axis: Axis) -> TrackBits:
    """Straight track piece along ``axis``."""
    return TrackBits.X if axis == Axis.X else TrackBits.Y


def is_inclined_slope(slope: Slope) -> bool:
    """True for the four single-side inclines."""
    return slope in INCLINED_SLOPES


def direction_between(
    begin: Tuple[int, int], end: Tuple[int, int]
) -> Optional[Direction]:
    """
    Direction of a single step from ``begin`` to ``end``.

    Returns None when the two positions are not orthogonal neighbours.
    """
    step = (end[0] - begin[0], end[1] - begin[1])
    for direction, offset in _OFFSETS.items():
        if offset == step:
            return direction
    return None


def tile_hash(x: int, y: int) -> int:
    """Mix grid coordinates into an unsigned 32 bit hash."""
    value = x >> 4
    value ^= x
    value ^= y >> 4
    value -= y
    return value & 0xFFFFFFFF
