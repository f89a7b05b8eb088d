"""
Terrain legality rules for road pieces.

This module decides whether a road piece may point from one tile to its
neighbour, and whether a single-step edge between two tiles can carry a road
given their slopes.
"""

from townlink.core.errors import GeometryError
from townlink.core.geometry import (
    Axis,
    Direction,
    RoadBits,
    RoadKind,
    Slope,
    TileType,
    axis_to_track_bits,
    direction_to_road_bits,
    is_inclined_slope,
    mirror_road_bits,
)
from townlink.models.terrain import TileMap


def is_possible_crossing(tile_map: TileMap, tile: int, axis: Axis) -> bool:
    """
    Check whether a road along ``axis`` may cross the rail on ``tile``.

    Args:
        tile_map: Terrain to inspect
        tile: Candidate crossing tile
        axis: Axis of the road over the rail

    Returns:
        True for a plain, flat railway tile whose only track is perpendicular
        to the road
    """
    if not tile_map.is_tile_type(tile, TileType.RAILWAY):
        return False
    perpendicular = axis_to_track_bits(Axis.Y if axis == Axis.X else Axis.X)
    slope, _ = tile_map.slope_and_height(tile)
    return (
        tile_map.is_plain_rail_tile(tile)
        and tile_map.get_track_bits(tile) == perpendicular
        and slope == Slope.FLAT
    )


def _is_connective(tile_map: TileMap, neighbour: int, direction: Direction) -> bool:
    """Whether the neighbour reached by ``direction`` can continue a road."""
    if not tile_map.is_valid_tile(neighbour):
        return False

    tile_type = tile_map.tile_type(neighbour)

    if tile_type in (TileType.CLEAR, TileType.TREES):
        return True

    if tile_type in (TileType.TUNNELBRIDGE, TileType.STATION, TileType.ROAD):
        if tile_map.is_normal_road_tile(neighbour):
            return True
        neighbour_bits = tile_map.get_any_road_bits(
            neighbour, RoadKind.ROAD
        ) | tile_map.get_any_road_bits(neighbour, RoadKind.TRAM)
        mirrored = mirror_road_bits(direction_to_road_bits(direction))
        return (neighbour_bits & mirrored) != RoadBits.NONE

    if tile_type == TileType.RAILWAY:
        return is_possible_crossing(tile_map, neighbour, direction.axis)

    if tile_type == TileType.WATER:
        return not tile_map.is_water(neighbour)

    return False


def clean_up_road_bits(tile_map: TileMap, tile: int, road_bits: RoadBits) -> RoadBits:
    """
    Drop planned road pieces that would point at an unconnectable neighbour.

    Args:
        tile_map: Terrain to inspect
        tile: Tile the road pieces are planned on
        road_bits: Planned road pieces

    Returns:
        The subset of ``road_bits`` whose neighbours can carry the road on
    """
    if not tile_map.is_valid_tile(tile):
        return RoadBits.NONE

    cleaned = RoadBits(road_bits)
    for direction in Direction:
        target_bits = direction_to_road_bits(direction)
        if not cleaned & target_bits:
            continue

        neighbour = tile_map.add_direction(tile, direction)
        if not _is_connective(tile_map, neighbour, direction):
            cleaned ^= target_bits

    return RoadBits(cleaned & RoadBits.ALL)


def can_build_road_from_to(tile_map: TileMap, begin: int, end: int) -> bool:
    """
    Check whether the slopes of two adjacent tiles allow a road between them.

    The end tile must be flat or a plain incline, and the incline must either
    continue from the begin tile at a different height or meet flat ground.

    Raises:
        GeometryError: If the tiles are not exactly one step apart
    """
    if tile_map.distance_manhattan(begin, end) != 1:
        raise GeometryError(
            "Road edges can only join adjacent tiles",
            tiles=[begin, end],
        )

    slope_begin, height_begin = tile_map.slope_and_height(begin)
    slope_end, height_end = tile_map.slope_and_height(end)

    return (slope_end == Slope.FLAT or is_inclined_slope(slope_end)) and (
        (slope_end == slope_begin and height_end != height_begin)
        or slope_end == Slope.FLAT
        or slope_begin == Slope.FLAT
    )

