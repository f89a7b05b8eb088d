"""
Public road network generation.

This module connects every settlement on a tile map with public roads:
- Settlements are taken smallest first and linked to the others nearest first
- Each link is an A* search over buildable terrain
- Found paths are written onto the map as road tiles, merging with existing
  roads and crossing railways where the track allows it
- Settlements that could not be reached are retried in later rounds; one
  that reaches nothing from its own round tries to join the roads already
  built, and is reported unreachable only if that fails too
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from shapely.geometry import LineString

from townlink.core.config import settings
from townlink.core.errors import UnreachableSettlementError
from townlink.core.logging_config import LogContext
from townlink.core.geometry import (
    Direction,
    RoadBits,
    RoadKind,
    TileType,
    direction_to_road_bits,
    tile_hash,
)
from townlink.core.roads.connectivity import (
    can_build_road_from_to,
    clean_up_road_bits,
    is_possible_crossing,
)
from townlink.core.roads.graph import RoadGraph
from townlink.core.roads.search import (
    BestFirstSearch,
    HashFunction,
    PathNode,
    SearchNode,
    SearchResult,
    SearchStrategy,
)
from townlink.models.settlement import Settlement, SettlementRegistry
from townlink.models.terrain import Owner, TileMap
from townlink.utils.logging import PerformanceTimer

logger = logging.getLogger(__name__)


@dataclass
class GeneratorConfig:
    """
    Configuration for public road generation.

    Attributes:
        hash_bits: Bits of the tile hash; the search uses 2**hash_bits buckets
        max_search_nodes: Node budget per search (0 = unlimited)
        max_rounds: Stop after this many rounds (None = until done)
        raise_on_unreachable: Raise UnreachableSettlementError when settlements
            are left over, otherwise only report them
    """

    hash_bits: int = field(default_factory=lambda: settings.hash_bits)
    max_search_nodes: int = field(default_factory=lambda: settings.max_search_nodes)
    max_rounds: Optional[int] = field(default_factory=lambda: settings.max_rounds)
    raise_on_unreachable: bool = field(default_factory=lambda: settings.raise_on_unreachable)

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 1 <= self.hash_bits <= 20:
            raise ValueError("hash_bits must be between 1 and 20")
        if self.max_search_nodes < 0:
            raise ValueError("max_search_nodes must be non-negative")
        if self.max_rounds is not None and self.max_rounds < 1:
            raise ValueError("max_rounds must be positive")

    @property
    def bucket_count(self) -> int:
        return 1 << self.hash_bits


@dataclass
class RoadPath:
    """
    A path that was written onto the map.

    Attributes:
        tiles: Tiles from the start settlement to the target settlement
        positions: (x, y) of each tile
        cost: Search cost of the path
        tiles_built: Tiles turned into new road
        tiles_extended: Existing road or crossing tiles that gained pieces
        start_id: Settlement the search started from
        end_id: Settlement the search reached
    """

    tiles: List[int]
    positions: List[Tuple[int, int]]
    cost: int
    tiles_built: int = 0
    tiles_extended: int = 0
    start_id: Optional[int] = None
    end_id: Optional[int] = None

    @property
    def length(self) -> int:
        """Number of tile-to-tile steps."""
        return max(len(self.tiles) - 1, 0)

    def get_geometry(self) -> LineString:
        """
        Get path as Shapely LineString through the tile centres.

        Returns:
            LineString geometry (empty for paths shorter than two tiles)
        """
        if len(self.positions) < 2:
            return LineString()
        return LineString([(x + 0.5, y + 0.5) for x, y in self.positions])

    def to_dict(self) -> Dict[str, Any]:
        """Convert path to dictionary."""
        return {
            "start_id": self.start_id,
            "end_id": self.end_id,
            "num_tiles": len(self.tiles),
            "length": self.length,
            "cost": self.cost,
            "tiles_built": self.tiles_built,
            "tiles_extended": self.tiles_extended,
            "waypoints": [list(position) for position in self.positions],
        }


@dataclass
class GenerationReport:
    """
    Outcome of a public road generation pass.

    Attributes:
        rounds: Rounds run
        attempts: Searches started
        connections: (begin id, end id) pairs that were linked
        paths: Paths written onto the map
        unreachable: Settlements left without a connection
        stop_reason: Why the loop ended ("completed", "unreachable", "round_cap")
        networks: Separate road networks the settlements lie on; more than one
            means the roads were built but do not join up
    """

    rounds: int = 0
    attempts: int = 0
    connections: List[Tuple[int, int]] = field(default_factory=list)
    paths: List[RoadPath] = field(default_factory=list)
    unreachable: List[int] = field(default_factory=list)
    stop_reason: str = "completed"
    networks: int = 0

    @property
    def completed(self) -> bool:
        return not self.unreachable

    @property
    def failed_attempts(self) -> int:
        return self.attempts - len(self.connections)

    @property
    def tiles_built(self) -> int:
        return sum(path.tiles_built for path in self.paths)

    @property
    def tiles_extended(self) -> int:
        return sum(path.tiles_extended for path in self.paths)

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary."""
        return {
            "rounds": self.rounds,
            "attempts": self.attempts,
            "failed_attempts": self.failed_attempts,
            "connections": [list(pair) for pair in self.connections],
            "tiles_built": self.tiles_built,
            "tiles_extended": self.tiles_extended,
            "unreachable": list(self.unreachable),
            "stop_reason": self.stop_reason,
            "networks": self.networks,
            "paths": [path.to_dict() for path in self.paths],
        }


def public_road_hash(tile_map: TileMap, hash_bits: int) -> HashFunction:
    """Build the bucket hash for public road searches."""
    mask = (1 << hash_bits) - 1

    def _hash(tile: int) -> int:
        x, y = tile_map.tile_xy(tile)
        return tile_hash(x, y) & mask

    return _hash


def _write_road_bits(
    tile_map: TileMap, registry: SettlementRegistry, tile: int, road_bits: RoadBits
) -> bool:
    """
    Add road pieces to a tile. Returns True if a new road tile was created.
    """
    tile_type = tile_map.tile_type(tile)

    if tile_type == TileType.ROAD:
        existing = tile_map.get_road_bits(tile, RoadKind.ROAD)
        tile_map.set_road_bits(tile, existing | road_bits, RoadKind.ROAD)
        return False

    nearest = registry.nearest_settlement_to(tile)
    town_id = nearest.id if nearest is not None else -1

    if tile_type == TileType.RAILWAY:
        # Level crossing: the track stays, the road is laid across it.
        existing = tile_map.get_road_bits(tile, RoadKind.ROAD)
        tile_map.set_road_bits(tile, existing | road_bits, RoadKind.ROAD)
        if existing == RoadBits.NONE:
            tile_map.set_road_owner(tile, town_id, Owner.TOWN, Owner.NONE)
        return False

    tile_map.make_road_normal(tile, road_bits, town_id, Owner.TOWN, Owner.NONE)
    return True


def materialize_path(
    tile_map: TileMap, registry: SettlementRegistry, goal: PathNode
) -> RoadPath:
    """
    Write a found path onto the map.

    Every tile gets road pieces towards its neighbours on the path. Existing
    road pieces are kept, so writing the same path twice changes nothing the
    second time.

    Args:
        tile_map: Terrain to modify
        registry: Settlements, used to pick the owning town of new road
        goal: Goal node of the search; its parent chain is the path

    Returns:
        RoadPath from the start tile to the goal tile
    """
    tiles: List[int] = []
    tiles_built = 0
    tiles_extended = 0
    child: Optional[PathNode] = None

    for path_node in goal.walk():
        tile = path_node.tile
        parent = path_node.parent_node
        road_bits = RoadBits.NONE

        if child is not None:
            road_bits |= direction_to_road_bits(
                tile_map.direction_between_tiles(tile, child.tile)
            )
        if parent is not None:
            road_bits |= direction_to_road_bits(
                tile_map.direction_between_tiles(tile, parent.tile)
            )

        if road_bits != RoadBits.NONE:
            if _write_road_bits(tile_map, registry, tile, road_bits):
                tiles_built += 1
            else:
                tiles_extended += 1

        tiles.append(tile)
        child = path_node

    tiles.reverse()
    logger.debug(
        f"Materialized path of {len(tiles)} tiles: {tiles_built} built, {tiles_extended} extended"
    )
    return RoadPath(
        tiles=tiles,
        positions=[tile_map.tile_xy(tile) for tile in tiles],
        cost=goal.g,
        tiles_built=tiles_built,
        tiles_extended=tiles_extended,
    )


class PublicRoadStrategy(SearchStrategy):
    """
    Search callbacks for laying a public road towards one target tile.

    Steps cost 1 and the heuristic is the Manhattan distance, which never
    overestimates on a 4-connected grid, so found roads are shortest.
    """

    def __init__(self, tile_map: TileMap, registry: SettlementRegistry, target: int):
        self.tile_map = tile_map
        self.registry = registry
        self.target = target
        self.found_path: Optional[RoadPath] = None

    def cost(self, current: SearchNode, parent: PathNode) -> int:
        return 1

    def heuristic(self, current: SearchNode, target: int) -> int:
        return self.tile_map.distance_manhattan(target, current.tile)

    def _is_buildable(self, tile: int, direction: Direction) -> bool:
        tile_type = self.tile_map.tile_type(tile)
        if tile_type in (TileType.CLEAR, TileType.TREES):
            return True
        if tile_type == TileType.ROAD:
            return self.tile_map.is_normal_road_tile(tile)
        if tile_type == TileType.RAILWAY:
            return is_possible_crossing(self.tile_map, tile, direction.axis)
        return False

    def neighbours(self, current: PathNode) -> Iterator[SearchNode]:
        tile = current.tile
        # A road crossing a railway has to go straight over it.
        crossing_direction = None
        if self.tile_map.is_tile_type(tile, TileType.RAILWAY):
            crossing_direction = current.node.direction

        for direction in Direction:
            if crossing_direction is not None and direction != crossing_direction:
                continue

            neighbour = self.tile_map.add_direction(tile, direction)
            if not self.tile_map.is_valid_tile(neighbour):
                continue
            if not can_build_road_from_to(self.tile_map, tile, neighbour):
                continue
            if clean_up_road_bits(
                self.tile_map, tile, direction_to_road_bits(direction)
            ) == RoadBits.NONE:
                continue
            if not self._is_buildable(neighbour, direction):
                continue

            yield SearchNode(neighbour, direction)

    def is_goal(self, current: PathNode) -> bool:
        return current.tile == self.target

    def on_success(self, goal: PathNode) -> None:
        self.found_path = materialize_path(self.tile_map, self.registry, goal)


class PublicRoadGenerator:
    """
    Connects all settlements of a registry with public roads.

    Each round takes the smallest unconnected settlement and searches a road
    from it to every other unconnected settlement, nearest first. Targets that
    could not be reached are retried in the next round. A settlement that
    reaches nothing in its own round is joined to the network built so far,
    or reported unreachable if that fails. Every round shrinks the
    unconnected set, so generation always ends.
    """

    def __init__(
        self,
        tile_map: TileMap,
        registry: SettlementRegistry,
        config: Optional[GeneratorConfig] = None,
    ):
        """
        Initialize the generator.

        Args:
            tile_map: Terrain to build roads on
            registry: Settlements to connect
            config: Generator configuration (uses defaults if not provided)
        """
        self.tile_map = tile_map
        self.registry = registry
        self.config = config or GeneratorConfig()
        self.hash_fn = public_road_hash(tile_map, self.config.hash_bits)

    def find_road(self, begin: Settlement, end: Settlement) -> Tuple[SearchResult, Optional[RoadPath]]:
        """
        Search a road between two settlements and build it if found.

        Returns:
            Search result and the built path (None unless FOUND_END_NODE)
        """
        strategy = PublicRoadStrategy(self.tile_map, self.registry, end.location)
        search = BestFirstSearch(strategy, max_search_nodes=self.config.max_search_nodes)
        search.init(self.hash_fn, self.config.bucket_count)
        search.add_start_node(SearchNode(begin.location), 0)

        result = search.run()
        path = strategy.found_path
        if path is not None:
            path.start_id = begin.id
            path.end_id = end.id
        return result, path

    def _by_distance(self, origin: Settlement, settlements: List[Settlement]) -> List[Settlement]:
        return sorted(
            settlements,
            key=lambda s: (self.tile_map.distance_manhattan(origin.location, s.location), s.id),
        )

    def _attach(
        self, begin: Settlement, connected: Set[int], report: GenerationReport
    ) -> bool:
        """
        Join ``begin`` to the network built so far, nearest settlement first.

        Stops at the first road found. Returns whether one was found.
        """
        targets = self._by_distance(
            begin, [s for s in self.registry.all() if s.id in connected]
        )
        for end in targets:
            report.attempts += 1
            result, path = self.find_road(begin, end)
            if result == SearchResult.FOUND_END_NODE and path is not None:
                connected.update((begin.id, end.id))
                report.connections.append((begin.id, end.id))
                report.paths.append(path)
                return True
            logger.debug(f"No road from {begin.id} to {end.id} ({result.value})")
        return False

    def _rounds(self, report: GenerationReport) -> Iterator[List[Settlement]]:
        """
        Run rounds, yielding the settlements still unconnected after each.

        A begin settlement that reached none of the other unconnected
        settlements is joined to the network built so far. Only if that fails
        too is it appended to ``report.unreachable``.
        """
        unconnected = self.registry.all()
        connected: Set[int] = set()

        if len(unconnected) <= 1:
            return

        while unconnected:
            report.rounds += 1
            towns = sorted(unconnected, key=lambda s: (s.population, s.id))
            begin = towns.pop(0)
            targets = self._by_distance(begin, towns)

            logger.info(
                f"Round {report.rounds}: connecting settlement {begin.id} "
                f"(population {begin.population}) to {len(targets)} settlements"
            )

            still_unconnected: List[Settlement] = []
            for end in targets:
                report.attempts += 1
                result, path = self.find_road(begin, end)

                if result == SearchResult.FOUND_END_NODE and path is not None:
                    connected.update((begin.id, end.id))
                    report.connections.append((begin.id, end.id))
                    report.paths.append(path)
                else:
                    logger.debug(f"No road from {begin.id} to {end.id} ({result.value})")
                    still_unconnected.append(end)

            # Roads may leave a tile they cannot enter, so a settlement the
            # others could not reach may still reach the network itself.
            if begin.id not in connected and not self._attach(begin, connected, report):
                logger.info(f"Settlement {begin.id} reached no other settlement")
                report.unreachable.append(begin.id)

            unconnected = still_unconnected
            yield unconnected

    def generate(self) -> GenerationReport:
        """
        Build the public road network.

        Returns:
            GenerationReport describing what was built

        Raises:
            UnreachableSettlementError: If settlements are left unconnected and
                raise_on_unreachable is set
        """
        report = GenerationReport()

        with PerformanceTimer("public road generation"):
            remaining: List[Settlement] = []
            for remaining in self._rounds(report):
                with LogContext(generation_round=report.rounds):
                    logger.info(
                        f"Round {report.rounds} done: {len(remaining)} settlements left"
                    )
                if (
                    remaining
                    and self.config.max_rounds is not None
                    and report.rounds >= self.config.max_rounds
                ):
                    report.stop_reason = "round_cap"
                    break

        report.unreachable = sorted(set(report.unreachable) | {s.id for s in remaining})
        report.networks = RoadGraph(self.tile_map).count_networks(
            s.location for s in self.registry
        )

        if report.unreachable:
            if report.stop_reason == "completed":
                report.stop_reason = "unreachable"
            message = (
                f"{len(report.unreachable)} settlements could not be connected "
                f"after {report.rounds} rounds ({report.stop_reason})"
            )
            if self.config.raise_on_unreachable:
                raise UnreachableSettlementError(
                    message,
                    settlement_ids=report.unreachable,
                    rounds=report.rounds,
                    details={"stop_reason": report.stop_reason},
                )
            logger.warning(message)
        elif report.networks > 1:
            logger.warning(
                f"All settlements have a road but they form {report.networks} "
                f"separate networks"
            )
        else:
            logger.info(
                f"Public road network complete: {len(report.connections)} connections, "
                f"{report.tiles_built} tiles built in {report.rounds} rounds"
            )

        return report


def generate_public_roads(
    tile_map: TileMap,
    registry: SettlementRegistry,
    config: Optional[GeneratorConfig] = None,
) -> GenerationReport:
    """
    Connect every settlement of ``registry`` with public roads on ``tile_map``.

    Args:
        tile_map: Terrain to build on
        registry: Settlements to connect
        config: Generator configuration

    Returns:
        GenerationReport describing what was built
    """
    return PublicRoadGenerator(tile_map, registry, config).generate()
