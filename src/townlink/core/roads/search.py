"""
Generic best-first (A*) search over a tile grid.

The engine knows nothing about roads. Everything domain specific is supplied
by a SearchStrategy:
- cost of stepping onto a node
- heuristic estimate of the remaining cost
- neighbour expansion
- goal test
- what to do with the goal once it is found

Open and closed nodes are kept in hash tables bucketed by a caller supplied
hash function. Path nodes live in an arena and point at their parent by index,
so a found path is read back by walking parent links from the goal.
"""

import heapq
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from townlink.core.errors import ConfigurationError
from townlink.core.geometry import Direction

logger = logging.getLogger(__name__)

NO_PARENT = -1

HashFunction = Callable[[int], int]


class SearchResult(str, Enum):
    """Outcome of one search run."""

    FOUND_END_NODE = "found_end_node"
    NO_PATH = "no_path"
    LIMIT_REACHED = "limit_reached"


@dataclass(frozen=True)
class SearchNode:
    """
    A grid position as seen by the search.

    Attributes:
        tile: Tile index
        direction: Direction the node was entered from, None for start nodes
    """

    tile: int
    direction: Optional[Direction] = None


@dataclass
class PathNode:
    """
    A search node together with its costs and its place in the search tree.

    Attributes:
        node: Grid position
        g: Cost from the start
        h: Heuristic estimate to the target
        index: Position in the arena
        parent: Arena index of the parent, NO_PARENT for start nodes
        arena: Arena holding this node and its ancestors
    """

    node: SearchNode
    g: int
    h: int
    index: int
    parent: int
    arena: "NodeArena"

    @property
    def tile(self) -> int:
        return self.node.tile

    @property
    def f(self) -> int:
        return self.g + self.h

    @property
    def parent_node(self) -> Optional["PathNode"]:
        """Parent path node, None at the start of the path."""
        if self.parent == NO_PARENT:
            return None
        return self.arena[self.parent]

    def walk(self) -> Iterator["PathNode"]:
        """Yield this node and its ancestors, ending with the start node."""
        current: Optional[PathNode] = self
        while current is not None:
            yield current
            current = current.parent_node

    def __repr__(self) -> str:
        return f"PathNode(tile={self.node.tile}, g={self.g}, h={self.h}, parent={self.parent})"


class NodeArena:
    """Append-only storage for the path nodes of one search run."""

    def __init__(self) -> None:
        self._nodes: List[PathNode] = []

    def create(self, node: SearchNode, g: int, h: int, parent: int) -> PathNode:
        path_node = PathNode(node=node, g=g, h=h, index=len(self._nodes), parent=parent, arena=self)
        self._nodes.append(path_node)
        return path_node

    def __getitem__(self, index: int) -> PathNode:
        return self._nodes[index]

    def __len__(self) -> int:
        return len(self._nodes)


class NodeHash:
    """
    Hash table from tile to arena index, bucketed by a custom hash.

    Lookups compare tiles exactly, so collisions only cost time.
    """

    def __init__(self, hash_fn: HashFunction, bucket_count: int):
        if bucket_count <= 0:
            raise ConfigurationError(
                f"bucket_count must be positive, got {bucket_count}",
                config_key="bucket_count",
            )
        self.hash_fn = hash_fn
        self.bucket_count = bucket_count
        self._buckets: List[List[Tuple[int, int]]] = [[] for _ in range(bucket_count)]
        self._size = 0

    def _bucket(self, node: SearchNode) -> List[Tuple[int, int]]:
        bucket = self.hash_fn(node.tile)
        if not 0 <= bucket < self.bucket_count:
            raise ConfigurationError(
                f"Hash {bucket} out of range for {self.bucket_count} buckets",
                config_key="hash_fn",
            )
        return self._buckets[bucket]

    def get(self, node: SearchNode) -> Optional[int]:
        for tile, index in self._bucket(node):
            if tile == node.tile:
                return index
        return None

    def set(self, node: SearchNode, index: int) -> None:
        bucket = self._bucket(node)
        for position, (tile, _) in enumerate(bucket):
            if tile == node.tile:
                bucket[position] = (tile, index)
                return
        bucket.append((node.tile, index))
        self._size += 1

    def remove(self, node: SearchNode) -> None:
        bucket = self._bucket(node)
        for position, (tile, _) in enumerate(bucket):
            if tile == node.tile:
                del bucket[position]
                self._size -= 1
                return

    def __contains__(self, node: SearchNode) -> bool:
        return self.get(node) is not None

    def __len__(self) -> int:
        return self._size


class SearchStrategy(ABC):
    """
    Callbacks that give the search engine its meaning.

    Attributes:
        target: Tile the heuristic estimates the distance to
    """

    target: int

    @abstractmethod
    def cost(self, current: SearchNode, parent: PathNode) -> int:
        """Cost of stepping from ``parent`` onto ``current``."""

    @abstractmethod
    def heuristic(self, current: SearchNode, target: int) -> int:
        """Lower bound on the remaining cost from ``current`` to ``target``."""

    @abstractmethod
    def neighbours(self, current: PathNode) -> Iterable[SearchNode]:
        """Nodes reachable in one step from ``current``."""

    @abstractmethod
    def is_goal(self, current: PathNode) -> bool:
        """Whether ``current`` ends the search."""

    @abstractmethod
    def on_success(self, goal: PathNode) -> None:
        """Called once with the goal node when a path is found."""


class BestFirstSearch:
    """
    A* search engine driven by a SearchStrategy.

    Usage:
        search = BestFirstSearch(strategy)
        search.init(hash_fn, 256)
        search.add_start_node(SearchNode(start_tile), 0)
        result = search.run()
    """

    def __init__(self, strategy: SearchStrategy, max_search_nodes: int = 0):
        """
        Initialize the engine.

        Args:
            strategy: Domain callbacks
            max_search_nodes: Stop after closing this many nodes (0 = no limit)
        """
        if max_search_nodes < 0:
            raise ConfigurationError(
                "max_search_nodes must be non-negative", config_key="max_search_nodes"
            )
        self.strategy = strategy
        self.max_search_nodes = max_search_nodes

        self.arena = NodeArena()
        self._open_hash: Optional[NodeHash] = None
        self._closed_hash: Optional[NodeHash] = None
        self._open_heap: List[Tuple[int, int, int]] = []
        self._sequence = 0
        self.nodes_closed = 0

    def init(self, hash_fn: HashFunction, bucket_count: int) -> None:
        """
        Reset the engine for a new run.

        Args:
            hash_fn: Maps a tile to a bucket in [0, bucket_count)
            bucket_count: Number of buckets of the open and closed tables
        """
        self.arena = NodeArena()
        self._open_hash = NodeHash(hash_fn, bucket_count)
        self._closed_hash = NodeHash(hash_fn, bucket_count)
        self._open_heap = []
        self._sequence = 0
        self.nodes_closed = 0

    def _require_init(self) -> Tuple[NodeHash, NodeHash]:
        if self._open_hash is None or self._closed_hash is None:
            raise ConfigurationError("init() must be called before searching")
        return self._open_hash, self._closed_hash

    def _push_open(self, node: SearchNode, g: int, parent: int) -> PathNode:
        open_hash, _ = self._require_init()
        h = self.strategy.heuristic(node, self.strategy.target)
        path_node = self.arena.create(node, g, h, parent)
        open_hash.set(node, path_node.index)
        heapq.heappush(self._open_heap, (path_node.f, self._sequence, path_node.index))
        self._sequence += 1
        return path_node

    def _pop_open(self) -> Optional[PathNode]:
        open_hash, _ = self._require_init()
        while self._open_heap:
            _, _, index = heapq.heappop(self._open_heap)
            path_node = self.arena[index]
            # Entries superseded by a cheaper route to the same tile are stale.
            if open_hash.get(path_node.node) != index:
                continue
            open_hash.remove(path_node.node)
            return path_node
        return None

    def add_start_node(self, node: SearchNode, cost: int) -> PathNode:
        """Seed the open set with ``node`` at cost ``cost``."""
        return self._push_open(node, cost, NO_PARENT)

    def open_count(self) -> int:
        open_hash, _ = self._require_init()
        return len(open_hash)

    def closed_count(self) -> int:
        _, closed_hash = self._require_init()
        return len(closed_hash)

    def run(self) -> SearchResult:
        """
        Search until the goal is found or the open set runs dry.

        Returns:
            FOUND_END_NODE after on_success ran, NO_PATH when every reachable
            node was closed, LIMIT_REACHED when the node budget ran out
        """
        open_hash, closed_hash = self._require_init()

        while True:
            current = self._pop_open()
            if current is None:
                logger.debug(f"Open set exhausted after closing {self.nodes_closed} nodes")
                return SearchResult.NO_PATH

            if self.strategy.is_goal(current):
                logger.debug(
                    f"Goal {current.tile} reached at cost {current.g} "
                    f"after closing {self.nodes_closed} nodes"
                )
                self.strategy.on_success(current)
                return SearchResult.FOUND_END_NODE

            closed_hash.set(current.node, current.index)
            self.nodes_closed += 1
            if self.max_search_nodes and self.nodes_closed >= self.max_search_nodes:
                logger.debug(f"Search node limit {self.max_search_nodes} reached")
                return SearchResult.LIMIT_REACHED

            for neighbour in self.strategy.neighbours(current):
                if neighbour in closed_hash:
                    continue

                tentative_g = current.g + self.strategy.cost(neighbour, current)

                open_index = open_hash.get(neighbour)
                if open_index is not None and self.arena[open_index].g <= tentative_g:
                    continue

                self._push_open(neighbour, tentative_g, current.index)
