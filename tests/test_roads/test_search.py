"""
Tests for the generic best-first search engine.

Uses a small open grid strategy so the engine is exercised without any road
rules.
"""

from typing import Iterator, List, Optional, Set

import pytest

from townlink.core.errors import ConfigurationError
from townlink.core.geometry import Direction
from townlink.core.roads.search import (
    NO_PARENT,
    BestFirstSearch,
    NodeArena,
    NodeHash,
    PathNode,
    SearchNode,
    SearchResult,
    SearchStrategy,
)


class GridStrategy(SearchStrategy):
    """4-connected grid with unit steps and optional walls."""

    def __init__(self, width: int, height: int, target: int, walls: Optional[Set[int]] = None):
        self.width = width
        self.height = height
        self.target = target
        self.walls = walls or set()
        self.success_calls = 0
        self.path: List[int] = []
        self.goal: Optional[PathNode] = None

    def xy(self, tile: int):
        return tile % self.width, tile // self.width

    def cost(self, current: SearchNode, parent: PathNode) -> int:
        return 1

    def heuristic(self, current: SearchNode, target: int) -> int:
        (cx, cy), (tx, ty) = self.xy(current.tile), self.xy(target)
        return abs(cx - tx) + abs(cy - ty)

    def neighbours(self, current: PathNode) -> Iterator[SearchNode]:
        x, y = self.xy(current.tile)
        for direction in Direction:
            dx, dy = direction.offset
            nx, ny = x + dx, y + dy
            if not (0 <= nx < self.width and 0 <= ny < self.height):
                continue
            tile = ny * self.width + nx
            if tile in self.walls:
                continue
            yield SearchNode(tile, direction)

    def is_goal(self, current: PathNode) -> bool:
        return current.tile == self.target

    def on_success(self, goal: PathNode) -> None:
        self.success_calls += 1
        self.goal = goal
        self.path = [node.tile for node in goal.walk()][::-1]


def grid_hash(tile):
    return tile % 256


def run_search(strategy, start, bucket_count=256, hash_fn=grid_hash, start_cost=0, **kwargs):
    search = BestFirstSearch(strategy, **kwargs)
    search.init(hash_fn, bucket_count)
    search.add_start_node(SearchNode(start), start_cost)
    return search, search.run()


class TestNodeHash:
    """Tests for the bucketed node table."""

    def test_set_get_remove(self):
        """Test basic table operations."""
        table = NodeHash(grid_hash, 16)
        node = SearchNode(5)

        assert table.get(node) is None
        table.set(node, 3)
        assert table.get(node) == 3
        assert node in table
        assert len(table) == 1

        table.remove(node)
        assert node not in table
        assert len(table) == 0

    def test_lookup_is_exact_with_collisions(self):
        """Test that colliding tiles are kept apart."""
        table = NodeHash(lambda tile: 0, 1)
        table.set(SearchNode(1), 10)
        table.set(SearchNode(2), 20)

        assert table.get(SearchNode(1)) == 10
        assert table.get(SearchNode(2)) == 20
        assert table.get(SearchNode(3)) is None
        assert len(table) == 2

    def test_set_overwrites_same_tile(self):
        """Test that a tile maps to one entry whatever its direction."""
        table = NodeHash(grid_hash, 16)
        table.set(SearchNode(4, Direction.N), 1)
        table.set(SearchNode(4, Direction.E), 2)

        assert table.get(SearchNode(4)) == 2
        assert len(table) == 1

    def test_direction_does_not_change_bucket(self):
        """Test that entering a tile from another side finds the same entry."""
        table = NodeHash(lambda tile: (tile * 4) % 16, 16)
        table.set(SearchNode(5, Direction.E), 1)
        table.set(SearchNode(5, Direction.N), 2)

        assert len(table) == 1
        assert table.get(SearchNode(5, Direction.S)) == 2

        table.remove(SearchNode(5, Direction.W))
        assert SearchNode(5) not in table

    def test_closed_tile_is_not_reexpanded(self):
        """Test that each tile is closed once however many ways lead to it."""
        strategy = GridStrategy(4, 4, target=15)
        search, result = run_search(
            strategy, start=0, bucket_count=16, hash_fn=lambda tile: (tile * 4) % 16
        )

        assert result == SearchResult.FOUND_END_NODE
        assert search.nodes_closed <= 16
        assert search.closed_count() == search.nodes_closed

    def test_invalid_bucket_count(self):
        """Test validation of bucket count."""
        with pytest.raises(ConfigurationError):
            NodeHash(grid_hash, 0)

    def test_hash_out_of_range(self):
        """Test that hashes outside the bucket range are rejected."""
        table = NodeHash(lambda tile: 99, 8)
        with pytest.raises(ConfigurationError, match="out of range"):
            table.set(SearchNode(1), 0)


class TestPathNode:
    """Tests for arena-backed path nodes."""

    def test_walk_follows_parent_links(self):
        """Test walking from a leaf back to the root."""
        arena = NodeArena()
        root = arena.create(SearchNode(0), 0, 2, NO_PARENT)
        middle = arena.create(SearchNode(1), 1, 1, root.index)
        leaf = arena.create(SearchNode(2), 2, 0, middle.index)

        assert [node.tile for node in leaf.walk()] == [2, 1, 0]
        assert root.parent_node is None
        assert leaf.parent_node is middle
        assert leaf.f == 2
        assert len(arena) == 3


class TestBestFirstSearch:
    """Tests for the A* engine."""

    def test_straight_path(self):
        """Test finding a path on an open grid."""
        strategy = GridStrategy(10, 1, target=7)
        search, result = run_search(strategy, start=2)

        assert result == SearchResult.FOUND_END_NODE
        assert strategy.success_calls == 1
        assert strategy.path == [2, 3, 4, 5, 6, 7]
        assert strategy.goal.g == 5

    def test_detour_around_wall(self):
        """Test that the shortest detour is found."""
        width = 5
        walls = {y * width + 2 for y in range(4)}
        strategy = GridStrategy(width, 5, target=4, walls=walls)
        _, result = run_search(strategy, start=0)

        assert result == SearchResult.FOUND_END_NODE
        assert strategy.goal.g == 12
        assert strategy.path[0] == 0
        assert strategy.path[-1] == 4
        assert not set(strategy.path) & walls

    def test_path_steps_are_adjacent(self):
        """Test that consecutive path tiles are one step apart."""
        width = 8
        walls = {1 * width + x for x in range(1, 8)} | {3 * width + x for x in range(0, 7)}
        strategy = GridStrategy(width, 6, target=5 * width + 7, walls=walls)
        _, result = run_search(strategy, start=0)

        assert result == SearchResult.FOUND_END_NODE
        for a, b in zip(strategy.path, strategy.path[1:]):
            (ax, ay), (bx, by) = strategy.xy(a), strategy.xy(b)
            assert abs(ax - bx) + abs(ay - by) == 1

    def test_no_path(self):
        """Test that an enclosed target exhausts the open set."""
        width = 5
        target = 2 * width + 2
        walls = {target - 1, target + 1, target - width, target + width}
        strategy = GridStrategy(width, 5, target=target, walls=walls)
        search, result = run_search(strategy, start=0)

        assert result == SearchResult.NO_PATH
        assert strategy.success_calls == 0
        assert search.open_count() == 0
        assert search.closed_count() == 25 - 5

    def test_start_is_goal(self):
        """Test a search whose start already is the goal."""
        strategy = GridStrategy(4, 4, target=5)
        _, result = run_search(strategy, start=5)

        assert result == SearchResult.FOUND_END_NODE
        assert strategy.path == [5]
        assert strategy.goal.g == 0

    def test_start_cost_is_added(self):
        """Test that the start cost seeds G."""
        strategy = GridStrategy(6, 1, target=5)
        _, result = run_search(strategy, start=0, start_cost=3)

        assert result == SearchResult.FOUND_END_NODE
        assert strategy.goal.g == 8

    def test_single_bucket_gives_same_result(self):
        """Test that hash collisions do not change the outcome."""
        width = 7
        walls = {y * width + 3 for y in range(5)}
        many = GridStrategy(width, 7, target=6, walls=walls)
        one = GridStrategy(width, 7, target=6, walls=walls)

        run_search(many, start=0)
        run_search(one, start=0, bucket_count=1, hash_fn=lambda tile: 0)

        assert many.goal.g == one.goal.g
        assert many.path == one.path

    def test_parent_indices_decrease(self):
        """Test that the search tree has no cycles."""
        strategy = GridStrategy(6, 6, target=35)
        run_search(strategy, start=0)

        indices = [node.index for node in strategy.goal.walk()]
        assert indices == sorted(indices, reverse=True)
        assert len(set(indices)) == len(indices)

    def test_node_limit(self):
        """Test that the node budget stops the search."""
        strategy = GridStrategy(50, 1, target=49)
        _, result = run_search(strategy, start=0, max_search_nodes=3)

        assert result == SearchResult.LIMIT_REACHED
        assert strategy.success_calls == 0

    def test_invalid_node_limit(self):
        """Test validation of the node budget."""
        with pytest.raises(ConfigurationError):
            BestFirstSearch(GridStrategy(2, 2, target=0), max_search_nodes=-1)

    def test_run_requires_init(self):
        """Test that searching before init() fails."""
        search = BestFirstSearch(GridStrategy(2, 2, target=0))
        with pytest.raises(ConfigurationError, match="init"):
            search.add_start_node(SearchNode(0), 0)

    def test_init_resets_state(self):
        """Test that one engine can run several searches."""
        strategy = GridStrategy(5, 1, target=4)
        search, result = run_search(strategy, start=0)
        assert result == SearchResult.FOUND_END_NODE

        strategy.target = 0
        search.init(grid_hash, 256)
        search.add_start_node(SearchNode(4), 0)

        assert search.run() == SearchResult.FOUND_END_NODE
        assert strategy.path == [4, 3, 2, 1, 0]
        assert strategy.success_calls == 2
