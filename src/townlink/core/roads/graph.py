"""
Graph view of the road tiles on a tile map.

The road pieces written by the generator are turned into a NetworkX graph
whose nodes are road tiles and whose edges join tiles that point at each
other. This is used to inspect the generated network: its length, its
connected components and a GeoJSON export.
"""

from typing import Any, Dict, Iterable, List, Set, Tuple

from shapely.geometry import LineString, Point as ShapelyPoint

try:
    import networkx as nx
except ImportError:
    raise ImportError(
        "NetworkX is required for road network inspection. "
        "Install it with: pip install networkx"
    )

from townlink.core.geometry import Direction, RoadBits, RoadKind, direction_to_road_bits
from townlink.models.terrain import TileMap


class RoadGraph:
    """
    Road tiles of a map and the connections between them.

    Attributes:
        tile_map: Source map
        graph: Undirected graph of tile indices
    """

    def __init__(self, tile_map: TileMap, road_kind: RoadKind = RoadKind.ROAD):
        """
        Build the graph from the current state of the map.

        Args:
            tile_map: Map to read road bits from
            road_kind: Road kind to follow
        """
        self.tile_map = tile_map
        self.road_kind = road_kind
        self.graph: nx.Graph = nx.Graph()
        self.dangling: List[Tuple[int, Direction]] = []
        self._build()

    def _build(self) -> None:
        bits_by_tile = {
            tile: RoadBits(bits[int(self.road_kind)])
            for tile, bits in self.tile_map.road_bits_snapshot().items()
            if bits[int(self.road_kind)]
        }

        for tile in bits_by_tile:
            self.graph.add_node(tile, position=self.tile_map.tile_xy(tile))

        for tile, road_bits in bits_by_tile.items():
            for direction in Direction:
                if not road_bits & direction_to_road_bits(direction):
                    continue
                neighbour = self.tile_map.add_direction(tile, direction)
                back = direction_to_road_bits(direction.reverse())
                if bits_by_tile.get(neighbour, RoadBits.NONE) & back:
                    self.graph.add_edge(tile, neighbour)
                else:
                    self.dangling.append((tile, direction))

    @property
    def total_length(self) -> int:
        """Number of tile-to-tile road connections."""
        return self.graph.number_of_edges()

    def connects(self, tiles: Iterable[int]) -> bool:
        """
        Check whether all given tiles lie on one connected piece of road.

        Tiles without road never count as connected.
        """
        tiles = list(tiles)
        if not tiles:
            return True
        if any(tile not in self.graph for tile in tiles):
            return False
        component = nx.node_connected_component(self.graph, tiles[0])
        return all(tile in component for tile in tiles)

    def count_networks(self, tiles: Iterable[int]) -> int:
        """
        Count the separate road networks the given tiles lie on.

        A tile without road is a network of its own.
        """
        seen: Set[int] = set()
        count = 0
        for tile in tiles:
            if tile in seen:
                continue
            count += 1
            if tile in self.graph:
                seen.update(nx.node_connected_component(self.graph, tile))
            else:
                seen.add(tile)
        return count

    def junctions(self) -> List[int]:
        """Road tiles joining three or more connections."""
        return sorted(tile for tile, degree in self.graph.degree() if degree >= 3)

    def get_graph_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the road network.

        Returns:
            Dictionary with tile, connection and component counts
        """
        num_tiles = self.graph.number_of_nodes()
        return {
            "num_tiles": num_tiles,
            "num_connections": self.total_length,
            "num_junctions": len(self.junctions()),
            "num_dangling": len(self.dangling),
            "num_components": nx.number_connected_components(self.graph) if num_tiles else 0,
            "is_connected": nx.is_connected(self.graph) if num_tiles else False,
        }

    def export_to_geojson(self) -> Dict[str, Any]:
        """
        Export road network to GeoJSON format.

        Coordinates are tile centres in map units (one unit per tile).

        Returns:
            GeoJSON FeatureCollection
        """
        features = []

        for tile_a, tile_b in sorted(self.graph.edges()):
            (xa, ya), (xb, yb) = self.tile_map.tile_xy(tile_a), self.tile_map.tile_xy(tile_b)
            line = LineString([(xa + 0.5, ya + 0.5), (xb + 0.5, yb + 0.5)])
            features.append(
                {
                    "type": "Feature",
                    "geometry": {
                        "type": "LineString",
                        "coordinates": [list(coord) for coord in line.coords],
                    },
                    "properties": {
                        "feature_type": "road_connection",
                        "tiles": [tile_a, tile_b],
                        "length": line.length,
                    },
                }
            )

        for tile in self.junctions():
            x, y = self.tile_map.tile_xy(tile)
            point = ShapelyPoint(x + 0.5, y + 0.5)
            features.append(
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [point.x, point.y]},
                    "properties": {
                        "feature_type": "junction",
                        "tile": tile,
                        "num_connections": self.graph.degree(tile),
                    },
                }
            )

        return {"type": "FeatureCollection", "features": features}
