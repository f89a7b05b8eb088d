"""
Demo script for public road generation.

This example demonstrates the complete pipeline:
1. Create terrain from a corner heightmap with a hill, a lake and a railway
2. Place settlements of different sizes
3. Connect them with public roads
4. Inspect the resulting road network and export it to GeoJSON
"""

import json
import logging

import numpy as np

from townlink.core.geometry import TileType, TrackBits
from townlink.core.logging_config import setup_logging
from townlink.core.roads import GeneratorConfig, RoadGraph, generate_public_roads
from townlink.models import SettlementRegistry, TileMap

WIDTH = 40
HEIGHT = 32
RAIL_ROW = 16


def build_terrain() -> TileMap:
    """Create a map with a hill in the north east, a lake and a railway."""
    ys, xs = np.mgrid[0 : HEIGHT + 1, 0 : WIDTH + 1]
    distance = np.maximum(np.abs(xs - 30), np.abs(ys - 6))
    corners = np.clip(4 - distance, 0, None)

    tile_map = TileMap.from_heightmap(corners)

    # Lake in the south west
    for y in range(22, 28):
        for x in range(6, 14):
            tile_map.set_water(tile_map.tile_index(x, y))
    for x in range(6, 14):
        tile_map.set_water(tile_map.tile_index(x, 21), shore=True)

    # East-west railway; north-south roads may cross it
    for x in range(WIDTH):
        tile_map.set_rail(tile_map.tile_index(x, RAIL_ROW), TrackBits.X)

    # A few houses and a forest
    for x, y in [(18, 8), (19, 8), (18, 9), (24, 24), (25, 24)]:
        tile_map.set_other(tile_map.tile_index(x, y))
    for y in range(10, 14):
        for x in range(4, 9):
            tile_map.set_trees(tile_map.tile_index(x, y))

    return tile_map


def main():
    """Run public road generation demo."""
    setup_logging(log_level="INFO")
    logging.getLogger("townlink.core.roads.search").setLevel(logging.WARNING)

    print("=" * 60)
    print("Public Road Generation Demo")
    print("=" * 60)

    # 1. Terrain
    print(f"\n1. Creating terrain ({WIDTH} x {HEIGHT} tiles)...")
    tile_map = build_terrain()
    counts = {}
    for tile in range(WIDTH * HEIGHT):
        tile_type = tile_map.tile_type(tile)
        counts[tile_type] = counts.get(tile_type, 0) + 1
    for tile_type in TileType:
        if counts.get(tile_type):
            print(f"   - {tile_type.value}: {counts[tile_type]} tiles")

    # 2. Settlements
    print("\n2. Placing settlements...")
    registry = SettlementRegistry(tile_map)
    registry.add_at(3, 3, population=850, name="Oakridge")
    registry.add_at(22, 4, population=2400, name="Highmoor")
    registry.add_at(36, 12, population=600, name="Eastwatch")
    registry.add_at(16, 26, population=1500, name="Lakeside")
    registry.add_at(33, 28, population=320, name="Southfold")
    for settlement in registry:
        x, y = tile_map.tile_xy(settlement.location)
        print(f"   - {settlement.name}: ({x}, {y}), population {settlement.population}")

    # 3. Roads
    print("\n3. Generating public roads...")
    config = GeneratorConfig(raise_on_unreachable=False)
    report = generate_public_roads(tile_map, registry, config)

    if not report.completed:
        print(f"   WARNING: unreachable settlements: {report.unreachable}")
    else:
        print("   SUCCESS: all settlements connected!")

    print(f"   - Rounds: {report.rounds}")
    print(f"   - Searches: {report.attempts} ({report.failed_attempts} failed)")
    print(f"   - Tiles built: {report.tiles_built}")
    print(f"   - Tiles extended: {report.tiles_extended}")
    print(f"   - Separate networks: {report.networks}")

    # 4. Paths
    print("\n4. Road Paths:")
    print("-" * 60)
    for path in report.paths:
        start = registry.get(path.start_id)
        end = registry.get(path.end_id)
        print(f"   {start.name} -> {end.name}:")
        print(f"     - Length: {path.length} tiles")
        print(f"     - New tiles: {path.tiles_built}")
        print(f"     - Geometry length: {path.get_geometry().length:.1f}")

    crossings = [
        tile_map.tile_xy(tile)
        for tile in range(WIDTH * HEIGHT)
        if tile_map.is_level_crossing(tile)
    ]
    print(f"\n   Level crossings: {crossings}")

    # 5. Network
    print("\n5. Road Network Statistics:")
    print("-" * 60)
    graph = RoadGraph(tile_map)
    stats = graph.get_graph_stats()
    print(f"   Road tiles: {stats['num_tiles']}")
    print(f"   Connections: {stats['num_connections']}")
    print(f"   Junctions: {stats['num_junctions']}")
    print(f"   Components: {stats['num_components']}")
    print(f"   All settlements linked: {graph.connects(s.location for s in registry)}")

    # 6. Export
    print("\n6. Exporting to GeoJSON...")
    geojson = graph.export_to_geojson()
    print(f"   - Features: {len(geojson['features'])}")
    print(f"   - Format: {geojson['type']}")
    print(f"   - Size: {len(json.dumps(geojson))} bytes")

    print("\n" + "=" * 60)
    print("Demo Complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
