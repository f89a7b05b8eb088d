"""
Public road network generation for tile maps.

This module provides:
- A generic best-first (A*) search engine with pluggable callbacks
- Connectivity and slope rules for placing road pieces
- The generator that links settlements and writes roads onto the map
- A graph view of the resulting road network
"""

from townlink.core.roads.connectivity import (
    can_build_road_from_to,
    clean_up_road_bits,
    is_possible_crossing,
)
from townlink.core.roads.generator import (
    GenerationReport,
    GeneratorConfig,
    PublicRoadGenerator,
    PublicRoadStrategy,
    RoadPath,
    generate_public_roads,
    materialize_path,
)
from townlink.core.roads.graph import RoadGraph
from townlink.core.roads.search import (
    BestFirstSearch,
    PathNode,
    SearchNode,
    SearchResult,
    SearchStrategy,
)

__all__ = [
    "BestFirstSearch",
    "GenerationReport",
    "GeneratorConfig",
    "PathNode",
    "PublicRoadGenerator",
    "PublicRoadStrategy",
    "RoadGraph",
    "RoadPath",
    "SearchNode",
    "SearchResult",
    "SearchStrategy",
    "can_build_road_from_to",
    "clean_up_road_bits",
    "generate_public_roads",
    "is_possible_crossing",
    "materialize_path",
]
