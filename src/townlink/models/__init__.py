"""
Terrain and settlement models.
"""

from .settlement import Settlement, SettlementRegistry
from .terrain import NO_TOWN, Owner, RailTileKind, RoadTileKind, TileMap

__all__ = [
    "NO_TOWN",
    "Owner",
    "RailTileKind",
    "RoadTileKind",
    "Settlement",
    "SettlementRegistry",
    "TileMap",
]
