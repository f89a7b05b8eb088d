"""
Settlement records and the registry the road generator reads them from.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from townlink.core.errors import ValidationError
from townlink.models.terrain import TileMap


@dataclass(frozen=True)
class Settlement:
    """
    A populated place acting as a road network endpoint.

    Attributes:
        id: Unique settlement identifier
        location: Tile index of the settlement centre
        population: Number of inhabitants
        name: Optional display name
    """

    id: int
    location: int
    population: int
    name: str = ""

    def __post_init__(self) -> None:
        """Validate the record."""
        if self.id < 0:
            raise ValidationError(f"Settlement id must be non-negative, got {self.id}", field="id")
        if self.population < 0:
            raise ValidationError(
                f"Population must be non-negative, got {self.population}", field="population"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert settlement to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "population": self.population,
        }


class SettlementRegistry:
    """
    Settlements placed on a tile map.

    Iteration yields settlements in insertion order.
    """

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self._settlements: Dict[int, Settlement] = {}

    def add(self, settlement: Settlement) -> Settlement:
        """
        Register a settlement.

        Raises:
            ValidationError: If the id is taken or the location is off the map
        """
        if settlement.id in self._settlements:
            raise ValidationError(
                f"Duplicate settlement id {settlement.id}",
                field="id",
                details={"settlement_id": settlement.id},
            )
        if not self.tile_map.is_valid_tile(settlement.location):
            raise ValidationError(
                f"Settlement {settlement.id} lies outside the map",
                field="location",
                details={"location": settlement.location},
            )
        self._settlements[settlement.id] = settlement
        return settlement

    def add_at(self, x: int, y: int, population: int, name: str = "") -> Settlement:
        """Register a settlement at grid coordinates with the next free id."""
        settlement_id = max(self._settlements, default=-1) + 1
        location = self.tile_map.tile_index(x, y)
        return self.add(Settlement(settlement_id, location, population, name))

    def get(self, settlement_id: int) -> Optional[Settlement]:
        return self._settlements.get(settlement_id)

    def all(self) -> List[Settlement]:
        return list(self._settlements.values())

    def __iter__(self) -> Iterator[Settlement]:
        return iter(list(self._settlements.values()))

    def __len__(self) -> int:
        return len(self._settlements)

    def nearest_settlement_to(self, tile: int) -> Optional[Settlement]:
        """
        Settlement closest to a tile by Manhattan distance.

        Ties go to the lowest id. Returns None for an empty registry.
        """
        best: Optional[Settlement] = None
        best_distance = 0
        for settlement in self._settlements.values():
            distance = self.tile_map.distance_manhattan(tile, settlement.location)
            if (
                best is None
                or distance < best_distance
                or (distance == best_distance and settlement.id < best.id)
            ):
                best = settlement
                best_distance = distance
        return best
