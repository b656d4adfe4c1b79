"""Regions, settlements and the registry the military systems consult."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, MutableMapping, Protocol, Sequence

from .config import RegionType
from .graph import RegionGraph, adjacent_regions, build_region_graph, shortest_region_path

logger = logging.getLogger(__name__)

PLAYER_FACTION_ID = "player"


@dataclass
class Region:
    """A named tract of land on one landmass."""

    identifier: str
    name: str
    region_type: RegionType = RegionType.PLAINS
    position: tuple[float, float] = (0.0, 0.0)
    size: tuple[float, float] = (10.0, 10.0)
    landmass: str = "scandinavia"
    resource_modifiers: MutableMapping[str, float] = field(default_factory=dict)
    discovered: bool = False

    def __post_init__(self) -> None:
        self.region_type = RegionType(self.region_type)
        self.position = (float(self.position[0]), float(self.position[1]))
        self.size = (float(self.size[0]), float(self.size[1]))

    def distance_to(self, other: "Region") -> float:
        dx = other.position[0] - self.position[0]
        dy = other.position[1] - self.position[1]
        return math.hypot(dx, dy)

    def to_dict(self) -> Dict[str, object]:
        return {
            "identifier": self.identifier,
            "name": self.name,
            "type": self.region_type.value,
            "position": list(self.position),
            "size": list(self.size),
            "landmass": self.landmass,
            "resource_modifiers": dict(self.resource_modifiers),
            "discovered": self.discovered,
        }

    @staticmethod
    def from_dict(payload: Mapping[str, object]) -> "Region":
        modifiers_payload = payload.get("resource_modifiers", {})
        modifiers: Dict[str, float] = {}
        if isinstance(modifiers_payload, Mapping):
            modifiers = {str(key): float(value) for key, value in modifiers_payload.items()}
        position = payload.get("position", (0.0, 0.0))
        size = payload.get("size", (10.0, 10.0))
        return Region(
            identifier=str(payload.get("identifier")),
            name=str(payload.get("name", payload.get("identifier"))),
            region_type=RegionType(str(payload.get("type", RegionType.PLAINS.value))),
            position=(float(position[0]), float(position[1])),  # type: ignore[index]
            size=(float(size[0]), float(size[1])),  # type: ignore[index]
            landmass=str(payload.get("landmass", "scandinavia")),
            resource_modifiers=modifiers,
            discovered=bool(payload.get("discovered", False)),
        )


@dataclass
class SettlementMilitary:
    """Garrison of a settlement."""

    warriors: int = 0
    defenses: int = 0


@dataclass
class Settlement:
    """A player or faction settlement anchored to a region."""

    identifier: str
    name: str
    region: str
    military: SettlementMilitary = field(default_factory=SettlementMilitary)
    resources: MutableMapping[str, int] = field(default_factory=dict)
    rank: int = 0
    population: int = 10
    faction_id: str | None = None
    is_player: bool = False
    is_captured: bool = False
    discovered: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "identifier": self.identifier,
            "name": self.name,
            "region": self.region,
            "military": {
                "warriors": self.military.warriors,
                "defenses": self.military.defenses,
            },
            "resources": dict(self.resources),
            "rank": self.rank,
            "population": self.population,
            "faction_id": self.faction_id,
            "is_player": self.is_player,
            "is_captured": self.is_captured,
            "discovered": self.discovered,
        }

    @staticmethod
    def from_dict(payload: Mapping[str, object]) -> "Settlement":
        military_payload = payload.get("military", {})
        military = SettlementMilitary()
        if isinstance(military_payload, Mapping):
            military = SettlementMilitary(
                warriors=int(military_payload.get("warriors", 0)),
                defenses=int(military_payload.get("defenses", 0)),
            )
        resources_payload = payload.get("resources", {})
        resources: Dict[str, int] = {}
        if isinstance(resources_payload, Mapping):
            resources = {str(key): int(value) for key, value in resources_payload.items()}
        faction_id = payload.get("faction_id")
        return Settlement(
            identifier=str(payload.get("identifier")),
            name=str(payload.get("name", "Settlement")),
            region=str(payload.get("region")),
            military=military,
            resources=resources,
            rank=int(payload.get("rank", 0)),
            population=int(payload.get("population", 10)),
            faction_id=str(faction_id) if faction_id is not None else None,
            is_player=bool(payload.get("is_player", False)),
            is_captured=bool(payload.get("is_captured", False)),
            discovered=bool(payload.get("discovered", False)),
        )


class RegionDirectory(Protocol):
    """Lookups the military systems need from the world map."""

    def get_region(self, region_id: str) -> Region | None: ...

    def get_adjacent_regions(self, region_id: str) -> list[str]: ...

    def find_path(self, start: str, goal: str) -> Sequence[str]: ...

    def get_settlement(self, settlement_id: str) -> Settlement | None: ...

    def get_player_settlement(self) -> Settlement | None: ...

    def settlements_in_region(self, region_id: str) -> list[Settlement]: ...

    def faction_settlements(self, faction_id: str) -> list[Settlement]: ...

    def faction_territories(self, faction_id: str) -> list[str]: ...

    def discover_region(self, region_id: str) -> bool: ...

    def discover_settlement(self, settlement_id: str) -> bool: ...

    def adjust_settlement_warriors(self, settlement_id: str, delta: int) -> int: ...


class RegionRegistry:
    """In-memory world map backed by a NetworkX adjacency graph."""

    def __init__(
        self,
        regions: Iterable[Region] | None = None,
        settlements: Iterable[Settlement] | None = None,
        *,
        connections: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        self._regions: Dict[str, Region] = {
            region.identifier: region for region in (regions or [])
        }
        self._settlements: Dict[str, Settlement] = {
            settlement.identifier: settlement for settlement in (settlements or [])
        }
        self._connections = (
            {key: list(value) for key, value in connections.items()} if connections else None
        )
        self._graph: RegionGraph = build_region_graph(
            self._regions.values(), connections=self._connections
        )

    # ------------------------------------------------------------------
    @property
    def regions(self) -> Mapping[str, Region]:
        return self._regions

    @property
    def settlements(self) -> Mapping[str, Settlement]:
        return self._settlements

    @property
    def graph(self) -> RegionGraph:
        return self._graph

    def add_region(self, region: Region) -> None:
        self._regions[region.identifier] = region
        self._graph = build_region_graph(self._regions.values(), connections=self._connections)

    def add_settlement(self, settlement: Settlement) -> None:
        self._settlements[settlement.identifier] = settlement

    def remove_settlement(self, settlement_id: str) -> Settlement | None:
        return self._settlements.pop(settlement_id, None)

    # ------------------------------------------------------------------
    def get_region(self, region_id: str) -> Region | None:
        return self._regions.get(region_id)

    def get_adjacent_regions(self, region_id: str) -> list[str]:
        return adjacent_regions(self._graph, region_id)

    def are_adjacent(self, region_a: str, region_b: str) -> bool:
        return self._graph.has_edge(region_a, region_b)

    def find_path(self, start: str, goal: str) -> Sequence[str]:
        return shortest_region_path(self._graph, start, goal)

    def get_settlement(self, settlement_id: str) -> Settlement | None:
        return self._settlements.get(settlement_id)

    def get_player_settlement(self) -> Settlement | None:
        for settlement in self._settlements.values():
            if settlement.is_player:
                return settlement
        return None

    def settlements_in_region(self, region_id: str) -> list[Settlement]:
        return [s for s in self._settlements.values() if s.region == region_id]

    def faction_settlements(self, faction_id: str) -> list[Settlement]:
        return [s for s in self._settlements.values() if s.faction_id == faction_id]

    def faction_territories(self, faction_id: str) -> list[str]:
        territories: List[str] = []
        for settlement in self.faction_settlements(faction_id):
            if settlement.region not in territories:
                territories.append(settlement.region)
        return territories

    def discover_region(self, region_id: str) -> bool:
        """Mark ``region_id`` discovered; return ``True`` when newly revealed."""

        region = self._regions.get(region_id)
        if region is None or region.discovered:
            return False
        region.discovered = True
        return True

    def discover_settlement(self, settlement_id: str) -> bool:
        settlement = self._settlements.get(settlement_id)
        if settlement is None or settlement.discovered:
            return False
        settlement.discovered = True
        return True

    def adjust_settlement_warriors(self, settlement_id: str, delta: int) -> int:
        """Apply ``delta`` to a garrison and return the amount actually applied.

        Garrisons never go negative; an oversized debit is clamped and logged.
        """

        settlement = self._settlements.get(settlement_id)
        if settlement is None:
            logger.warning("Cannot adjust warriors of unknown settlement %s", settlement_id)
            return 0
        current = settlement.military.warriors
        updated = current + int(delta)
        if updated < 0:
            logger.warning(
                "Settlement %s asked to lose %d warriors but only holds %d; clamping",
                settlement_id,
                -int(delta),
                current,
            )
            updated = 0
        settlement.military.warriors = updated
        return updated - current


__all__ = [
    "PLAYER_FACTION_ID",
    "Region",
    "RegionDirectory",
    "RegionRegistry",
    "Settlement",
    "SettlementMilitary",
]
