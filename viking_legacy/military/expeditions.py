"""Player and AI war-bands: muster, march, raid, siege, return and disband."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, MutableMapping, Sequence

from numpy.random import Generator

from ..world.config import SimulationConfig
from ..world.holdings import Holdings
from ..world.regions import PLAYER_FACTION_ID, RegionDirectory
from ..world.rng import chance_of, choose, random_between, round_half_up
from .forces import Narrator, OwnerKind

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..ui.channels import NotificationChannel
    from .conflict import ConflictResolver

logger = logging.getLogger(__name__)

_NAME_ADJECTIVES = ("Bold", "Fierce", "Swift", "Mighty", "Great", "Dread", "Savage", "Battle-Ready")
_NAME_NOUNS = ("Wolves", "Ravens", "Warriors", "Axes", "Serpents", "Dragons", "Vanguard", "Force")
# Float progress accumulates rounding error (e.g. 7 x 100/7).
_ARRIVAL_EPSILON = 1e-9


class ExpeditionStatus(str, Enum):
    MUSTERING = "mustering"
    MARCHING = "marching"
    RAIDING = "raiding"
    SIEGING = "sieging"
    BATTLING = "battling"
    RETURNING = "returning"
    DISBANDED = "disbanded"


@dataclass
class Expedition:
    """A mobile war-band.

    ``warriors`` and ``strength`` are derived from ``initial_warriors`` and
    ``casualties`` so they can never drift out of step.  ``status`` reports
    :attr:`ExpeditionStatus.BATTLING` while the band is engaged in a battle and
    falls back to ``base_status`` once the battle ends.
    """

    identifier: str
    name: str
    owner_settlement: str
    owner_kind: OwnerKind
    faction_id: str | None
    initial_warriors: int
    origin_region: str
    current_region: str
    bonuses: Dict[str, float] = field(default_factory=dict)
    casualties: int = 0
    target_region: str | None = None
    target_settlement: str | None = None
    path: List[str] = field(default_factory=list)
    movement_progress: float = 0.0
    siege_progress: float = 0.0
    loot: MutableMapping[str, int] = field(default_factory=dict)
    fame: int = 0
    base_status: ExpeditionStatus = ExpeditionStatus.MUSTERING
    engaged_battle: str | None = None
    days_active: float = 0.0
    ticks_since_disbanded: int = 0

    @property
    def warriors(self) -> int:
        return self.initial_warriors - self.casualties

    @property
    def strength(self) -> int:
        multiplier = 1.0
        for bonus in self.bonuses.values():
            multiplier *= float(bonus)
        return max(0, int(math.floor(self.warriors * multiplier)))

    @property
    def status(self) -> ExpeditionStatus:
        if self.engaged_battle is not None and self.base_status is not ExpeditionStatus.DISBANDED:
            return ExpeditionStatus.BATTLING
        return self.base_status

    @property
    def is_player(self) -> bool:
        return self.owner_kind is OwnerKind.PLAYER

    @property
    def total_loot(self) -> int:
        return sum(int(amount) for amount in self.loot.values())

    def apply_casualties(self, count: int) -> int:
        """Remove up to ``count`` warriors and return how many actually fell."""

        applied = max(0, min(int(count), self.warriors))
        self.casualties += applied
        return applied

    def credit(self, *, fame: int = 0, loot: Mapping[str, int] | None = None) -> None:
        self.fame += int(fame)
        for resource, amount in (loot or {}).items():
            if amount:
                self.loot[resource] = self.loot.get(resource, 0) + int(amount)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "name": self.name,
            "owner_settlement": self.owner_settlement,
            "owner_kind": self.owner_kind.value,
            "faction_id": self.faction_id,
            "warriors": self.warriors,
            "initial_warriors": self.initial_warriors,
            "strength": self.strength,
            "casualties": self.casualties,
            "origin_region": self.origin_region,
            "current_region": self.current_region,
            "target_region": self.target_region,
            "target_settlement": self.target_settlement,
            "path": list(self.path),
            "movement_progress": self.movement_progress,
            "siege_progress": self.siege_progress,
            "loot": dict(self.loot),
            "fame": self.fame,
            "status": self.status.value,
            "days_active": self.days_active,
        }


class ExpeditionManager(Narrator):
    """Owns every expedition and advances them once per tick."""

    def __init__(
        self,
        registry: RegionDirectory,
        holdings: Holdings,
        *,
        config: SimulationConfig | None = None,
        rng: Generator,
        name_rng: Generator | None = None,
        notifications: NotificationChannel | None = None,
    ) -> None:
        self.registry = registry
        self.holdings = holdings
        self.config = config or SimulationConfig()
        self.rng = rng
        self.name_rng = name_rng or rng
        self.notifications = notifications
        self.day = self.config.day_zero
        self._expeditions: Dict[str, Expedition] = {}
        self._counter = 0
        self._conflicts: ConflictResolver | None = None

    def attach_conflicts(self, resolver: ConflictResolver) -> None:
        self._conflicts = resolver

    # ------------------------------------------------------------------
    # Creation
    def create_player_expedition(
        self,
        warriors: int,
        region_id: str | None = None,
        name: str | None = None,
        bonuses: Mapping[str, float] | None = None,
    ) -> Expedition | None:
        warriors = int(warriors)
        if warriors <= 0:
            logger.warning("Refusing to create an expedition with %d warriors", warriors)
            return None
        home = self.registry.get_player_settlement()
        if home is None:
            logger.warning("Cannot create a player expedition without a player settlement")
            return None
        origin = region_id or home.region
        if self.registry.get_region(origin) is None:
            logger.warning("Cannot create a player expedition in unknown region %s", origin)
            return None
        available = self.holdings.population_of("warriors")
        if available < warriors:
            logger.warning(
                "Not enough warriors for an expedition: requested %d, available %d",
                warriors,
                available,
            )
            self._narrate(
                f"Not enough warriors: {warriors} requested but only {available} stand ready.",
                category="warning",
            )
            return None

        self.holdings.add_anonymous_population("warriors", -warriors)
        expedition = self._register(
            name=name or self._generate_name("Raiding"),
            owner_settlement=home.identifier,
            owner_kind=OwnerKind.PLAYER,
            faction_id=PLAYER_FACTION_ID,
            warriors=warriors,
            origin=origin,
            bonuses=bonuses,
        )
        self._narrate(
            f"{expedition.name} musters {warriors} warriors.",
            category="expedition",
            payload={"expedition": expedition.identifier},
        )
        return expedition

    def create_ai_expedition(
        self,
        settlement_id: str,
        warriors: int,
        name: str | None = None,
        bonuses: Mapping[str, float] | None = None,
    ) -> Expedition | None:
        warriors = int(warriors)
        if warriors <= 0:
            logger.warning("Refusing to create an AI expedition with %d warriors", warriors)
            return None
        settlement = self.registry.get_settlement(settlement_id)
        if settlement is None:
            logger.warning("Cannot create an AI expedition from unknown settlement %s", settlement_id)
            return None
        if self.registry.get_region(settlement.region) is None:
            logger.warning("Settlement %s sits in unknown region %s", settlement_id, settlement.region)
            return None
        drawn = -self.registry.adjust_settlement_warriors(
            settlement_id, -min(warriors, settlement.military.warriors)
        )
        if drawn <= 0:
            logger.warning("Settlement %s has no warriors to send", settlement_id)
            return None
        return self._register(
            name=name or self._generate_name("Expedition"),
            owner_settlement=settlement.identifier,
            owner_kind=OwnerKind.AI,
            faction_id=settlement.faction_id,
            warriors=drawn,
            origin=settlement.region,
            bonuses=bonuses,
        )

    def _register(
        self,
        *,
        name: str,
        owner_settlement: str,
        owner_kind: OwnerKind,
        faction_id: str | None,
        warriors: int,
        origin: str,
        bonuses: Mapping[str, float] | None,
    ) -> Expedition:
        self._counter += 1
        expedition = Expedition(
            identifier=f"expedition-{self._counter}",
            name=name,
            owner_settlement=owner_settlement,
            owner_kind=owner_kind,
            faction_id=faction_id,
            initial_warriors=warriors,
            origin_region=origin,
            current_region=origin,
            bonuses={str(key): float(value) for key, value in (bonuses or {}).items()},
        )
        self._expeditions[expedition.identifier] = expedition
        logger.debug(
            "Created expedition %s (%s, %d warriors) in %s",
            expedition.identifier,
            owner_kind.value,
            warriors,
            origin,
        )
        return expedition

    def _generate_name(self, prefix: str) -> str:
        adjective = choose(self.name_rng, _NAME_ADJECTIVES)
        noun = choose(self.name_rng, _NAME_NOUNS)
        return f"{prefix} {adjective} {noun}"

    # ------------------------------------------------------------------
    # Orders
    def start_expedition(
        self,
        expedition_id: str,
        target_region_id: str | None = None,
        target_settlement_id: str | None = None,
        path: Sequence[str] | None = None,
    ) -> bool:
        expedition = self._expeditions.get(expedition_id)
        if expedition is None:
            logger.warning("Cannot start unknown expedition %s", expedition_id)
            return False
        if expedition.base_status is ExpeditionStatus.DISBANDED:
            logger.warning("Cannot start disbanded expedition %s", expedition_id)
            return False
        if target_region_id is None and target_settlement_id is None:
            logger.warning("Expedition %s needs a target region or settlement", expedition_id)
            return False
        if target_settlement_id is not None:
            settlement = self.registry.get_settlement(target_settlement_id)
            if settlement is None:
                logger.warning("Expedition %s targets unknown settlement %s", expedition_id, target_settlement_id)
                return False
            if target_region_id is None:
                target_region_id = settlement.region
        if target_region_id is None or self.registry.get_region(target_region_id) is None:
            logger.warning("Expedition %s targets unknown region %s", expedition_id, target_region_id)
            return False

        expedition.target_region = target_region_id
        expedition.target_settlement = target_settlement_id
        if path is not None:
            expedition.path = [str(step) for step in path]
        else:
            expedition.path = list(self.registry.find_path(expedition.current_region, target_region_id))
        expedition.movement_progress = 0.0
        expedition.base_status = ExpeditionStatus.MARCHING
        logger.debug(
            "Expedition %s marching to %s via %s",
            expedition.identifier,
            target_region_id,
            expedition.path,
        )
        if expedition.is_player:
            region = self.registry.get_region(target_region_id)
            self._narrate(
                f"{expedition.name} sets out for {region.name if region else target_region_id}.",
                category="expedition",
                payload={"expedition": expedition.identifier},
            )
        return True

    def recall_expedition(self, expedition_id: str) -> bool:
        expedition = self._expeditions.get(expedition_id)
        if expedition is None:
            return False
        if expedition.base_status is ExpeditionStatus.DISBANDED:
            logger.debug("Recall ignored for disbanded expedition %s", expedition_id)
            return False
        if self._conflicts is not None:
            self._conflicts.withdraw_siege(expedition_id)
        expedition.base_status = ExpeditionStatus.RETURNING
        expedition.target_region = expedition.origin_region
        expedition.path = []
        expedition.movement_progress = 0.0
        logger.debug("Expedition %s recalled to %s", expedition_id, expedition.origin_region)
        if expedition.is_player:
            self._narrate(
                f"{expedition.name} has been ordered to return home.",
                category="expedition",
                payload={"expedition": expedition.identifier},
            )
        return True

    def disband_expedition(self, expedition_id: str) -> bool:
        """Return warriors, plunder and fame to their owner.

        Calling this twice is harmless: the second call finds the expedition
        already disbanded and credits nothing.
        """

        expedition = self._expeditions.get(expedition_id)
        if expedition is None or expedition.base_status is ExpeditionStatus.DISBANDED:
            return False
        if self._conflicts is not None:
            self._conflicts.withdraw_siege(expedition_id)

        warriors = expedition.warriors
        if expedition.is_player:
            if warriors:
                self.holdings.add_anonymous_population("warriors", warriors)
            if expedition.loot:
                self.holdings.add_resources(dict(expedition.loot))
            if expedition.fame:
                self.holdings.add_fame(expedition.fame, f"expedition {expedition.name}")
            self._narrate(
                f"{warriors} warriors have returned from {expedition.name}.",
                category="expedition",
                payload={
                    "expedition": expedition.identifier,
                    "loot": expedition.total_loot,
                    "fame": expedition.fame,
                },
            )
        elif warriors and self.registry.get_settlement(expedition.owner_settlement) is not None:
            self.registry.adjust_settlement_warriors(expedition.owner_settlement, warriors)

        expedition.base_status = ExpeditionStatus.DISBANDED
        expedition.engaged_battle = None
        expedition.path = []
        expedition.ticks_since_disbanded = 0
        logger.debug("Expedition %s disbanded with %d warriors", expedition_id, warriors)
        return True

    # ------------------------------------------------------------------
    # Queries
    def get_expeditions(self, owner_type: OwnerKind | str | None = None) -> list[Expedition]:
        kind = OwnerKind(owner_type) if owner_type is not None else None
        return [
            expedition
            for expedition in self._expeditions.values()
            if expedition.base_status is not ExpeditionStatus.DISBANDED
            and (kind is None or expedition.owner_kind is kind)
        ]

    def get_expedition(self, expedition_id: str) -> Expedition | None:
        return self._expeditions.get(expedition_id)

    @staticmethod
    def status_constants() -> dict[str, str]:
        return {status.name: status.value for status in ExpeditionStatus}

    # Force source protocol -------------------------------------------
    def lookup_force(self, force_id: str) -> Expedition | None:
        expedition = self._expeditions.get(force_id)
        if expedition is None or expedition.base_status is ExpeditionStatus.DISBANDED:
            return None
        return expedition

    def recall_force(self, force_id: str) -> bool:
        return self.recall_expedition(force_id)

    # ------------------------------------------------------------------
    # Tick processing
    def process_tick(self, game_state: Mapping[str, Any] | None, tick_size: float) -> None:
        self._sync_day(game_state)
        self._prune_disbanded()

        for expedition in list(self._expeditions.values()):
            if expedition.base_status is ExpeditionStatus.DISBANDED:
                continue
            expedition.days_active += tick_size
            if expedition.engaged_battle is not None:
                continue
            status = expedition.base_status
            if status is ExpeditionStatus.MARCHING:
                self._process_marching(expedition, tick_size)
            elif status is ExpeditionStatus.RAIDING:
                self._process_raiding(expedition, tick_size)
            elif status is ExpeditionStatus.SIEGING:
                self._process_sieging(expedition)
            elif status is ExpeditionStatus.RETURNING:
                self._process_returning(expedition, tick_size)

        self._detect_battles()

    def _prune_disbanded(self) -> None:
        grace = self.config.retention.expedition_grace_ticks
        for expedition_id, expedition in list(self._expeditions.items()):
            if expedition.base_status is not ExpeditionStatus.DISBANDED:
                continue
            expedition.ticks_since_disbanded += 1
            if expedition.ticks_since_disbanded > grace:
                del self._expeditions[expedition_id]
                logger.debug("Pruned disbanded expedition %s", expedition_id)

    def travel_days(self, origin: str, destination: str) -> int:
        """Days needed to move a war-band from ``origin`` to ``destination``."""

        movement = self.config.movement
        start = self.registry.get_region(origin)
        end = self.registry.get_region(destination)
        if start is None or end is None:
            return max(1, round_half_up(movement.base_days))
        if start.landmass != end.landmass:
            return max(1, round_half_up(movement.base_days * movement.sea_multiplier))
        days = movement.base_days / movement.modifier_for(end.region_type)
        if origin != destination and destination not in self.registry.get_adjacent_regions(origin):
            days *= movement.non_adjacent_penalty
        return max(1, round_half_up(days))

    def _advance_leg(self, expedition: Expedition, destination: str, tick_size: float) -> bool:
        total_days = self.travel_days(expedition.current_region, destination)
        expedition.movement_progress += tick_size / total_days * 100.0
        if expedition.movement_progress + _ARRIVAL_EPSILON < 100.0:
            return False
        expedition.current_region = destination
        expedition.movement_progress = 0.0
        return True

    def _process_marching(self, expedition: Expedition, tick_size: float) -> None:
        if expedition.target_region is None:
            expedition.base_status = ExpeditionStatus.MUSTERING
            return
        destination = expedition.path[0] if expedition.path else expedition.target_region
        if destination != expedition.current_region:
            if not self._advance_leg(expedition, destination, tick_size):
                return
        if expedition.path and expedition.path[0] == expedition.current_region:
            expedition.path.pop(0)
        if expedition.path or expedition.current_region != expedition.target_region:
            return
        self._arrive(expedition)

    def _arrive(self, expedition: Expedition) -> None:
        region = self.registry.get_region(expedition.current_region)
        region_name = region.name if region else expedition.current_region
        settlement = (
            self.registry.get_settlement(expedition.target_settlement)
            if expedition.target_settlement
            else None
        )
        if settlement is not None and settlement.region == expedition.current_region:
            expedition.base_status = ExpeditionStatus.SIEGING
            expedition.siege_progress = 0.0
            if self._conflicts is not None:
                self._conflicts.initiate_siege(settlement.identifier, expedition.identifier)
            if expedition.is_player:
                self._narrate(
                    f"{expedition.name} has reached {settlement.name} and begun a siege.",
                    category="siege",
                    payload={"expedition": expedition.identifier},
                )
            return

        expedition.base_status = ExpeditionStatus.RAIDING
        if expedition.is_player:
            self._narrate(
                f"{expedition.name} has reached {region_name} and begun raiding.",
                category="raid",
                payload={"expedition": expedition.identifier},
            )

    def _process_raiding(self, expedition: Expedition, tick_size: float) -> None:
        raids = self.config.raids
        self.registry.discover_region(expedition.current_region)
        region = self.registry.get_region(expedition.current_region)
        if region is None:
            logger.warning("Expedition %s raids a vanished region; recalling", expedition.identifier)
            self.recall_expedition(expedition.identifier)
            return
        self._explore(expedition, region.name, tick_size)

        loot_chance = expedition.strength * raids.loot_chance_per_strength * tick_size
        if chance_of(self.rng, loot_chance):
            gathered = self._roll_loot(expedition, region.resource_modifiers, tick_size)
            fame = math.ceil(sum(gathered.values()) / 20)
            expedition.credit(fame=fame, loot=gathered)
            if expedition.is_player and gathered:
                summary = ", ".join(f"{amount} {resource}" for resource, amount in gathered.items() if amount > 0)
                self._narrate(
                    f"Your raiders have gathered: {summary}.",
                    category="raid",
                    payload={"expedition": expedition.identifier, "fame": fame},
                )

        if chance_of(self.rng, raids.retaliation_chance * tick_size):
            casualties = math.ceil(
                expedition.warriors * raids.retaliation_fraction * random_between(self.rng, 1, 3)
            )
            fallen = expedition.apply_casualties(casualties)
            if fallen > 0:
                logger.debug("Expedition %s lost %d warriors to retaliation", expedition.identifier, fallen)
                if expedition.is_player:
                    self._narrate(
                        f"The locals fought back! {expedition.name} lost {fallen} warriors.",
                        category="danger",
                        payload={"expedition": expedition.identifier},
                    )
                if expedition.warriors <= 0 or expedition.casualties > expedition.warriors / 2:
                    if expedition.is_player:
                        self._narrate(
                            f"Having suffered heavy losses, {expedition.name} is returning home.",
                            category="danger",
                        )
                    self.recall_expedition(expedition.identifier)
                    return

        if expedition.total_loot > raids.return_loot_per_warrior * expedition.warriors:
            if chance_of(self.rng, raids.return_chance * tick_size):
                if expedition.is_player:
                    self._narrate(
                        f"Laden with plunder, {expedition.name} is returning home.",
                        category="raid",
                    )
                self.recall_expedition(expedition.identifier)

    def _explore(self, expedition: Expedition, region_name: str, tick_size: float) -> None:
        """Scout hidden settlements in the raided region and the lands around it."""

        raids = self.config.raids
        hidden = [
            settlement
            for settlement in self.registry.settlements_in_region(expedition.current_region)
            if not settlement.is_player and not settlement.discovered
        ]
        if hidden and chance_of(self.rng, raids.settlement_discovery_chance * tick_size):
            settlement = choose(self.rng, hidden)
            if self.registry.discover_settlement(settlement.identifier) and expedition.is_player:
                self._narrate(
                    f"Your raiders have found {settlement.name} in {region_name}.",
                    category="discovery",
                    payload={"settlement": settlement.identifier},
                )

        for neighbour in self.registry.get_adjacent_regions(expedition.current_region):
            if not chance_of(self.rng, raids.region_discovery_chance * tick_size):
                continue
            if self.registry.discover_region(neighbour) and expedition.is_player:
                adjacent = self.registry.get_region(neighbour)
                self._narrate(
                    f"Scouts from {expedition.name} have sighted "
                    f"{adjacent.name if adjacent else neighbour} beyond {region_name}.",
                    category="discovery",
                    payload={"region": neighbour},
                )

    def _roll_loot(
        self,
        expedition: Expedition,
        modifiers: Mapping[str, float],
        tick_size: float,
    ) -> Dict[str, int]:
        base_loot = self.config.raids.base_loot
        gathered: Dict[str, int] = {}
        for resource, (low, high) in base_loot.items():
            amount = random_between(self.rng, low, high) * tick_size
            modifier = modifiers.get(resource)
            if modifier:
                amount *= modifier
            gathered[resource] = round_half_up(amount)
        for resource, modifier in modifiers.items():
            if resource in base_loot or modifier <= 0.5:
                continue
            amount = round_half_up(
                expedition.strength / 20 * modifier * random_between(self.rng, 1, 3)
            )
            if amount > 0:
                gathered[resource] = gathered.get(resource, 0) + amount
        return gathered

    def _process_sieging(self, expedition: Expedition) -> None:
        siege = self._conflicts.find_siege_for(expedition.identifier) if self._conflicts else None
        if siege is None:
            logger.debug("Expedition %s lost its siege; raiding instead", expedition.identifier)
            expedition.base_status = ExpeditionStatus.RAIDING
            return
        expedition.siege_progress = siege.progress

    def _process_returning(self, expedition: Expedition, tick_size: float) -> None:
        origin = expedition.origin_region
        if expedition.current_region == origin:
            self.disband_expedition(expedition.identifier)
            return
        if not expedition.path:
            expedition.path = list(self.registry.find_path(expedition.current_region, origin)) or [origin]
        if not self._advance_leg(expedition, expedition.path[0], tick_size):
            return
        expedition.path.pop(0)
        if expedition.current_region == origin:
            self.disband_expedition(expedition.identifier)

    def _detect_battles(self) -> None:
        if self._conflicts is None:
            return
        grouped: Dict[str, tuple[list[Expedition], list[Expedition]]] = {}
        for expedition in self._expeditions.values():
            if expedition.base_status in (ExpeditionStatus.DISBANDED, ExpeditionStatus.MUSTERING):
                continue
            if expedition.engaged_battle is not None:
                continue
            players, others = grouped.setdefault(expedition.current_region, ([], []))
            (players if expedition.is_player else others).append(expedition)

        for region_id, (players, others) in grouped.items():
            if not players or not others:
                continue
            if self._conflicts.has_active_battle(region_id):
                continue
            region = self.registry.get_region(region_id)
            self._conflicts.initiate_battle(
                region_id,
                region_name=region.name if region else None,
                player_expeditions=players,
                ai_expeditions=others,
            )


__all__ = ["Expedition", "ExpeditionManager", "ExpeditionStatus"]
