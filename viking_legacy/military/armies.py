"""Reactive faction armies raised against player incursions."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Mapping

import polars as pl
from numpy.random import Generator

from ..factions import Faction, FactionDirectory
from ..factions.summary import faction_strength_frame, faction_warrior_totals
from ..world.config import SimulationConfig
from ..world.regions import RegionDirectory
from ..world.rng import choose, uniform
from .expeditions import ExpeditionManager, ExpeditionStatus
from .forces import Narrator, OwnerKind

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..ui.channels import NotificationChannel
    from .conflict import ConflictResolver

logger = logging.getLogger(__name__)

_ARMY_PREFIXES = ("Warband", "Host", "Army", "Guard", "Levy", "Force")
_ARMY_EPITHETS = {
    "NORSE": ("Northmen", "Vikings", "Norsemen", "Raiders"),
    "ANGLO_SAXON": ("Anglo", "Saxon", "Britannic", "Wessex"),
    "FRANKISH": ("Frankish", "Royal", "Noble", "Imperial"),
}
# Expedition states an army will not attack.
_UNENGAGEABLE = (
    ExpeditionStatus.MUSTERING,
    ExpeditionStatus.RETURNING,
    ExpeditionStatus.DISBANDED,
)


class ArmyStatus(str, Enum):
    MUSTERING = "mustering"
    MARCHING = "marching"
    DEFENDING = "defending"
    BATTLING = "battling"
    DISBANDING = "disbanding"


class ResponseTrigger(str, Enum):
    IN_TERRITORY = "in_territory"
    NEAR_TERRITORY = "near_territory"
    SIEGE_RESPONSE = "siege_response"


@dataclass
class FactionArmy:
    """Warriors drawn from a faction's settlements for a single campaign."""

    identifier: str
    name: str
    faction_id: str | None
    warriors: int
    origin_region: str
    current_region: str
    target_region: str
    target_expedition: str | None = None
    casualties: int = 0
    days_until_arrival: float = 0.0
    days_active: float = 0.0
    disbanding_for: float = 0.0
    contributions: Dict[str, int] = field(default_factory=dict)
    status: ArmyStatus = ArmyStatus.MUSTERING
    engaged_battle: str | None = None

    @property
    def strength(self) -> int:
        return self.warriors

    @property
    def is_player(self) -> bool:
        return False

    @property
    def is_live(self) -> bool:
        return self.status is not ArmyStatus.DISBANDING

    def apply_casualties(self, count: int) -> int:
        applied = max(0, min(int(count), self.warriors))
        self.warriors -= applied
        self.casualties += applied
        return applied

    def credit(self, *, fame: int = 0, loot: Mapping[str, int] | None = None) -> None:
        # Faction armies do not carry plunder or renown.
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "name": self.name,
            "faction_id": self.faction_id,
            "warriors": self.warriors,
            "strength": self.strength,
            "casualties": self.casualties,
            "origin_region": self.origin_region,
            "current_region": self.current_region,
            "target_region": self.target_region,
            "target_expedition": self.target_expedition,
            "days_until_arrival": self.days_until_arrival,
            "days_active": self.days_active,
            "contributions": dict(self.contributions),
            "status": self.status.value,
        }


class FactionArmyManager(Narrator):
    """Decides when factions answer player aggression and runs their armies."""

    def __init__(
        self,
        registry: RegionDirectory,
        factions: FactionDirectory,
        expeditions: ExpeditionManager,
        *,
        config: SimulationConfig | None = None,
        rng: Generator,
        name_rng: Generator | None = None,
        notifications: NotificationChannel | None = None,
    ) -> None:
        self.registry = registry
        self.factions = factions
        self.expeditions = expeditions
        self.config = config or SimulationConfig()
        self.rng = rng
        self.name_rng = name_rng or rng
        self.notifications = notifications
        self.day = self.config.day_zero
        self.force_response = self.config.force_response
        self._armies: Dict[str, FactionArmy] = {}
        self._counter = 0
        # First tick always runs a threat check.
        self._days_since_check = self.config.armies.check_interval_days
        self._detected_regions: set[str] = set()
        self._conflicts: ConflictResolver | None = None

    def attach_conflicts(self, resolver: ConflictResolver) -> None:
        self._conflicts = resolver

    # ------------------------------------------------------------------
    # Queries
    def get_faction_armies(self, faction_id: str | None = None) -> list[FactionArmy]:
        return [
            army
            for army in self._armies.values()
            if faction_id is None or army.faction_id == faction_id
        ]

    def get_faction_army(self, army_id: str) -> FactionArmy | None:
        return self._armies.get(army_id)

    def get_armies_in_region(self, region_id: str) -> list[FactionArmy]:
        return [army for army in self._armies.values() if army.current_region == region_id]

    @property
    def detected_regions(self) -> frozenset[str]:
        return frozenset(self._detected_regions)

    def strength_report(self) -> pl.DataFrame:
        """Garrison and field-army warriors per faction."""

        settlements = [
            settlement
            for faction in self.factions
            for settlement in self.registry.faction_settlements(faction.identifier)
        ]
        armies = [
            (army.faction_id, army.identifier, army.warriors)
            for army in self._armies.values()
            if army.faction_id is not None
        ]
        return faction_strength_frame(settlements, armies)

    # Force source protocol -------------------------------------------
    def lookup_force(self, force_id: str) -> FactionArmy | None:
        return self._armies.get(force_id)

    def recall_force(self, force_id: str) -> bool:
        army = self._armies.get(force_id)
        if army is None:
            return False
        if army.status is not ArmyStatus.DISBANDING:
            self._begin_disbanding(army, "recalled")
        return True

    # ------------------------------------------------------------------
    # Response decisions
    def _live_armies(self, faction_id: str) -> list[FactionArmy]:
        return [army for army in self._armies.values() if army.faction_id == faction_id and army.is_live]

    def _garrison_total(self, faction_id: str) -> int:
        totals = faction_warrior_totals(self.registry.faction_settlements(faction_id))
        return totals.get(faction_id, 0)

    def response_probability(self, faction: Faction, trigger: ResponseTrigger | str) -> float:
        settings = self.config.armies
        trigger = ResponseTrigger(trigger)
        if len(self._live_armies(faction.identifier)) >= settings.max_armies_per_faction:
            return 0.0
        total_warriors = self._garrison_total(faction.identifier)
        if total_warriors <= 0:
            return 0.0
        base = {
            ResponseTrigger.IN_TERRITORY: settings.in_territory_chance,
            ResponseTrigger.NEAR_TERRITORY: settings.near_territory_chance,
            ResponseTrigger.SIEGE_RESPONSE: settings.siege_response_chance,
        }[trigger]
        probability = (
            base
            * settings.faction_type_multipliers.get(faction.faction_type, 1.0)
            * settings.warrior_factor(total_warriors)
        )
        return min(probability, settings.max_probability)

    def should_faction_respond(self, faction: Faction | str, trigger: ResponseTrigger | str) -> bool:
        resolved = self.factions.get(faction) if isinstance(faction, str) else faction
        if resolved is None:
            return False
        probability = self.response_probability(resolved, trigger)
        if probability <= 0.0:
            return False
        if self.force_response:
            return True
        return float(self.rng.random()) < probability

    # ------------------------------------------------------------------
    # Muster and disband
    def create_faction_army(
        self,
        faction_id: str,
        region_id: str,
        target_expedition_id: str | None = None,
    ) -> FactionArmy | None:
        faction = self.factions.get(faction_id)
        if faction is None:
            logger.warning("Cannot muster an army for unknown faction %s", faction_id)
            return None
        territories = self.registry.faction_territories(faction_id)
        if not territories:
            logger.warning("Faction %s has no territory to muster from", faction_id)
            return None

        home = self._muster_region(territories, region_id)
        low, high = self.config.armies.contribution_range
        contributions: Dict[str, int] = {}
        for settlement in self.registry.faction_settlements(faction_id):
            drawn = int(math.floor(settlement.military.warriors * uniform(self.rng, low, high)))
            if drawn <= 0:
                continue
            applied = -self.registry.adjust_settlement_warriors(settlement.identifier, -drawn)
            if applied > 0:
                contributions[settlement.identifier] = applied
        total = sum(contributions.values())
        if total <= 0:
            logger.warning("Faction %s could not muster any warriors", faction_id)
            return None

        self._counter += 1
        defending = home == region_id
        army = FactionArmy(
            identifier=f"army-{self._counter}",
            name=self._generate_name(faction),
            faction_id=faction_id,
            warriors=total,
            origin_region=home,
            current_region=home,
            target_region=region_id,
            target_expedition=target_expedition_id,
            days_until_arrival=self._arrival_days(home, region_id),
            contributions=contributions,
            status=ArmyStatus.DEFENDING if defending else ArmyStatus.MARCHING,
        )
        self._armies[army.identifier] = army
        logger.debug(
            "Faction %s mustered %s (%d warriors) at %s for %s",
            faction_id,
            army.identifier,
            total,
            home,
            region_id,
        )
        if defending:
            self._narrate(
                f"A force from {faction.name} has mobilized to defend their territory.",
                category="army",
                payload={"army": army.identifier, "warriors": total},
            )
        else:
            self._narrate(
                f"A force from {faction.name} is marching toward your warriors.",
                category="army",
                payload={"army": army.identifier, "warriors": total},
            )
        return army

    def _muster_region(self, territories: list[str], target: str) -> str:
        if target in territories:
            return target
        for neighbour in self.registry.get_adjacent_regions(target):
            if neighbour in territories:
                return neighbour
        return territories[0]

    def _arrival_days(self, home: str, target: str) -> int:
        arrival = self.config.armies.arrival_days
        if home == target:
            return arrival["same"]
        if target in self.registry.get_adjacent_regions(home):
            return arrival["adjacent"]
        return arrival["distant"]

    def _generate_name(self, faction: Faction) -> str:
        epithets = _ARMY_EPITHETS.get(faction.faction_type.value, ("Allied",))
        return f"{choose(self.name_rng, epithets)} {choose(self.name_rng, _ARMY_PREFIXES)}"

    def _begin_disbanding(self, army: FactionArmy, reason: str) -> None:
        army.status = ArmyStatus.DISBANDING
        army.disbanding_for = 0.0
        logger.debug("Army %s disbanding (%s)", army.identifier, reason)

    def disband_army(self, army_id: str) -> bool:
        """Send the army's survivors home and forget it.

        Survivors are shared out in proportion to what each contributing
        settlement gave, among the settlements that still exist.
        """

        army = self._armies.pop(army_id, None)
        if army is None:
            return False
        present = {
            settlement_id: amount
            for settlement_id, amount in army.contributions.items()
            if self.registry.get_settlement(settlement_id) is not None and amount > 0
        }
        remaining = army.warriors
        if present and remaining > 0:
            contributed = sum(present.values())
            shares = {
                settlement_id: remaining * amount // contributed
                for settlement_id, amount in present.items()
            }
            leftover = remaining - sum(shares.values())
            largest = max(present, key=lambda key: present[key])
            shares[largest] += leftover
            for settlement_id, amount in shares.items():
                if amount > 0:
                    self.registry.adjust_settlement_warriors(settlement_id, amount)
        elif remaining > 0:
            logger.warning(
                "Army %s has %d survivors but no settlement left to receive them",
                army_id,
                remaining,
            )
        logger.debug("Army %s disbanded; %d warriors returned", army_id, remaining)
        return True

    # ------------------------------------------------------------------
    # Tick processing
    def process_tick(self, game_state: Mapping[str, Any] | None, tick_size: float) -> None:
        self._sync_day(game_state)
        settings = self.config.armies

        for army in list(self._armies.values()):
            army.days_active += tick_size
            status = army.status
            # Grace counts whole ticks after the one in which disbanding began.
            if status is ArmyStatus.DISBANDING:
                army.disbanding_for += tick_size
                if army.disbanding_for >= settings.disband_grace_days:
                    self.disband_army(army.identifier)
                continue
            if army.days_active > settings.max_active_days:
                self._begin_disbanding(army, "campaign season over")
                continue
            if status is ArmyStatus.MARCHING:
                army.days_until_arrival -= tick_size
                if army.days_until_arrival <= 0:
                    army.days_until_arrival = 0
                    army.current_region = army.target_region
                    army.status = ArmyStatus.DEFENDING
                    self._check_for_battles(army)
            elif status is ArmyStatus.DEFENDING:
                self._check_for_battles(army)
            elif status is ArmyStatus.BATTLING:
                self._poll_battle(army)

        self._days_since_check += tick_size
        if self._days_since_check >= settings.check_interval_days:
            self._days_since_check = 0.0
            self._check_player_expeditions()
            self._check_sieges()

    def _check_for_battles(self, army: FactionArmy) -> None:
        if self._conflicts is None or army.engaged_battle is not None:
            return
        targets = [
            expedition
            for expedition in self.expeditions.get_expeditions(OwnerKind.PLAYER)
            if expedition.current_region == army.current_region
            and expedition.base_status not in _UNENGAGEABLE
            and expedition.engaged_battle is None
        ]
        if not targets or self._conflicts.has_active_battle(army.current_region):
            return
        if any(expedition.base_status is ExpeditionStatus.SIEGING for expedition in targets):
            battle = self._conflicts.initiate_battle(
                army.current_region, attackers=[army], defenders=targets
            )
        else:
            battle = self._conflicts.initiate_battle(
                army.current_region, attackers=targets, defenders=[army]
            )
        if battle is not None:
            army.status = ArmyStatus.BATTLING

    def _poll_battle(self, army: FactionArmy) -> None:
        battle = self._conflicts.find_battle_for(army.identifier) if self._conflicts else None
        if battle is None:
            army.status = ArmyStatus.DEFENDING
            return
        if not battle.concluded or battle.outcome is None:
            return
        side = battle.side_of(army.identifier)
        won = (side == "attacker" and battle.outcome.attacker_won) or (
            side == "defender" and battle.outcome.defender_won
        )
        if won:
            army.status = ArmyStatus.DEFENDING
        else:
            self._begin_disbanding(army, f"battle {battle.outcome.value}")

    def _targets(self, army: FactionArmy, expedition_id: str, region_id: str) -> bool:
        return army.target_expedition == expedition_id or army.target_region == region_id

    def _check_player_expeditions(self) -> None:
        for expedition in self.expeditions.get_expeditions(OwnerKind.PLAYER):
            if expedition.base_status is ExpeditionStatus.MUSTERING:
                continue
            region_id = expedition.current_region
            self._detected_regions.add(region_id)
            for faction in self.factions:
                if any(
                    self._targets(army, expedition.identifier, region_id)
                    for army in self._live_armies(faction.identifier)
                ):
                    continue
                territories = self.registry.faction_territories(faction.identifier)
                if region_id in territories:
                    trigger = ResponseTrigger.IN_TERRITORY
                elif any(
                    region_id in self.registry.get_adjacent_regions(territory)
                    for territory in territories
                ):
                    trigger = ResponseTrigger.NEAR_TERRITORY
                else:
                    continue
                if self.should_faction_respond(faction, trigger):
                    self.create_faction_army(faction.identifier, region_id, expedition.identifier)

    def _check_sieges(self) -> None:
        if self._conflicts is None:
            return
        for siege in self._conflicts.get_active_sieges():
            settlement = self.registry.get_settlement(siege.settlement_id)
            faction = self.factions.get(settlement.faction_id) if settlement else None
            if faction is None:
                continue
            if any(army.target_region == siege.region_id for army in self._live_armies(faction.identifier)):
                continue
            if self.should_faction_respond(faction, ResponseTrigger.SIEGE_RESPONSE):
                self.create_faction_army(faction.identifier, siege.region_id, siege.attacker)


__all__ = ["ArmyStatus", "FactionArmy", "FactionArmyManager", "ResponseTrigger"]
