"""Battle and siege state machines.

Battles run ``deployment -> skirmish -> melee -> pursuit -> concluded`` and
never move backwards.  Each tick the advantage (attacker-relative, clamped to
``[-100, 100]``) decays, is pushed by the strength ratio and a random swing,
and then skews the casualties both sides take.  Sieges run ``encirclement ->
bombardment -> assault -> concluded`` while their progress climbs to 100.

Concluded battles and sieges stay readable for a configurable number of ticks
so the managers can poll outcomes before the records are dropped.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Sequence

from numpy.random import Generator

from ..world.config import SimulationConfig
from ..world.regions import RegionDirectory, Settlement
from ..world.rng import chance_of, random_between, round_half_up, uniform
from .forces import Combatant, ForceIndex, Narrator, force_id_of

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..ui.channels import NotificationChannel

logger = logging.getLogger(__name__)

CaptureListener = Callable[[str, str], None]


class BattlePhase(str, Enum):
    DEPLOYMENT = "deployment"
    SKIRMISH = "skirmish"
    MELEE = "melee"
    PURSUIT = "pursuit"
    CONCLUDED = "concluded"


class BattleOutcome(str, Enum):
    """Battle results, always read from the attacker's side."""

    DECISIVE_VICTORY = "decisive_victory"
    VICTORY = "victory"
    DRAW = "draw"
    DEFEAT = "defeat"
    DEVASTATING_DEFEAT = "devastating_defeat"

    @property
    def attacker_won(self) -> bool:
        return self in (BattleOutcome.DECISIVE_VICTORY, BattleOutcome.VICTORY)

    @property
    def defender_won(self) -> bool:
        return self in (BattleOutcome.DEFEAT, BattleOutcome.DEVASTATING_DEFEAT)


class SiegePhase(str, Enum):
    ENCIRCLEMENT = "encirclement"
    BOMBARDMENT = "bombardment"
    ASSAULT = "assault"
    CONCLUDED = "concluded"


class SiegeOutcome(str, Enum):
    VICTORY = "victory"
    DEFEAT = "defeat"
    ABANDONED = "abandoned"


_PHASE_MESSAGES = {
    BattlePhase.DEPLOYMENT: "Warriors form their lines in {region}.",
    BattlePhase.SKIRMISH: "Arrows and spears fly as skirmishers clash in {region}.",
    BattlePhase.MELEE: "Shield walls crash together in {region}.",
    BattlePhase.PURSUIT: "One side breaks and flees across {region}!",
}
_OUTCOME_MESSAGES = {
    BattleOutcome.DECISIVE_VICTORY: "A decisive victory for the attackers in {region}!",
    BattleOutcome.VICTORY: "The attackers carry the field in {region}.",
    BattleOutcome.DRAW: "The battle in {region} ends in a stalemate.",
    BattleOutcome.DEFEAT: "The attackers are thrown back in {region}.",
    BattleOutcome.DEVASTATING_DEFEAT: "The attackers are routed and cut down in {region}.",
}
_SIEGE_MESSAGES = {
    SiegePhase.ENCIRCLEMENT: "Forces surround {settlement} and make camp.",
    SiegePhase.BOMBARDMENT: "Siege engines pound the walls of {settlement}.",
    SiegePhase.ASSAULT: "Warriors storm the breaches of {settlement}!",
    SiegeOutcome.VICTORY: "{settlement} has fallen!",
    SiegeOutcome.DEFEAT: "The defenders of {settlement} hold firm.",
    SiegeOutcome.ABANDONED: "The siege of {settlement} is abandoned.",
}


@dataclass
class Battle:
    identifier: str
    region_id: str
    region_name: str
    start_day: int
    attackers: List[str]
    defenders: List[str]
    deployment_until: int
    skirmish_until: int
    pursuit_until: int
    phase: BattlePhase = BattlePhase.DEPLOYMENT
    turn: float = 0.0
    attacker_strength: int = 0
    defender_strength: int = 0
    initial_attacker_strength: int = 0
    initial_defender_strength: int = 0
    attacker_losses: int = 0
    defender_losses: int = 0
    advantage: float = 0.0
    outcome: BattleOutcome | None = None
    loot: Dict[str, int] = field(default_factory=dict)
    log: List[str] = field(default_factory=list)
    ticks_since_concluded: int = 0

    @property
    def concluded(self) -> bool:
        return self.phase is BattlePhase.CONCLUDED

    def involves(self, force_id: str) -> bool:
        return force_id in self.attackers or force_id in self.defenders

    def side_of(self, force_id: str) -> str | None:
        if force_id in self.attackers:
            return "attacker"
        if force_id in self.defenders:
            return "defender"
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "region_id": self.region_id,
            "region_name": self.region_name,
            "start_day": self.start_day,
            "attackers": list(self.attackers),
            "defenders": list(self.defenders),
            "phase": self.phase.value,
            "turn": self.turn,
            "attacker_strength": self.attacker_strength,
            "defender_strength": self.defender_strength,
            "attacker_losses": self.attacker_losses,
            "defender_losses": self.defender_losses,
            "advantage": self.advantage,
            "outcome": self.outcome.value if self.outcome else None,
            "loot": dict(self.loot),
        }


@dataclass
class Siege:
    identifier: str
    settlement_id: str
    settlement_name: str
    region_id: str
    region_name: str
    attacker: str
    start_day: int
    defense_strength: int
    phase: SiegePhase = SiegePhase.ENCIRCLEMENT
    progress: float = 0.0
    days_active: float = 0.0
    outcome: SiegeOutcome | None = None
    log: List[str] = field(default_factory=list)
    ticks_since_concluded: int = 0

    @property
    def concluded(self) -> bool:
        return self.phase is SiegePhase.CONCLUDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "settlement_id": self.settlement_id,
            "region_id": self.region_id,
            "attacker": self.attacker,
            "phase": self.phase.value,
            "defense_strength": self.defense_strength,
            "progress": self.progress,
            "days_active": self.days_active,
            "outcome": self.outcome.value if self.outcome else None,
        }


class ConflictResolver(Narrator):
    """Runs every battle and siege and reports conclusions back to the owners."""

    def __init__(
        self,
        registry: RegionDirectory,
        forces: ForceIndex,
        *,
        config: SimulationConfig | None = None,
        rng: Generator,
        notifications: NotificationChannel | None = None,
    ) -> None:
        self.registry = registry
        self.forces = forces
        self.config = config or SimulationConfig()
        self.rng = rng
        self.notifications = notifications
        self.day = self.config.day_zero
        self._battles: Dict[str, Battle] = {}
        self._sieges: Dict[str, Siege] = {}
        self._battle_counter = 0
        self._siege_counter = 0
        self._capture_listeners: List[CaptureListener] = []

    # ------------------------------------------------------------------
    # Enum accessors
    @staticmethod
    def battle_phases() -> dict[str, str]:
        return {phase.name: phase.value for phase in BattlePhase}

    @staticmethod
    def battle_outcomes() -> dict[str, str]:
        return {outcome.name: outcome.value for outcome in BattleOutcome}

    @staticmethod
    def siege_phases() -> dict[str, str]:
        return {phase.name: phase.value for phase in SiegePhase}

    @staticmethod
    def siege_outcomes() -> dict[str, str]:
        return {outcome.name: outcome.value for outcome in SiegeOutcome}

    def add_capture_listener(self, listener: CaptureListener) -> None:
        self._capture_listeners.append(listener)

    # ------------------------------------------------------------------
    # Queries
    def get_active_battles(self, include_completed: bool = False) -> list[Battle]:
        return [
            battle
            for battle in self._battles.values()
            if include_completed or not battle.concluded
        ]

    def get_active_sieges(self, include_completed: bool = False) -> list[Siege]:
        return [
            siege
            for siege in self._sieges.values()
            if include_completed or not siege.concluded
        ]

    def get_battle(self, battle_id: str | None) -> Battle | None:
        if battle_id is None:
            return None
        return self._battles.get(battle_id)

    def get_siege(self, siege_id: str) -> Siege | None:
        return self._sieges.get(siege_id)

    def has_active_battle(self, region_id: str) -> bool:
        return any(
            battle.region_id == region_id and not battle.concluded
            for battle in self._battles.values()
        )

    def find_battle_for(self, force_id: str) -> Battle | None:
        """Return the running battle for ``force_id``, else its latest retained one."""

        latest: Battle | None = None
        for battle in self._battles.values():
            if not battle.involves(force_id):
                continue
            if not battle.concluded:
                return battle
            latest = battle
        return latest

    def find_siege_for(self, force_id: str) -> Siege | None:
        for siege in self._sieges.values():
            if siege.attacker == force_id and not siege.concluded:
                return siege
        return None

    # ------------------------------------------------------------------
    # Battles
    def initiate_battle(
        self,
        region_id: str,
        region_name: str | None = None,
        attackers: Iterable[object] | None = None,
        defenders: Iterable[object] | None = None,
        player_expeditions: Iterable[object] | None = None,
        ai_expeditions: Iterable[object] | None = None,
    ) -> Battle | None:
        attacker_ids = _unique(
            [force_id_of(item) for item in attackers or []]
            + [force_id_of(item) for item in player_expeditions or []]
        )
        defender_ids = _unique(
            [force_id_of(item) for item in defenders or []]
            + [force_id_of(item) for item in ai_expeditions or []]
        )
        defender_ids = [force_id for force_id in defender_ids if force_id not in attacker_ids]

        attacking = [force for force in self.forces.resolve(attacker_ids) if force.engaged_battle is None]
        defending = [force for force in self.forces.resolve(defender_ids) if force.engaged_battle is None]
        if not attacking or not defending:
            logger.warning(
                "Battle in %s needs combatants on both sides (%d vs %d)",
                region_id,
                len(attacking),
                len(defending),
            )
            return None

        settings = self.config.battles
        self._battle_counter += 1
        if region_name is None:
            region = self.registry.get_region(region_id)
            region_name = region.name if region else region_id
        battle = Battle(
            identifier=f"battle-{self._battle_counter}",
            region_id=region_id,
            region_name=region_name,
            start_day=self.day,
            attackers=[force.identifier for force in attacking],
            defenders=[force.identifier for force in defending],
            deployment_until=random_between(self.rng, *settings.deployment_turns),
            skirmish_until=random_between(self.rng, *settings.skirmish_until_turn),
            pursuit_until=random_between(self.rng, *settings.pursuit_until_turn),
        )
        battle.attacker_strength = battle.initial_attacker_strength = _total_strength(attacking)
        battle.defender_strength = battle.initial_defender_strength = _total_strength(defending)
        for force in (*attacking, *defending):
            force.engaged_battle = battle.identifier
        self._battles[battle.identifier] = battle
        self._log_battle(battle, _PHASE_MESSAGES[BattlePhase.DEPLOYMENT])
        logger.debug(
            "Battle %s in %s: %s (%d) vs %s (%d)",
            battle.identifier,
            region_id,
            battle.attackers,
            battle.attacker_strength,
            battle.defenders,
            battle.defender_strength,
        )
        if any(force.is_player for force in (*attacking, *defending)):
            self._narrate(
                f"Battle is joined in {region_name}!",
                category="battle",
                payload={"battle": battle.identifier},
            )
        return battle

    def _process_battle(self, battle: Battle, tick_size: float) -> None:
        settings = self.config.battles
        battle.turn += tick_size
        attacking = self.forces.resolve(battle.attackers)
        defending = self.forces.resolve(battle.defenders)
        battle.attacker_strength = _total_strength(attacking)
        battle.defender_strength = _total_strength(defending)
        if self._conclude_if_side_fallen(battle, attacking, defending):
            return

        if battle.defender_strength <= 0:
            ratio = settings.zero_strength_ratio if battle.attacker_strength > 0 else 1.0
        else:
            ratio = battle.attacker_strength / battle.defender_strength
        swing = uniform(self.rng, -settings.random_swing, settings.random_swing)
        advantage = (
            battle.advantage * settings.advantage_decay
            + (ratio - 1.0) * settings.strength_scale
            + swing
        )
        battle.advantage = max(-100.0, min(100.0, advantage))

        rate = settings.casualty_rates.get(battle.phase.value, settings.default_casualty_rate)
        skew = battle.advantage / 100.0 * settings.advantage_casualty_skew
        low, high = settings.casualty_jitter
        attacker_losses = round_half_up(
            _total_warriors(attacking) * rate * (1.0 - skew) * uniform(self.rng, low, high) * tick_size
        )
        defender_losses = round_half_up(
            _total_warriors(defending) * rate * (1.0 + skew) * uniform(self.rng, low, high) * tick_size
        )
        # Strengths stay at their start-of-tick values; fame is weighed on them.
        battle.attacker_losses += _distribute_casualties(attacking, attacker_losses)
        battle.defender_losses += _distribute_casualties(defending, defender_losses)
        if self._conclude_if_side_fallen(battle, attacking, defending):
            return

        self._advance_battle_phase(battle)

    def _advance_battle_phase(self, battle: Battle) -> None:
        settings = self.config.battles
        phase = battle.phase
        if phase is BattlePhase.DEPLOYMENT:
            if battle.turn >= battle.deployment_until:
                self._enter_phase(battle, BattlePhase.SKIRMISH)
        elif phase is BattlePhase.SKIRMISH:
            if battle.turn >= battle.skirmish_until:
                self._enter_phase(battle, BattlePhase.MELEE)
        elif phase is BattlePhase.MELEE:
            if abs(battle.advantage) >= settings.pursuit_threshold:
                self._enter_phase(battle, BattlePhase.PURSUIT)
            elif battle.turn >= settings.melee_turn_limit:
                threshold = settings.melee_verdict_threshold
                if battle.advantage > threshold:
                    outcome = BattleOutcome.VICTORY
                elif battle.advantage >= -threshold:
                    outcome = BattleOutcome.DRAW
                else:
                    outcome = BattleOutcome.DEFEAT
                self._conclude_battle(battle, outcome)
        elif phase is BattlePhase.PURSUIT:
            if battle.turn >= battle.pursuit_until:
                decisive = settings.decisive_threshold
                if battle.advantage >= decisive:
                    outcome = BattleOutcome.DECISIVE_VICTORY
                elif battle.advantage > 0:
                    outcome = BattleOutcome.VICTORY
                elif battle.advantage > -decisive:
                    outcome = BattleOutcome.DEFEAT
                else:
                    outcome = BattleOutcome.DEVASTATING_DEFEAT
                self._conclude_battle(battle, outcome)

    def _enter_phase(self, battle: Battle, phase: BattlePhase) -> None:
        battle.phase = phase
        self._log_battle(battle, _PHASE_MESSAGES[phase])
        logger.debug("Battle %s enters %s at turn %.1f", battle.identifier, phase.value, battle.turn)

    def _conclude_if_side_fallen(
        self,
        battle: Battle,
        attacking: Sequence[Combatant],
        defending: Sequence[Combatant],
    ) -> bool:
        attackers_standing = _total_warriors(attacking) > 0
        defenders_standing = _total_warriors(defending) > 0
        if attackers_standing and defenders_standing:
            return False
        if attackers_standing:
            outcome = BattleOutcome.VICTORY
        elif defenders_standing:
            outcome = BattleOutcome.DEFEAT
        else:
            outcome = BattleOutcome.DRAW
        self._conclude_battle(battle, outcome)
        return True

    def _conclude_battle(self, battle: Battle, outcome: BattleOutcome) -> None:
        settings = self.config.battles
        battle.phase = BattlePhase.CONCLUDED
        battle.outcome = outcome
        battle.ticks_since_concluded = 0
        self._log_battle(battle, _OUTCOME_MESSAGES[outcome])

        attacking = self.forces.resolve(battle.attackers)
        defending = self.forces.resolve(battle.defenders)
        for force in (*attacking, *defending):
            if force.engaged_battle == battle.identifier:
                force.engaged_battle = None

        if outcome is BattleOutcome.DRAW:
            for force in (*attacking, *defending):
                if force.is_player:
                    force.credit(fame=settings.draw_fame)
            losers: Sequence[Combatant] = (*attacking, *defending)
        else:
            if outcome.attacker_won:
                winners, losers = attacking, defending
                loser_strength = battle.defender_strength
                decisive = outcome is BattleOutcome.DECISIVE_VICTORY
            else:
                winners, losers = defending, attacking
                loser_strength = battle.attacker_strength
                decisive = outcome is BattleOutcome.DEVASTATING_DEFEAT
            base = settings.decisive_fame_base if decisive else settings.fame_base
            fame = round_half_up(base * math.sqrt(max(0, loser_strength)) / 5)
            for force in winners:
                if force.is_player:
                    force.credit(fame=fame)
            if outcome.attacker_won:
                self._award_battle_loot(battle, [force for force in winners if force.is_player])

        for force in losers:
            self.forces.recall(force.identifier)

        logger.debug(
            "Battle %s concluded: %s (losses %d/%d)",
            battle.identifier,
            outcome.value,
            battle.attacker_losses,
            battle.defender_losses,
        )
        if any(force.is_player for force in (*attacking, *defending)):
            self._narrate(
                _OUTCOME_MESSAGES[outcome].format(region=battle.region_name),
                category="battle",
                payload={
                    "battle": battle.identifier,
                    "attacker_losses": battle.attacker_losses,
                    "defender_losses": battle.defender_losses,
                },
            )

    def _award_battle_loot(self, battle: Battle, recipients: Sequence[Combatant]) -> None:
        if not recipients:
            return
        total = round_half_up(battle.defender_losses * random_between(self.rng, 1, 3))
        split = self.config.battles.loot_split
        loot = {resource: round_half_up(total * share) for resource, share in split.items()}
        battle.loot = loot
        share_count = len(recipients)
        per_force = {resource: amount // share_count for resource, amount in loot.items()}
        for force in recipients:
            force.credit(loot=per_force)

    def _log_battle(self, battle: Battle, template: str) -> None:
        battle.log.append(template.format(region=battle.region_name))

    # ------------------------------------------------------------------
    # Sieges
    def initiate_siege(self, settlement_id: str, expedition_id: str) -> Siege | None:
        existing = self.find_siege_for(expedition_id)
        if existing is not None:
            return existing
        settlement = self.registry.get_settlement(settlement_id)
        if settlement is None:
            logger.warning("Cannot besiege unknown settlement %s", settlement_id)
            return None
        force = self.forces.get(expedition_id)
        if force is None:
            logger.warning("Cannot besiege %s with unknown force %s", settlement_id, expedition_id)
            return None

        settings = self.config.sieges
        defense = int(
            settlement.military.defenses * settings.defense_building_multiplier
            + settlement.military.warriors
        )
        region = self.registry.get_region(settlement.region)
        self._siege_counter += 1
        siege = Siege(
            identifier=f"siege-{self._siege_counter}",
            settlement_id=settlement.identifier,
            settlement_name=settlement.name,
            region_id=settlement.region,
            region_name=region.name if region else settlement.region,
            attacker=force.identifier,
            start_day=self.day,
            defense_strength=max(0, defense),
        )
        self._log_siege(siege, _SIEGE_MESSAGES[SiegePhase.ENCIRCLEMENT])
        self._sieges[siege.identifier] = siege
        logger.debug(
            "Siege %s of %s by %s (defense %d)",
            siege.identifier,
            settlement_id,
            force.identifier,
            siege.defense_strength,
        )
        if force.is_player:
            self._narrate(
                f"Your forces have begun a siege of {settlement.name}!",
                category="siege",
                payload={"siege": siege.identifier},
            )
        return siege

    def withdraw_siege(self, force_id: str) -> bool:
        """Abandon the running siege of ``force_id`` without recalling it."""

        siege = self.find_siege_for(force_id)
        if siege is None:
            return False
        self._conclude_siege(siege, SiegeOutcome.ABANDONED)
        return True

    def _process_siege(self, siege: Siege, tick_size: float) -> None:
        settings = self.config.sieges
        siege.days_active += tick_size
        force = self.forces.get(siege.attacker)
        settlement = self.registry.get_settlement(siege.settlement_id)
        if force is None or settlement is None:
            self._conclude_siege(siege, SiegeOutcome.ABANDONED)
            if force is not None:
                self.forces.recall(force.identifier)
            return
        if force.engaged_battle is not None:
            return

        if siege.defense_strength <= 0:
            rate = 100.0
        else:
            ratio = force.strength / siege.defense_strength
            rate = ratio * settings.progress_scale * tick_size
            rate = min(rate, settings.max_rate * tick_size)
            rate = max(rate, settings.min_rate * tick_size)
        siege.progress = min(100.0, siege.progress + rate)

        if siege.phase is SiegePhase.ENCIRCLEMENT and siege.progress >= settings.bombardment_at:
            self._enter_siege_phase(siege, SiegePhase.BOMBARDMENT, force)
        if siege.phase is SiegePhase.BOMBARDMENT and siege.progress >= settings.assault_at:
            self._enter_siege_phase(siege, SiegePhase.ASSAULT, force)

        if chance_of(self.rng, settings.casualty_chance * tick_size):
            factor = settings.casualty_factors.get(siege.phase.value, 0.02)
            factor *= 1.0 + siege.defense_strength / 100.0
            casualties = math.ceil(force.warriors * factor * uniform(self.rng, 0.7, 1.3))
            fallen = force.apply_casualties(casualties)
            if fallen and force.is_player:
                self._narrate(
                    f"Your forces suffered {fallen} casualties besieging {siege.settlement_name}.",
                    category="danger",
                    payload={"siege": siege.identifier},
                )
            if force.casualties > settings.abandon_ratio * force.warriors:
                self._conclude_siege(siege, SiegeOutcome.ABANDONED)
                self.forces.recall(force.identifier)
                return

        if siege.progress >= 100.0:
            self._capture(siege, force, settlement)

    def _enter_siege_phase(self, siege: Siege, phase: SiegePhase, force: Combatant) -> None:
        siege.phase = phase
        message = _SIEGE_MESSAGES[phase].format(settlement=siege.settlement_name)
        siege.log.append(message)
        if force.is_player:
            self._narrate(message, category="siege", payload={"siege": siege.identifier})

    def _capture(self, siege: Siege, force: Combatant, settlement: Settlement) -> None:
        settings = self.config.sieges
        self._conclude_siege(siege, SiegeOutcome.VICTORY)
        fame = settings.base_fame + settlement.rank * settings.fame_per_rank
        loot = self._siege_loot(settlement)
        force.credit(fame=fame, loot=loot)
        self.on_settlement_captured(settlement.identifier, force.identifier)
        self.forces.recall(force.identifier)

    def _siege_loot(self, settlement: Settlement) -> Dict[str, int]:
        settings = self.config.sieges
        multiplier = max(1, settlement.population) * (1.0 + settlement.rank * settings.loot_rank_scale)
        loot: Dict[str, int] = {}
        for resource, (low, high) in settings.loot_ranges.items():
            loot[resource] = round_half_up(random_between(self.rng, low, high) * multiplier)
        if settlement.rank >= settings.silver_rank:
            loot["silver"] = round_half_up(random_between(self.rng, *settings.silver_range) * multiplier)
        if settlement.rank >= settings.gold_rank:
            loot["gold"] = round_half_up(
                settings.gold_factor * random_between(self.rng, *settings.silver_range) * multiplier
            )
        for resource, stock in list(settlement.resources.items()):
            if resource in loot or stock <= 0:
                continue
            amount = min(
                int(stock),
                round_half_up(settings.special_loot_factor * random_between(self.rng, 1, 3) * multiplier),
            )
            if amount > 0:
                settlement.resources[resource] = int(stock) - amount
                loot[resource] = amount
        return loot

    def on_settlement_captured(self, settlement_id: str, force_id: str) -> None:
        """Hand ``settlement_id`` to the capturing force's faction and strip its garrison."""

        settlement = self.registry.get_settlement(settlement_id)
        if settlement is None:
            logger.warning("Captured settlement %s no longer exists", settlement_id)
            return
        force = self.forces.get(force_id)
        settlement.is_captured = True
        if force is not None:
            settlement.faction_id = force.faction_id
        if settlement.military.warriors:
            self.registry.adjust_settlement_warriors(settlement_id, -settlement.military.warriors)
        logger.debug("Settlement %s captured by %s", settlement_id, force_id)
        for listener in list(self._capture_listeners):
            listener(settlement_id, force_id)

    def _conclude_siege(self, siege: Siege, outcome: SiegeOutcome) -> None:
        siege.phase = SiegePhase.CONCLUDED
        siege.outcome = outcome
        siege.ticks_since_concluded = 0
        message = _SIEGE_MESSAGES[outcome].format(settlement=siege.settlement_name)
        siege.log.append(message)
        logger.debug("Siege %s concluded: %s", siege.identifier, outcome.value)
        force = self.forces.get(siege.attacker)
        if force is not None and force.is_player:
            category = "success" if outcome is SiegeOutcome.VICTORY else "siege"
            self._narrate(message, category=category, payload={"siege": siege.identifier})

    def _log_siege(self, siege: Siege, template: str) -> None:
        siege.log.append(template.format(settlement=siege.settlement_name))

    # ------------------------------------------------------------------
    def process_tick(self, game_state: Mapping[str, Any] | None, tick_size: float) -> None:
        self._sync_day(game_state)
        self._expire_concluded()
        for battle in list(self._battles.values()):
            if not battle.concluded:
                self._process_battle(battle, tick_size)
        for siege in list(self._sieges.values()):
            if not siege.concluded:
                self._process_siege(siege, tick_size)

    def _expire_concluded(self) -> None:
        retention = self.config.retention.conflict_retention_ticks
        for records in (self._battles, self._sieges):
            for identifier, record in list(records.items()):
                if not record.concluded:
                    continue
                record.ticks_since_concluded += 1
                if record.ticks_since_concluded > retention:
                    del records[identifier]
                    logger.debug("Dropped concluded record %s", identifier)


# ---------------------------------------------------------------------------
def _unique(values: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def _total_strength(forces: Iterable[Combatant]) -> int:
    return sum(max(0, int(force.strength)) for force in forces)


def _total_warriors(forces: Iterable[Combatant]) -> int:
    return sum(max(0, int(force.warriors)) for force in forces)


def _distribute_casualties(forces: Sequence[Combatant], casualties: int) -> int:
    """Split ``casualties`` by warrior share; return the total actually applied."""

    total = _total_warriors(forces)
    if casualties <= 0 or total <= 0:
        return 0
    applied = 0
    for force in forces:
        share = force.warriors / total
        applied += force.apply_casualties(round_half_up(casualties * share))
    return applied


__all__ = [
    "Battle",
    "BattleOutcome",
    "BattlePhase",
    "ConflictResolver",
    "Siege",
    "SiegeOutcome",
    "SiegePhase",
]
