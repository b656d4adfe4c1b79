"""Wiring for a complete conflict simulation session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ..factions import Faction, FactionDirectory
from ..military.armies import FactionArmyManager
from ..military.conflict import ConflictResolver
from ..military.expeditions import ExpeditionManager
from ..military.forces import ForceIndex
from ..ui.channels import NotificationChannel, TurnLogChannel
from ..world.config import FactionType, RegionType, SimulationConfig
from ..world.holdings import PlayerHoldings
from ..world.regions import Region, RegionRegistry, Settlement, SettlementMilitary
from ..world.rng import WorldRandomness
from .turn_engine import TurnContext, TurnEngine
from .world import (
    ConflictComponent,
    ExpeditionComponent,
    FactionArmyComponent,
    GameWorld,
    RegistryComponent,
)

logger = logging.getLogger(__name__)


@dataclass
class Simulation:
    """Every collaborator of one campaign, owned in one place."""

    config: SimulationConfig
    randomness: WorldRandomness
    registry: RegionRegistry
    holdings: PlayerHoldings
    factions: FactionDirectory
    forces: ForceIndex
    expeditions: ExpeditionManager
    armies: FactionArmyManager
    conflicts: ConflictResolver
    world: GameWorld
    engine: TurnEngine
    notifications: NotificationChannel
    turn_log: TurnLogChannel
    world_state: dict = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *,
        regions: Iterable[Region],
        settlements: Iterable[Settlement] = (),
        factions: Iterable[Faction] = (),
        connections: Mapping[str, Iterable[str]] | None = None,
        holdings: PlayerHoldings | None = None,
        config: SimulationConfig | None = None,
    ) -> "Simulation":
        config = config or SimulationConfig()
        randomness = config.randomness_factory()
        registry = RegionRegistry(regions, settlements, connections=connections)
        holdings = holdings or PlayerHoldings()
        directory = FactionDirectory(factions)
        notifications = NotificationChannel()
        turn_log = TurnLogChannel()
        names = randomness.generator("names")

        expeditions = ExpeditionManager(
            registry,
            holdings,
            config=config,
            rng=randomness.generator("expeditions"),
            name_rng=names,
            notifications=notifications,
        )
        armies = FactionArmyManager(
            registry,
            directory,
            expeditions,
            config=config,
            rng=randomness.generator("faction-armies"),
            name_rng=names,
            notifications=notifications,
        )
        forces = ForceIndex([expeditions, armies])
        conflicts = ConflictResolver(
            registry,
            forces,
            config=config,
            rng=randomness.generator("conflict"),
            notifications=notifications,
        )
        expeditions.attach_conflicts(conflicts)
        armies.attach_conflicts(conflicts)

        world = GameWorld()
        world.add_singleton(RegistryComponent(registry))
        world.add_singleton(ExpeditionComponent(expeditions))
        world.add_singleton(FactionArmyComponent(armies))
        world.add_singleton(ConflictComponent(conflicts))
        engine = TurnEngine(
            world,
            start_day=config.day_zero,
            log_channel=turn_log,
            notification_channel=notifications,
        )
        logger.debug("Simulation %r built with seed %d", config.name, config.seed)
        return cls(
            config=config,
            randomness=randomness,
            registry=registry,
            holdings=holdings,
            factions=directory,
            forces=forces,
            expeditions=expeditions,
            armies=armies,
            conflicts=conflicts,
            world=world,
            engine=engine,
            notifications=notifications,
            turn_log=turn_log,
        )

    @property
    def day(self) -> float:
        return self.engine.day

    def advance(self, tick_size: float = 1.0) -> TurnContext:
        return self.engine.run_turn(tick_size, world_state=self.world_state)

    def run(self, days: float, tick_size: float = 1.0) -> list[TurnContext]:
        """Run whole ticks until at least ``days`` days have passed."""

        if tick_size <= 0:
            raise ValueError("tick_size must be positive")
        contexts: list[TurnContext] = []
        target = self.engine.day + days
        while self.engine.day < target:
            contexts.append(self.advance(tick_size))
        return contexts


def demo_simulation(seed: int = 0, *, force_response: bool = False) -> Simulation:
    """A small Norwegian coast with three rival powers and one British kingdom."""

    regions = [
        Region("vestfold", "Vestfold", RegionType.FJORD, (0, 0), (10, 10)),
        Region("agder", "Agder", RegionType.COASTAL, (12, 0), (10, 10), resource_modifiers={"food": 1.2}),
        Region("telemark", "Telemark", RegionType.FOREST, (0, 12), (10, 10), resource_modifiers={"wood": 1.5, "furs": 0.8}),
        Region("uppland", "Uppland", RegionType.PLAINS, (24, 0), (10, 10), resource_modifiers={"food": 1.4, "iron": 0.6}),
        Region(
            "northumbria",
            "Northumbria",
            RegionType.PLAINS,
            (200, 0),
            (12, 12),
            landmass="britain",
            resource_modifiers={"silver": 0.7},
        ),
    ]
    settlements = [
        Settlement("hearth", "Skiringssal", "vestfold", SettlementMilitary(30, 2), is_player=True),
        Settlement(
            "arendal",
            "Arendal",
            "agder",
            SettlementMilitary(40, 1),
            resources={"fish": 40},
            rank=1,
            population=30,
            faction_id="agder-jarls",
        ),
        Settlement(
            "uppsala",
            "Uppsala",
            "uppland",
            SettlementMilitary(80, 3),
            resources={"amber": 20},
            rank=2,
            population=50,
            faction_id="svear",
        ),
        Settlement(
            "bebbanburg",
            "Bebbanburg",
            "northumbria",
            SettlementMilitary(120, 5),
            rank=3,
            population=80,
            faction_id="northumbria",
        ),
    ]
    factions = [
        Faction("agder-jarls", "Jarls of Agder", FactionType.NORSE),
        Faction("svear", "Svear", FactionType.NORSE),
        Faction("northumbria", "Kingdom of Northumbria", FactionType.ANGLO_SAXON),
    ]
    holdings = PlayerHoldings(population={"warriors": 150}, resources={"food": 100})
    config = SimulationConfig(
        name="Vestfold saga",
        force_response=force_response,
        randomness={"seed": seed},
    )
    return Simulation.build(
        regions=regions,
        settlements=settlements,
        factions=factions,
        holdings=holdings,
        config=config,
    )


__all__ = ["Simulation", "demo_simulation"]
