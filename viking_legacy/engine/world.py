"""ECS world holding the simulation's managers as singleton components."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Protocol, Type, TypeVar

import esper

from ..military.armies import FactionArmyManager
from ..military.conflict import ConflictResolver
from ..military.expeditions import ExpeditionManager
from ..world.regions import RegionRegistry

if TYPE_CHECKING:  # pragma: no cover - imported only for typing
    from .turn_engine import TurnContext

PhaseName = str

T = TypeVar("T")


@dataclass(slots=True)
class RegistryComponent:
    """Singleton component exposing the world map."""

    registry: RegionRegistry


@dataclass(slots=True)
class ExpeditionComponent:
    manager: ExpeditionManager


@dataclass(slots=True)
class FactionArmyComponent:
    manager: FactionArmyManager


@dataclass(slots=True)
class ConflictComponent:
    resolver: ConflictResolver


class SystemCallback(Protocol):
    """Callable protocol describing a world system."""

    def __call__(self, world: "GameWorld", context: "TurnContext") -> None:  # noqa: D401
        ...


@dataclass(slots=True)
class _SystemEntry:
    priority: int
    order: int
    callback: SystemCallback


class GameWorld:
    """Wrapper around :class:`esper.World` providing ordered system execution."""

    def __init__(self) -> None:
        self._world = esper.World()
        self._singletons: Dict[Type[Any], int] = {}
        self._systems: Dict[PhaseName, List[_SystemEntry]] = {}
        self._system_counter = 0

    # ------------------------------------------------------------------
    def add_singleton(self, component: object) -> int:
        """Register ``component`` as the singleton instance for its type."""

        component_type = type(component)
        entity = self._singletons.get(component_type)
        if entity is None:
            entity = self._world.create_entity(component)
            self._singletons[component_type] = entity
        else:
            if self._world.has_component(entity, component_type):
                self._world.remove_component(entity, component_type)
            self._world.add_component(entity, component)
        return entity

    def get_singleton(self, component_type: Type[T]) -> T | None:
        entity = self._singletons.get(component_type)
        if entity is None:
            return None
        try:
            return self._world.component_for_entity(entity, component_type)
        except KeyError:
            self._singletons.pop(component_type, None)
            return None

    # ------------------------------------------------------------------
    def register_system(
        self,
        phase: PhaseName,
        system: SystemCallback | object,
        *,
        priority: int = 100,
    ) -> None:
        """Register ``system`` to execute during ``phase`` with ``priority`` ordering."""

        if hasattr(system, "process") and callable(getattr(system, "process")):
            callback = getattr(system, "process")  # type: ignore[assignment]
        elif callable(system):
            callback = system  # type: ignore[assignment]
        else:
            raise TypeError("system must be callable or expose a process() method")

        self._system_counter += 1
        entry = _SystemEntry(priority=priority, order=self._system_counter, callback=callback)
        phase_systems = self._systems.setdefault(phase, [])
        phase_systems.append(entry)
        phase_systems.sort(key=lambda item: (item.priority, item.order))

    def has_system_type(self, system_type: Type[object]) -> bool:
        for entries in self._systems.values():
            for entry in entries:
                if isinstance(getattr(entry.callback, "__self__", entry.callback), system_type):
                    return True
        return False

    def process_phase(self, phase: PhaseName, context: "TurnContext") -> None:
        for entry in self._systems.get(phase, []):
            entry.callback(self, context)


class ExpeditionSystem:
    """Advance every expedition, then look for fresh battles."""

    def process(self, world: GameWorld, context: "TurnContext") -> None:
        component = world.get_singleton(ExpeditionComponent)
        if component is None:
            return
        component.manager.process_tick(context.world_state, context.tick_size)
        active = len(component.manager.get_expeditions())
        if active:
            context.log(f"{active} expedition(s) abroad")


class FactionArmySystem:
    """Let factions react to threats and move their armies."""

    def process(self, world: GameWorld, context: "TurnContext") -> None:
        component = world.get_singleton(FactionArmyComponent)
        if component is None:
            return
        component.manager.process_tick(context.world_state, context.tick_size)
        live = [army for army in component.manager.get_faction_armies() if army.is_live]
        if live:
            context.log(f"{len(live)} faction army(ies) in the field")


class ConflictSystem:
    """Resolve one tick of every battle and siege."""

    def process(self, world: GameWorld, context: "TurnContext") -> None:
        component = world.get_singleton(ConflictComponent)
        if component is None:
            return
        resolver = component.resolver
        resolver.process_tick(context.world_state, context.tick_size)
        battles = resolver.get_active_battles()
        sieges = resolver.get_active_sieges()
        if battles or sieges:
            context.log(f"{len(battles)} battle(s), {len(sieges)} siege(s) under way")


__all__ = [
    "ConflictComponent",
    "ConflictSystem",
    "ExpeditionComponent",
    "ExpeditionSystem",
    "FactionArmyComponent",
    "FactionArmySystem",
    "GameWorld",
    "RegistryComponent",
]
