"""Turn engine, ECS world and simulation wiring."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - imported only for type checkers
    from .simulation import Simulation, demo_simulation
    from .turn_engine import TurnContext, TurnEngine
    from .world import (
        ConflictComponent,
        ConflictSystem,
        ExpeditionComponent,
        ExpeditionSystem,
        FactionArmyComponent,
        FactionArmySystem,
        GameWorld,
        RegistryComponent,
    )

__all__ = [
    "ConflictComponent",
    "ConflictSystem",
    "ExpeditionComponent",
    "ExpeditionSystem",
    "FactionArmyComponent",
    "FactionArmySystem",
    "GameWorld",
    "RegistryComponent",
    "Simulation",
    "TurnContext",
    "TurnEngine",
    "demo_simulation",
]

_EXPORTS = {
    "Simulation": "viking_legacy.engine.simulation",
    "demo_simulation": "viking_legacy.engine.simulation",
    "TurnContext": "viking_legacy.engine.turn_engine",
    "TurnEngine": "viking_legacy.engine.turn_engine",
    "ConflictComponent": "viking_legacy.engine.world",
    "ConflictSystem": "viking_legacy.engine.world",
    "ExpeditionComponent": "viking_legacy.engine.world",
    "ExpeditionSystem": "viking_legacy.engine.world",
    "FactionArmyComponent": "viking_legacy.engine.world",
    "FactionArmySystem": "viking_legacy.engine.world",
    "GameWorld": "viking_legacy.engine.world",
    "RegistryComponent": "viking_legacy.engine.world",
}


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        module = import_module(_EXPORTS[name])
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted({*globals(), *__all__})
