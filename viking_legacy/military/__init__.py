"""Expeditions, faction armies and the conflicts between them."""

from .armies import ArmyStatus, FactionArmy, FactionArmyManager, ResponseTrigger
from .conflict import (
    Battle,
    BattleOutcome,
    BattlePhase,
    ConflictResolver,
    Siege,
    SiegeOutcome,
    SiegePhase,
)
from .expeditions import Expedition, ExpeditionManager, ExpeditionStatus
from .forces import Combatant, ForceIndex, ForceSource, OwnerKind

__all__ = [
    "ArmyStatus",
    "Battle",
    "BattleOutcome",
    "BattlePhase",
    "Combatant",
    "ConflictResolver",
    "Expedition",
    "ExpeditionManager",
    "ExpeditionStatus",
    "FactionArmy",
    "FactionArmyManager",
    "ForceIndex",
    "ForceSource",
    "OwnerKind",
    "ResponseTrigger",
    "Siege",
    "SiegeOutcome",
    "SiegePhase",
]
