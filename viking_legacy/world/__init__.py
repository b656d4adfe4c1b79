"""World map, configuration and randomness helpers."""

from .config import FactionType, RegionType, SimulationConfig
from .holdings import Holdings, PlayerHoldings
from .regions import (
    PLAYER_FACTION_ID,
    Region,
    RegionDirectory,
    RegionRegistry,
    Settlement,
    SettlementMilitary,
)
from .rng import WorldRandomness

__all__ = [
    "FactionType",
    "Holdings",
    "PLAYER_FACTION_ID",
    "PlayerHoldings",
    "Region",
    "RegionDirectory",
    "RegionRegistry",
    "RegionType",
    "Settlement",
    "SettlementMilitary",
    "SimulationConfig",
    "WorldRandomness",
]
