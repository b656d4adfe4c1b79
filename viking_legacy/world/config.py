"""Validated configuration models for the conflict simulation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .rng import WorldRandomness


class RegionType(str, Enum):
    """Terrain classes that influence movement and plunder."""

    FOREST = "FOREST"
    PLAINS = "PLAINS"
    MOUNTAINS = "MOUNTAINS"
    COASTAL = "COASTAL"
    FJORD = "FJORD"


class FactionType(str, Enum):
    """Cultural groupings of AI factions."""

    NORSE = "NORSE"
    ANGLO_SAXON = "ANGLO_SAXON"
    FRANKISH = "FRANKISH"


class MovementSettings(BaseModel):
    """Travel time parameters shared by expeditions."""

    model_config = ConfigDict(extra="forbid")

    base_days: float = Field(default=5.0, gt=0.0)
    non_adjacent_penalty: float = Field(default=3.0, ge=1.0)
    sea_multiplier: float = Field(default=4.0, ge=1.0)
    modifiers: dict[RegionType, float] = Field(
        default_factory=lambda: {
            RegionType.FOREST: 0.7,
            RegionType.PLAINS: 1.2,
            RegionType.MOUNTAINS: 0.5,
            RegionType.COASTAL: 0.9,
            RegionType.FJORD: 0.8,
        }
    )

    @field_validator("modifiers")
    @classmethod
    def _positive_modifiers(cls, value: dict[RegionType, float]) -> dict[RegionType, float]:
        for region_type, modifier in value.items():
            if modifier <= 0:
                raise ValueError(f"movement modifier for {region_type.value} must be positive")
        return {key: float(item) for key, item in value.items()}

    def modifier_for(self, region_type: RegionType | str | None) -> float:
        if region_type is None:
            return 1.0
        try:
            key = RegionType(region_type)
        except ValueError:
            return 1.0
        return self.modifiers.get(key, 1.0)


class RaidSettings(BaseModel):
    """Plunder and retaliation tuning while an expedition raids."""

    model_config = ConfigDict(extra="forbid")

    loot_chance_per_strength: float = Field(default=0.1, ge=0.0)
    retaliation_chance: float = Field(default=5.0, ge=0.0)
    retaliation_fraction: float = Field(default=0.05, ge=0.0, le=1.0)
    return_loot_per_warrior: float = Field(default=20.0, ge=0.0)
    return_chance: float = Field(default=20.0, ge=0.0)
    settlement_discovery_chance: float = Field(default=35.0, ge=0.0)
    region_discovery_chance: float = Field(default=15.0, ge=0.0)
    base_loot: dict[str, tuple[int, int]] = Field(
        default_factory=lambda: {
            "food": (5, 15),
            "wood": (3, 10),
            "stone": (2, 8),
            "metal": (1, 5),
        }
    )

    @field_validator("base_loot")
    @classmethod
    def _ordered_ranges(cls, value: dict[str, tuple[int, int]]) -> dict[str, tuple[int, int]]:
        for resource, (low, high) in value.items():
            if low < 0 or high < low:
                raise ValueError(f"invalid loot range for {resource}: {low}..{high}")
        return value


class BattleSettings(BaseModel):
    """Coefficients driving the battle phase machine."""

    model_config = ConfigDict(extra="forbid")

    advantage_decay: float = Field(default=0.7, ge=0.0, le=1.0)
    strength_scale: float = Field(default=50.0, ge=0.0)
    random_swing: float = Field(default=20.0, ge=0.0)
    pursuit_threshold: float = Field(default=70.0, gt=0.0, le=100.0)
    decisive_threshold: float = Field(default=80.0, gt=0.0, le=100.0)
    melee_verdict_threshold: float = Field(default=30.0, ge=0.0, le=100.0)
    melee_turn_limit: float = Field(default=10.0, gt=0.0)
    deployment_turns: tuple[int, int] = (1, 2)
    skirmish_until_turn: tuple[int, int] = (3, 5)
    pursuit_until_turn: tuple[int, int] = (12, 14)
    zero_strength_ratio: float = Field(default=1000.0, gt=1.0)
    casualty_rates: dict[str, float] = Field(
        default_factory=lambda: {
            "deployment": 0.01,
            "skirmish": 0.03,
            "melee": 0.08,
            "pursuit": 0.06,
        }
    )
    default_casualty_rate: float = Field(default=0.02, ge=0.0)
    advantage_casualty_skew: float = Field(default=0.5, ge=0.0, le=1.0)
    casualty_jitter: tuple[float, float] = (0.7, 1.3)
    fame_base: float = Field(default=30.0, ge=0.0)
    decisive_fame_base: float = Field(default=50.0, ge=0.0)
    draw_fame: int = Field(default=10, ge=0)
    loot_split: dict[str, float] = Field(
        default_factory=lambda: {"food": 0.5, "wood": 0.3, "metal": 0.2}
    )


class SiegeSettings(BaseModel):
    """Coefficients driving the siege phase machine."""

    model_config = ConfigDict(extra="forbid")

    defense_building_multiplier: float = Field(default=3.0, ge=0.0)
    progress_scale: float = Field(default=5.0, gt=0.0)
    min_rate: float = Field(default=1.0, gt=0.0)
    max_rate: float = Field(default=10.0, gt=0.0)
    bombardment_at: float = Field(default=25.0, ge=0.0, le=100.0)
    assault_at: float = Field(default=75.0, ge=0.0, le=100.0)
    casualty_chance: float = Field(default=15.0, ge=0.0)
    casualty_factors: dict[str, float] = Field(
        default_factory=lambda: {
            "encirclement": 0.01,
            "bombardment": 0.03,
            "assault": 0.08,
        }
    )
    abandon_ratio: float = Field(default=1.5, gt=0.0)
    base_fame: int = Field(default=50, ge=0)
    fame_per_rank: int = Field(default=20, ge=0)
    loot_ranges: dict[str, tuple[int, int]] = Field(
        default_factory=lambda: {
            "food": (3, 8),
            "wood": (2, 6),
            "stone": (1, 4),
            "metal": (1, 3),
        }
    )
    loot_rank_scale: float = Field(default=0.5, ge=0.0)
    silver_rank: int = Field(default=2, ge=0)
    silver_range: tuple[int, int] = (1, 3)
    gold_rank: int = Field(default=4, ge=0)
    gold_factor: float = Field(default=0.3, ge=0.0)
    special_loot_factor: float = Field(default=0.5, ge=0.0)

    @model_validator(mode="after")
    def _ordered(self) -> "SiegeSettings":
        if self.max_rate < self.min_rate:
            raise ValueError("max_rate must not be lower than min_rate")
        if self.assault_at < self.bombardment_at:
            raise ValueError("assault_at must follow bombardment_at")
        return self


class ArmySettings(BaseModel):
    """Faction response and army lifecycle tuning."""

    model_config = ConfigDict(extra="forbid")

    check_interval_days: float = Field(default=5.0, gt=0.0)
    in_territory_chance: float = Field(default=0.9, ge=0.0, le=1.0)
    near_territory_chance: float = Field(default=0.5, ge=0.0, le=1.0)
    siege_response_chance: float = Field(default=0.95, ge=0.0, le=1.0)
    max_probability: float = Field(default=0.98, ge=0.0, le=1.0)
    max_armies_per_faction: int = Field(default=3, ge=0)
    max_active_days: float = Field(default=30.0, gt=0.0)
    disband_grace_days: float = Field(default=2.0, ge=0.0)
    contribution_range: tuple[float, float] = (0.4, 0.7)
    arrival_days: dict[str, int] = Field(
        default_factory=lambda: {"same": 1, "adjacent": 2, "distant": 3}
    )
    faction_type_multipliers: dict[FactionType, float] = Field(
        default_factory=lambda: {
            FactionType.NORSE: 1.0,
            FactionType.ANGLO_SAXON: 1.2,
            FactionType.FRANKISH: 1.5,
        }
    )
    # (exclusive upper bound on total faction warriors, multiplier)
    warrior_tiers: list[tuple[int, float]] = Field(
        default_factory=lambda: [(20, 0.5), (60, 0.8), (150, 1.0)]
    )
    warrior_tier_ceiling: float = Field(default=1.2, ge=0.0)

    @field_validator("contribution_range")
    @classmethod
    def _valid_range(cls, value: tuple[float, float]) -> tuple[float, float]:
        low, high = value
        if not 0.0 <= low <= high <= 1.0:
            raise ValueError("contribution_range must satisfy 0 <= low <= high <= 1")
        return (float(low), float(high))

    @field_validator("arrival_days")
    @classmethod
    def _arrival_tiers(cls, value: dict[str, int]) -> dict[str, int]:
        missing = {"same", "adjacent", "distant"} - set(value)
        if missing:
            raise ValueError(f"arrival_days missing tiers: {sorted(missing)}")
        return value

    def warrior_factor(self, total_warriors: int) -> float:
        for ceiling, multiplier in sorted(self.warrior_tiers):
            if total_warriors < ceiling:
                return multiplier
        return self.warrior_tier_ceiling


class RetentionSettings(BaseModel):
    """How long finished records remain readable before being pruned."""

    model_config = ConfigDict(extra="forbid")

    expedition_grace_ticks: int = Field(default=3, ge=0)
    conflict_retention_ticks: int = Field(default=5, ge=1)


class RandomnessSettings(BaseModel):
    """Configuration for deterministic RNG streams."""

    model_config = ConfigDict(extra="forbid")

    seed: int = Field(default=0, ge=0)

    def factory(self) -> WorldRandomness:
        """Instantiate a :class:`~viking_legacy.world.rng.WorldRandomness` helper."""

        from .rng import WorldRandomness

        return WorldRandomness(seed=self.seed)


class SimulationConfig(BaseModel):
    """Top-level configuration payload for a conflict simulation session."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(default="Viking Legacy")
    day_zero: int = Field(default=0, ge=0)
    force_response: bool = False
    movement: MovementSettings = Field(default_factory=MovementSettings)
    raids: RaidSettings = Field(default_factory=RaidSettings)
    battles: BattleSettings = Field(default_factory=BattleSettings)
    sieges: SiegeSettings = Field(default_factory=SiegeSettings)
    armies: ArmySettings = Field(default_factory=ArmySettings)
    retention: RetentionSettings = Field(default_factory=RetentionSettings)
    randomness: RandomnessSettings = Field(default_factory=RandomnessSettings)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _ensure_metadata_mapping(cls, value: object) -> dict[str, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise TypeError("metadata must be a mapping")
        return {str(key): item for key, item in value.items()}

    @property
    def seed(self) -> int:
        """Expose the configured seed."""

        return self.randomness.seed

    def randomness_factory(self) -> WorldRandomness:
        """Return a new :class:`~viking_legacy.world.rng.WorldRandomness` instance."""

        return self.randomness.factory()


__all__ = [
    "ArmySettings",
    "BattleSettings",
    "FactionType",
    "MovementSettings",
    "RaidSettings",
    "RandomnessSettings",
    "RegionType",
    "RetentionSettings",
    "SiegeSettings",
    "SimulationConfig",
]
