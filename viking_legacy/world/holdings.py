"""Player population, stockpile and fame bookkeeping."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, MutableMapping, Protocol

logger = logging.getLogger(__name__)


class Holdings(Protocol):
    """Where returning expeditions deposit warriors, plunder and renown."""

    def add_anonymous_population(self, kind: str, delta: int) -> int: ...

    def population_of(self, kind: str) -> int: ...

    def add_resources(self, resources: Mapping[str, int]) -> None: ...

    def add_fame(self, amount: int, reason: str) -> int: ...


@dataclass(slots=True)
class FameAward:
    """Single entry in the fame history."""

    amount: int
    reason: str
    total: int


@dataclass
class PlayerHoldings:
    """Concrete in-memory :class:`Holdings` for the player's settlement."""

    population: MutableMapping[str, int] = field(default_factory=dict)
    resources: MutableMapping[str, int] = field(default_factory=dict)
    fame: int = 0
    fame_history: List[FameAward] = field(default_factory=list)

    def add_anonymous_population(self, kind: str, delta: int) -> int:
        """Adjust the unnamed population pool ``kind`` and return the new size.

        A debit larger than the pool is clamped at zero with a warning.
        """

        current = self.population.get(kind, 0)
        updated = current + int(delta)
        if updated < 0:
            logger.warning(
                "Population pool %s cannot drop below zero (had %d, delta %d); clamping",
                kind,
                current,
                delta,
            )
            updated = 0
        self.population[kind] = updated
        return updated

    def population_of(self, kind: str) -> int:
        return int(self.population.get(kind, 0))

    def add_resources(self, resources: Mapping[str, int]) -> None:
        for resource, amount in resources.items():
            total = self.resources.get(resource, 0) + int(amount)
            self.resources[resource] = max(0, total)

    def add_fame(self, amount: int, reason: str) -> int:
        amount = int(amount)
        if amount == 0:
            return self.fame
        self.fame += amount
        self.fame_history.append(FameAward(amount=amount, reason=reason, total=self.fame))
        logger.debug("Fame %+d for %s (total %d)", amount, reason, self.fame)
        return self.fame

    def to_dict(self) -> Dict[str, object]:
        return {
            "population": dict(self.population),
            "resources": dict(self.resources),
            "fame": self.fame,
        }


__all__ = ["FameAward", "Holdings", "PlayerHoldings"]
