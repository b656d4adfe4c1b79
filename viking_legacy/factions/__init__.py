"""AI factions and the directory the army manager consults."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from ..world.config import FactionType

__all__ = [
    "Faction",
    "FactionDirectory",
    "faction_strength_frame",
    "faction_warrior_totals",
]


@dataclass(slots=True)
class Faction:
    """A non-player power that owns settlements."""

    identifier: str
    name: str
    faction_type: FactionType = FactionType.NORSE

    @staticmethod
    def from_dict(payload: Mapping[str, object]) -> "Faction":
        return Faction(
            identifier=str(payload.get("identifier")),
            name=str(payload.get("name", payload.get("identifier"))),
            faction_type=FactionType(str(payload.get("type", FactionType.NORSE.value))),
        )


class FactionDirectory:
    """Lookup table of factions keyed by identifier."""

    def __init__(self, factions: Iterable[Faction] | None = None) -> None:
        self._factions: Dict[str, Faction] = {}
        for faction in factions or []:
            self.add(faction)

    def add(self, faction: Faction) -> None:
        if faction.identifier in self._factions:
            raise ValueError(f"duplicate faction identifier {faction.identifier!r}")
        self._factions[faction.identifier] = faction

    def get(self, faction_id: str | None) -> Faction | None:
        if faction_id is None:
            return None
        return self._factions.get(faction_id)

    def __iter__(self) -> Iterator[Faction]:
        return iter(list(self._factions.values()))

    def __len__(self) -> int:
        return len(self._factions)

    def __contains__(self, faction_id: object) -> bool:
        return faction_id in self._factions


def __getattr__(name: str) -> Any:
    if name in {"faction_strength_frame", "faction_warrior_totals"}:
        from . import summary  # noqa: PLC0415

        return getattr(summary, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
