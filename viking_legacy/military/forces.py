"""Shared combatant contracts and the force index used by the resolver."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, List, Mapping, Protocol

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..ui.channels import NotificationChannel, NotificationRecord

logger = logging.getLogger(__name__)


class OwnerKind(str, Enum):
    """Who controls a force."""

    PLAYER = "player"
    AI = "ai"


class Combatant(Protocol):
    """Anything the conflict resolver can put on a battlefield."""

    identifier: str
    name: str
    casualties: int
    current_region: str
    faction_id: str | None
    engaged_battle: str | None

    @property
    def warriors(self) -> int: ...

    @property
    def strength(self) -> int: ...

    @property
    def is_player(self) -> bool: ...

    def apply_casualties(self, count: int) -> int: ...

    def credit(self, *, fame: int = 0, loot: Mapping[str, int] | None = None) -> None: ...


class ForceSource(Protocol):
    """A manager that owns combatants and can order them home."""

    def lookup_force(self, force_id: str) -> Combatant | None: ...

    def recall_force(self, force_id: str) -> bool: ...


class ForceIndex:
    """Resolves force identifiers across every registered manager.

    Lookups for ids that no source recognises (or that a source considers
    stale) return ``None`` instead of raising.
    """

    def __init__(self, sources: Iterable[ForceSource] = ()) -> None:
        self._sources: List[ForceSource] = []
        for source in sources:
            self.register(source)

    def register(self, source: ForceSource) -> None:
        if not callable(getattr(source, "lookup_force", None)):
            raise TypeError("force sources must implement lookup_force()")
        if not callable(getattr(source, "recall_force", None)):
            raise TypeError("force sources must implement recall_force()")
        if source not in self._sources:
            self._sources.append(source)

    def get(self, force_id: str | None) -> Combatant | None:
        if force_id is None:
            return None
        for source in self._sources:
            force = source.lookup_force(force_id)
            if force is not None:
                return force
        return None

    def resolve(self, force_ids: Iterable[str]) -> list[Combatant]:
        """Return the live forces among ``force_ids`` preserving order."""

        forces: list[Combatant] = []
        for force_id in force_ids:
            force = self.get(force_id)
            if force is not None:
                forces.append(force)
        return forces

    def recall(self, force_id: str) -> bool:
        for source in self._sources:
            if source.lookup_force(force_id) is not None:
                return source.recall_force(force_id)
        logger.debug("Recall ignored for unknown force %s", force_id)
        return False


def force_id_of(item: object) -> str:
    """Accept either a force object or a bare identifier."""

    identifier = getattr(item, "identifier", item)
    return str(identifier)


class Narrator:
    """Mixin that routes player-facing narrative to a notification channel."""

    notifications: NotificationChannel | None = None
    day: int = 0

    def _narrate(
        self,
        message: str,
        *,
        category: str = "info",
        payload: Mapping[str, Any] | None = None,
    ) -> NotificationRecord | None:
        if self.notifications is None:
            return None
        return self.notifications.notify(
            self.day, message, category=category, payload=payload
        )

    def _sync_day(self, game_state: Mapping[str, Any] | None) -> None:
        if game_state is None:
            return
        day = game_state.get("day")
        if isinstance(day, (int, float)):
            self.day = int(day)


__all__ = [
    "Combatant",
    "ForceIndex",
    "ForceSource",
    "Narrator",
    "OwnerKind",
    "force_id_of",
]
