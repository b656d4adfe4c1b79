"""Turn engine coordinating the per-tick military phases."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from ..ui.channels import NotificationChannel, NotificationRecord, TurnLogChannel
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

logger = logging.getLogger(__name__)

PhaseName = Literal["expedition", "faction", "conflict"]
PhaseHandler = Callable[["TurnContext"], None]


@dataclass
class TurnContext:
    """Shared state passed to each phase handler."""

    day: float
    tick_size: float
    world_state: dict[str, Any]
    world: GameWorld
    log_channel: TurnLogChannel | None = None
    notification_channel: NotificationChannel | None = None
    summary_lines: list[str] = field(default_factory=list)

    def log(self, message: str) -> None:
        self.summary_lines.append(str(message))

    def notify(
        self,
        message: str,
        *,
        category: str = "info",
        payload: dict[str, Any] | None = None,
    ) -> NotificationRecord:
        record = NotificationRecord(
            day=int(self.day),
            message=str(message),
            category=category,
            payload=dict(payload or {}),
        )
        if self.notification_channel is not None:
            self.notification_channel.push(record)
        return record


class TurnEngine:
    """Runs expedition, faction and conflict phases once per tick."""

    PHASE_ORDER: list[PhaseName] = ["expedition", "faction", "conflict"]

    def __init__(
        self,
        world: GameWorld | None = None,
        *,
        start_day: float = 0,
        log_channel: TurnLogChannel | None = None,
        notification_channel: NotificationChannel | None = None,
    ) -> None:
        self.world = world or GameWorld()
        self.day = start_day
        self._log_channel = log_channel
        self._notification_channel = notification_channel
        self._phase_handlers: dict[PhaseName, list[PhaseHandler]] = {
            phase: [] for phase in self.PHASE_ORDER
        }
        self._register_default_systems()

    def register_handler(self, phase: PhaseName, handler: PhaseHandler) -> None:
        """Register a callback that runs before the systems of ``phase``."""

        if phase not in self._phase_handlers:
            raise ValueError(f"Unknown phase '{phase}'")
        self._phase_handlers[phase].append(handler)

    def run_turn(
        self, tick_size: float = 1.0, *, world_state: dict[str, Any] | None = None
    ) -> TurnContext:
        """Advance the simulation by ``tick_size`` days."""

        if tick_size <= 0:
            raise ValueError("tick_size must be positive")
        state = world_state if world_state is not None else {}
        state["day"] = self.day
        state["tick_size"] = tick_size
        self._sync_world_bindings(state)

        context = TurnContext(
            day=self.day,
            tick_size=tick_size,
            world_state=state,
            world=self.world,
            log_channel=self._log_channel,
            notification_channel=self._notification_channel,
        )

        pushed_before = self._notices_pushed()
        for phase in self.PHASE_ORDER:
            for handler in self._phase_handlers[phase]:
                handler(context)
            self.world.process_phase(phase, context)

        self.day += tick_size
        self._record_turn(context, self._notices_pushed() - pushed_before)
        return context

    def _notices_pushed(self) -> int:
        channel = self._notification_channel
        return channel.pushed if channel is not None else 0

    def _record_turn(self, context: TurnContext, notices: int) -> None:
        summary = " | ".join(context.summary_lines) if context.summary_lines else None
        if self._log_channel is not None:
            self._log_channel.record_context(context, summary=summary, notices=notices)
        logger.debug("Day %s complete: %s", context.day, summary or "quiet")

    def _register_default_systems(self) -> None:
        defaults: list[tuple[PhaseName, type]] = [
            ("expedition", ExpeditionSystem),
            ("faction", FactionArmySystem),
            ("conflict", ConflictSystem),
        ]
        for phase, system_type in defaults:
            if not self.world.has_system_type(system_type):
                self.world.register_system(phase, system_type(), priority=100)

    def _sync_world_bindings(self, world_state: dict[str, Any]) -> None:
        bindings: list[tuple[type, str, str]] = [
            (RegistryComponent, "registry", "registry"),
            (ExpeditionComponent, "expeditions", "manager"),
            (FactionArmyComponent, "faction_armies", "manager"),
            (ConflictComponent, "conflicts", "resolver"),
        ]
        for component_type, key, attr in bindings:
            component = self.world.get_singleton(component_type)
            if component is None:
                world_state.pop(key, None)
                continue
            world_state[key] = getattr(component, attr)


__all__ = ["PhaseName", "TurnContext", "TurnEngine"]
