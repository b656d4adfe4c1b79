"""Narrative and turn-summary channels rendered with Rich."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Sequence

if TYPE_CHECKING:
    from ..engine.turn_engine import TurnContext

QUIET_TURN = "The longships rest."


@dataclass
class LogEntry:
    """One campaign tick: the day it opened on and what the systems reported."""

    day: float
    summary: str
    tick_size: float = 1.0
    reports: List[str] = field(default_factory=list)
    notices: int = 0

    @property
    def quiet(self) -> bool:
        return not self.reports and not self.notices


@dataclass
class NotificationRecord:
    """A single line of player-facing narrative."""

    day: int
    message: str
    category: str = "info"
    payload: Dict[str, Any] = field(default_factory=dict)


class TurnLogChannel:
    """Keeps the most recent campaign ticks."""

    def __init__(self, *, max_entries: int = 100) -> None:
        self.max_entries = max_entries
        self._entries: List[LogEntry] = []

    @property
    def entries(self) -> Sequence[LogEntry]:
        return tuple(self._entries)

    def push(self, entry: LogEntry) -> None:
        self._entries.append(entry)
        if len(self._entries) > self.max_entries:
            self._entries = self._entries[-self.max_entries :]

    def record_context(
        self,
        context: "TurnContext",
        *,
        summary: str | None = None,
        notices: int = 0,
    ) -> LogEntry:
        entry = LogEntry(
            day=context.day,
            summary=summary or _build_default_summary(context),
            tick_size=context.tick_size,
            reports=list(context.summary_lines),
            notices=notices,
        )
        self.push(entry)
        return entry

    def render_table(self, *, title: str = "Campaign Log", limit: int = 10, skip_quiet: bool = True):
        """Return a Rich panel with the latest ``limit`` ticks, newest first."""

        from rich import box
        from rich.panel import Panel
        from rich.table import Table

        table = Table(expand=True, box=box.SIMPLE_HEAVY)
        table.add_column("Day", justify="right", no_wrap=True)
        table.add_column("Reports", overflow="fold")
        table.add_column("Saga", justify="right", no_wrap=True)

        entries = [entry for entry in self._entries if not (skip_quiet and entry.quiet)]
        for entry in reversed(entries[-limit:]):
            reports = "\n".join(entry.reports) if entry.reports else entry.summary
            table.add_row(f"{entry.day:g}", reports, str(entry.notices))

        return Panel(table, title=title, border_style="yellow")


class NotificationChannel:
    """Bounded store of narrative records."""

    def __init__(self, *, max_entries: int = 200) -> None:
        self.max_entries = max_entries
        self._notifications: List[NotificationRecord] = []
        self._pushed = 0

    @property
    def notifications(self) -> Sequence[NotificationRecord]:
        return tuple(self._notifications)

    @property
    def pushed(self) -> int:
        """Records pushed since creation, including any already evicted."""

        return self._pushed

    def push(self, notification: NotificationRecord) -> None:
        self._notifications.append(notification)
        self._pushed += 1
        if len(self._notifications) > self.max_entries:
            self._notifications = self._notifications[-self.max_entries :]

    def notify(
        self,
        day: int,
        message: str,
        *,
        category: str = "info",
        payload: Mapping[str, Any] | None = None,
    ) -> NotificationRecord:
        record = NotificationRecord(
            day=day, message=message, category=category, payload=dict(payload or {})
        )
        self.push(record)
        return record

    def by_category(self, category: str) -> list[NotificationRecord]:
        return [record for record in self._notifications if record.category == category]

    def render_panel(self, *, title: str = "Saga", limit: int = 15):
        from rich.panel import Panel
        from rich.table import Table

        table = Table(expand=True)
        table.add_column("Day", justify="right", no_wrap=True)
        table.add_column("Category", no_wrap=True)
        table.add_column("Message", overflow="fold")

        for record in reversed(self._notifications[-limit:]):
            table.add_row(str(record.day), record.category, record.message)

        return Panel(table, title=title, border_style="magenta")


# ---------------------------------------------------------------------------
def _build_default_summary(context: "TurnContext") -> str:
    if context.summary_lines:
        return " | ".join(context.summary_lines)
    return QUIET_TURN


__all__ = [
    "LogEntry",
    "NotificationChannel",
    "NotificationRecord",
    "TurnLogChannel",
]
