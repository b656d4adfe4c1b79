"""Presentation helpers for the campaign narrative."""

from .channels import LogEntry, NotificationChannel, NotificationRecord, TurnLogChannel

__all__ = [
    "LogEntry",
    "NotificationChannel",
    "NotificationRecord",
    "TurnLogChannel",
]
