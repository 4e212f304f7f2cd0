"""Alert delivery package."""

from .notifier import (
    AlarmNotifier,
    CompositeNotifier,
    LoggingNotifier,
    Notifier,
    format_remaining,
)

__all__ = [
    "AlarmNotifier",
    "CompositeNotifier",
    "LoggingNotifier",
    "Notifier",
    "format_remaining",
]
