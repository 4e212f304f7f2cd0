"""Alert delivery for the timer engine.

The engine only knows the ``Notifier`` interface.  Delivery is best-effort:
the engine logs and ignores any exception a notifier raises.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from PyQt6.QtCore import QObject, QTimer

from ..store.snapshot import Phase

logger = logging.getLogger("pomotrack.alerts")

DEFAULT_ALARM_SECONDS = 30

MessageSink = Callable[[str, str], None]

_ALARM_FOR_PHASE: dict[Phase, str] = {
    Phase.FOCUS: "focus_end",
    Phase.BREAK: "break_end",
}

_ENDED_MESSAGES: dict[Phase, tuple[str, str]] = {
    Phase.FOCUS: ("Focus complete", "Time for a break."),
    Phase.BREAK: ("Break over", "Back to focus."),
}


def format_remaining(remaining_ms: int) -> str:
    """``MM:SS`` for a millisecond duration, clamped at zero."""
    total_seconds = max(0, remaining_ms) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


class Notifier:
    """Receives timer alerts.  Every hook defaults to doing nothing."""

    def phase_started(self, phase: Phase) -> None:
        pass

    def phase_ended(self, phase: Phase) -> None:
        pass

    def all_rounds_completed(self) -> None:
        pass

    def progress(self, remaining_ms: int) -> None:
        pass

    def dismiss(self) -> None:
        """The user acted (start/pause/stop/reset); silence anything ringing."""


class LoggingNotifier(Notifier):
    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def phase_started(self, phase: Phase) -> None:
        self._log.info("%s started", phase.name.title())

    def phase_ended(self, phase: Phase) -> None:
        self._log.info("%s ended", phase.name.title())

    def all_rounds_completed(self) -> None:
        self._log.info("All rounds complete")

    def progress(self, remaining_ms: int) -> None:
        self._log.debug("%s remaining", format_remaining(remaining_ms))


class CompositeNotifier(Notifier):
    """Fans every alert out; one failing notifier does not block the rest."""

    def __init__(self, notifiers: Iterable[Notifier]) -> None:
        self._notifiers = list(notifiers)

    def phase_started(self, phase: Phase) -> None:
        self._each("phase_started", phase)

    def phase_ended(self, phase: Phase) -> None:
        self._each("phase_ended", phase)

    def all_rounds_completed(self) -> None:
        self._each("all_rounds_completed")

    def progress(self, remaining_ms: int) -> None:
        self._each("progress", remaining_ms)

    def dismiss(self) -> None:
        self._each("dismiss")

    def _each(self, hook: str, *args) -> None:
        for notifier in self._notifiers:
            try:
                getattr(notifier, hook)(*args)
            except Exception:
                logger.exception("%s.%s failed", type(notifier).__name__, hook)


class AlarmNotifier(QObject, Notifier):
    """Rings a looping alarm when an interval ends and auto-silences it.

    ``sounds`` is anything with ``start_alarm(name)`` and ``stop()``
    (normally an ``AlarmSounds``).  ``show_message(title, body)`` receives
    the end-of-interval messages; without it only sound is used.
    ``status_text`` mirrors the live progress indicator.
    """

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        sounds=None,
        show_message: MessageSink | None = None,
        alarm_seconds: int = DEFAULT_ALARM_SECONDS,
    ) -> None:
        super().__init__(parent)
        self._sounds = sounds
        self._show_message = show_message
        self._ringing = False
        self.status_text = ""

        self._silence_timer = QTimer(self)
        self._silence_timer.setSingleShot(True)
        self._silence_timer.setInterval(max(1, alarm_seconds) * 1000)
        self._silence_timer.timeout.connect(self.silence)

    @property
    def ringing(self) -> bool:
        return self._ringing

    # ── Notifier hooks ────────────────────────────────────────────────

    def phase_started(self, phase: Phase) -> None:
        self.status_text = f"{phase.name.title()} running"

    def phase_ended(self, phase: Phase) -> None:
        self._ring(_ALARM_FOR_PHASE.get(phase, "focus_end"))
        title, body = _ENDED_MESSAGES.get(phase, ("Phase complete", ""))
        self._show(title, body)

    def all_rounds_completed(self) -> None:
        self._ring("cycle_complete")
        self.status_text = "All rounds complete"
        self._show("Pomodoro completed", "Every round is done. Nice work!")

    def progress(self, remaining_ms: int) -> None:
        self.status_text = f"{format_remaining(remaining_ms)} remaining"

    def dismiss(self) -> None:
        self.silence()

    # ── alarm ─────────────────────────────────────────────────────────

    def silence(self) -> None:
        self._silence_timer.stop()
        if not self._ringing:
            return
        self._ringing = False
        if self._sounds is not None:
            self._sounds.stop()
        logger.debug("Alarm silenced")

    def _ring(self, name: str) -> None:
        self.silence()
        if self._sounds is not None:
            self._sounds.start_alarm(name)
        self._ringing = True
        self._silence_timer.start()

    def _show(self, title: str, body: str) -> None:
        if self._show_message is not None:
            self._show_message(title, body)
