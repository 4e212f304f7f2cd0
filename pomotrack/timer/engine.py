"""Timer engine: commands, the countdown loop, and alert dispatch.

States
------
IDLE        Nothing scheduled, round 1.
FOCUS       Focus interval counting down to ``deadline``.
BREAK       Break interval counting down to ``deadline``.
PAUSED      Frozen; ``remaining`` ms left of ``paused_from``.
COMPLETED   Every round done, until Start or Stop.

The engine holds no timer state of its own.  Start, Pause, Stop and every
expiry are each a single ``SnapshotStore.update``: the store is re-read, the next
snapshot is computed with ``transitions`` and written back inside one locked
transaction, so a Pause or Stop committed by another process is never
overwritten.  An engine can be destroyed and rebuilt at any moment
(``restore`` picks the countdown up again after a restart).

The countdown loop is a single ``QTimer``.  Within a process, commands and
ticks run under one re-entrant lock; Pause, Stop and Reset stop the
``QTimer`` before returning, and a tick that finds the timer stopped or the
snapshot no longer running commits nothing.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import replace
from typing import Callable

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from ..alerts.notifier import LoggingNotifier, Notifier
from ..errors import StorageUnavailable, UnknownCommand
from ..store.snapshot import Phase, Snapshot
from ..store.store import SnapshotStore, validate_config
from . import transitions
from .transitions import Transition

logger = logging.getLogger("pomotrack.timer")

TICK_INTERVAL_MS = 1000

COMMANDS = ("start", "pause", "stop", "reset")

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class TimerEngine(QObject):
    """Deadline-based Pomodoro engine over a ``SnapshotStore``.

    Signals
    -------
    state_changed(snapshot: Snapshot)
        Emitted after every committed transition, and when a tick finds
        the countdown ended by another writer of the store.
    tick(remaining_ms: int)
        Emitted at most once per whole second while counting down.
    phase_completed(phase: Phase)
        Emitted after a Focus or Break deadline passes.
    """

    state_changed = pyqtSignal(object)
    tick = pyqtSignal(int)
    phase_completed = pyqtSignal(object)

    def __init__(
        self,
        store: SnapshotStore | None = None,
        notifier: Notifier | None = None,
        parent: QObject | None = None,
        *,
        clock: Clock | None = None,
        tick_interval_ms: int = TICK_INTERVAL_MS,
    ) -> None:
        super().__init__(parent)
        self._store = store or SnapshotStore(self)
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock or wall_clock_ms
        self._lock = threading.RLock()
        self._last_progress_second: int | None = None

        self._qt_timer = QTimer(self)
        self._qt_timer.setInterval(tick_interval_ms)
        self._qt_timer.timeout.connect(self._on_tick)

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def snapshot(self) -> Snapshot:
        return self._store.read()

    @property
    def is_looping(self) -> bool:
        """True while the countdown loop is scheduled."""
        return self._qt_timer.isActive()

    # ══════════════════════════════════════════════════════════════════
    #  COMMANDS
    # ══════════════════════════════════════════════════════════════════

    def start(self) -> None:
        """Start a cycle, resume a paused interval, or re-attach the loop."""
        with self._lock:
            self._dismiss()
            snap = self._store.read()
            if snap.is_running:
                logger.debug("Start while %s: keeping deadline", snap.phase.name)
                self._run_loop()
                return

            self._halt_loop()
            now = self._clock()
            transition = self._apply(lambda current: transitions.start(current, now), "start")
            if transition is not None:
                self._announce(transition)
            self._run_loop()

    def pause(self) -> None:
        """Freeze the running interval.  No-op unless Focus or Break."""
        with self._lock:
            now = self._clock()
            if self._apply(lambda current: transitions.pause(current, now), "pause") is None:
                return
            self._halt_loop()
            self._dismiss()

    def stop(self) -> None:
        """Abandon the cycle and return to Idle.  Always safe."""
        with self._lock:
            self._apply(transitions.stop, "stop")
            self._halt_loop()
            self._dismiss()

    def reset(self) -> None:
        """Force the store back to Idle / round 1, configuration kept."""
        with self._lock:
            committed = self._store.reset()
            self._halt_loop()
            self.state_changed.emit(committed)
            self._dismiss()

    def update_config(
        self, focus_minutes: int, break_minutes: int, total_rounds: int
    ) -> None:
        """Change durations for future phases; a running deadline is kept."""
        validate_config(focus_minutes, break_minutes, total_rounds)
        with self._lock:
            committed = self._store.write_config(
                focus_minutes, break_minutes, total_rounds
            )
            self.state_changed.emit(committed)

    def dispatch(self, command: str) -> None:
        """Run a command by name (``start``, ``pause``, ``stop``, ``reset``)."""
        name = command.strip().lower() if isinstance(command, str) else None
        if name not in COMMANDS:
            raise UnknownCommand(f"unknown command: {command!r}")
        getattr(self, name)()

    def restore(self) -> Snapshot:
        """Re-attach the loop to a persisted running countdown, if any."""
        with self._lock:
            snap = self._store.read()
            if snap.is_running:
                logger.info(
                    "Restoring %s round %s/%s",
                    snap.phase.name, snap.current_round, snap.total_rounds,
                )
                self._run_loop()
            return snap

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL — countdown loop
    # ══════════════════════════════════════════════════════════════════

    def _run_loop(self) -> None:
        self._last_progress_second = None
        self._qt_timer.start()
        self._on_tick()

    def _halt_loop(self) -> None:
        self._qt_timer.stop()
        self._last_progress_second = None

    def _on_tick(self) -> None:
        with self._lock:
            if not self._qt_timer.isActive():
                return
            try:
                self._process_tick()
            except StorageUnavailable as error:
                # Keep the loop alive; the next tick retries the read.
                logger.warning("Tick skipped: %s", error)

    def _process_tick(self) -> None:
        snap = self._store.read()
        if not snap.is_running:
            logger.debug("Snapshot is %s; countdown loop ends", snap.phase.name)
            self._halt_loop()
            self.state_changed.emit(snap)
            return

        now = self._clock()
        if not transitions.is_due(snap, now):
            self._publish_progress(snap.remaining_at(now))
            return

        transition = self._apply(lambda current: transitions.expire(current, now), "expiry")
        if transition is None:
            logger.debug("Deadline already handled by another writer")
            return
        committed = transition.snapshot
        if not committed.is_running:
            self._halt_loop()
        self._announce(transition)
        if self._qt_timer.isActive() and committed.is_running:
            self._publish_progress(committed.remaining_at(now))

    def _publish_progress(self, remaining_ms: int) -> None:
        second = math.ceil(remaining_ms / 1000)
        if second == self._last_progress_second:
            return
        self._last_progress_second = second
        self.tick.emit(remaining_ms)
        self._notify("progress", remaining_ms)

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL — persistence and alerts
    # ══════════════════════════════════════════════════════════════════

    def _apply(self, step: Callable[[Snapshot], Transition], cause: str) -> Transition | None:
        """Persist ``step`` applied to the stored snapshot as one atomic update.

        Returns the transition carrying the committed snapshot, or ``None``
        when the step left the snapshot as it was.
        """
        proposed: Transition | None = None

        def compute(current: Snapshot) -> Snapshot | None:
            nonlocal proposed
            proposed = step(current)
            if proposed.snapshot == current:
                return None
            return proposed.snapshot

        committed = self._store.update(compute)
        if committed is None:
            return None
        logger.info(
            "%s: %s round %s/%s",
            cause, committed.phase.name, committed.current_round, committed.total_rounds,
        )
        self.state_changed.emit(committed)
        return replace(proposed, snapshot=committed)

    def _announce(self, transition: Transition) -> None:
        if transition.ended is not None:
            self.phase_completed.emit(transition.ended)
            self._notify("phase_ended", transition.ended)
        if transition.completed:
            self._notify("all_rounds_completed")
        if transition.started is not None:
            self._notify("phase_started", transition.started)

    def _dismiss(self) -> None:
        self._notify("dismiss")

    def _notify(self, hook: str, *args) -> None:
        try:
            getattr(self._notifier, hook)(*args)
        except Exception:
            logger.exception("Notifier %s failed", hook)
