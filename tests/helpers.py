"""Shared test helpers for PomoTrack."""

from pomotrack.alerts.notifier import Notifier
from pomotrack.store.snapshot import Phase
from pomotrack.timer.engine import TimerEngine

START_MS = 1_700_000_000_000


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()


class FakeClock:
    """Wall clock in epoch milliseconds that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class RecordingNotifier(Notifier):
    def __init__(self):
        self.events: list[tuple] = []

    def phase_started(self, phase: Phase) -> None:
        self.events.append(("phase_started", phase))

    def phase_ended(self, phase: Phase) -> None:
        self.events.append(("phase_ended", phase))

    def all_rounds_completed(self) -> None:
        self.events.append(("all_rounds_completed",))

    def progress(self, remaining_ms: int) -> None:
        self.events.append(("progress", remaining_ms))

    def dismiss(self) -> None:
        self.events.append(("dismiss",))

    def alerts(self) -> list[tuple]:
        """Everything except progress updates."""
        return [e for e in self.events if e[0] != "progress"]

    def clear(self):
        self.events.clear()


class FailingNotifier(Notifier):
    """Every alert blows up, like a notification service that is down."""

    def phase_started(self, phase):
        raise RuntimeError("notification service down")

    def phase_ended(self, phase):
        raise RuntimeError("notification service down")

    def all_rounds_completed(self):
        raise RuntimeError("notification service down")

    def progress(self, remaining_ms):
        raise RuntimeError("notification service down")


def run_for(engine: TimerEngine, clock: FakeClock, ms: int) -> None:
    """Move the clock forward and let the countdown loop take one tick."""
    clock.advance(ms)
    engine._on_tick()
