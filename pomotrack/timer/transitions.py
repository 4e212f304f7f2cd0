"""Pure transition functions for the timer state machine.

Every function takes the current snapshot and the wall-clock time in epoch
milliseconds and returns a ``Transition``; nothing here reads the clock,
touches storage or emits alerts.

Table
-----
IDLE, COMPLETED → FOCUS          (start)   round 1, deadline now+focus
PAUSED → paused_from             (start)   deadline now+remaining
FOCUS, BREAK → PAUSED            (pause)   remaining deadline-now
FOCUS, BREAK, PAUSED,
COMPLETED → IDLE                 (stop)    round 1, everything cleared
FOCUS → BREAK                    (expiry)  deadline now+break
BREAK → FOCUS                    (expiry, round < total)  round+1
BREAK → COMPLETED                (expiry, round == total)
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..store.snapshot import Phase, RUNNING_PHASES, Snapshot


@dataclass(frozen=True)
class Transition:
    """The next snapshot plus the alerts it implies."""

    snapshot: Snapshot
    started: Phase | None = None     # running phase just entered
    ended: Phase | None = None       # running phase whose deadline passed
    completed: bool = False          # the last round just finished

    @property
    def changed(self) -> bool:
        return self.started is not None or self.ended is not None or self.completed


def start(snapshot: Snapshot, now_ms: int) -> Transition:
    """Begin a fresh cycle, or resume a paused interval."""
    if snapshot.phase in (Phase.IDLE, Phase.COMPLETED):
        fresh = replace(
            snapshot.idle(),
            phase=Phase.FOCUS,
            deadline=now_ms + snapshot.focus_ms,
        )
        return Transition(fresh, started=Phase.FOCUS)

    if snapshot.phase == Phase.PAUSED:
        resume_into = snapshot.paused_from
        if resume_into not in RUNNING_PHASES:
            raise ValueError("paused snapshot does not record the paused phase")
        resumed = replace(
            snapshot,
            phase=resume_into,
            deadline=now_ms + snapshot.remaining,
            remaining=0,
            paused_from=None,
        )
        return Transition(resumed, started=resume_into)

    # Already counting down: keep the existing deadline.
    return Transition(snapshot)


def pause(snapshot: Snapshot, now_ms: int) -> Transition:
    """Freeze a running interval as a remaining duration."""
    if not snapshot.is_running:
        return Transition(snapshot)
    paused = replace(
        snapshot,
        phase=Phase.PAUSED,
        remaining=snapshot.remaining_at(now_ms),
        deadline=None,
        paused_from=snapshot.phase,
    )
    return Transition(paused)


def stop(snapshot: Snapshot) -> Transition:
    """Abandon the cycle; back to Idle, round 1."""
    return Transition(snapshot.idle())


def is_due(snapshot: Snapshot, now_ms: int) -> bool:
    return (
        snapshot.is_running
        and snapshot.deadline is not None
        and snapshot.deadline <= now_ms
    )


def expire(snapshot: Snapshot, now_ms: int) -> Transition:
    """Advance past a deadline that has passed.  No-op otherwise."""
    if not is_due(snapshot, now_ms):
        return Transition(snapshot)

    if snapshot.phase == Phase.FOCUS:
        nxt = replace(snapshot, phase=Phase.BREAK, deadline=now_ms + snapshot.break_ms)
        return Transition(nxt, started=Phase.BREAK, ended=Phase.FOCUS)

    # Break finished
    if snapshot.current_round >= snapshot.total_rounds:
        done = replace(snapshot, phase=Phase.COMPLETED, deadline=None)
        return Transition(done, ended=Phase.BREAK, completed=True)

    nxt = replace(
        snapshot,
        phase=Phase.FOCUS,
        current_round=snapshot.current_round + 1,
        deadline=now_ms + snapshot.focus_ms,
    )
    return Transition(nxt, started=Phase.FOCUS, ended=Phase.BREAK)
