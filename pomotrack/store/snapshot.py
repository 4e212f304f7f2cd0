"""The persisted timer snapshot and its field encoding.

The snapshot is stored as a flat mapping of stable field names to string
values (one row per field, see ``models.Preference``).  Decoding is total:
missing fields take their defaults and malformed values never raise.

Stored names
------------
focus_minutes         positive int, default 25
break_minutes         positive int, default 5
total_rounds          positive int, default 4
current_round         int in [1, total_rounds], default 1
current_state         phase name, default ``idle``
timer_end_timestamp   epoch milliseconds, absent unless Focus/Break
remaining_millis      milliseconds left, meaningful only while Paused
paused_from           ``focus`` | ``break``, present only while Paused
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Mapping


# ── enums ─────────────────────────────────────────────────────────────────


class Phase(Enum):
    IDLE = "idle"
    FOCUS = "focus"
    BREAK = "break"
    PAUSED = "paused"
    COMPLETED = "completed"


RUNNING_PHASES: frozenset[Phase] = frozenset({Phase.FOCUS, Phase.BREAK})


# ── constants ─────────────────────────────────────────────────────────────

DEFAULT_FOCUS_MINUTES = 25
DEFAULT_BREAK_MINUTES = 5
DEFAULT_TOTAL_ROUNDS = 4

MINUTE_MS = 60 * 1000

KEY_FOCUS_MINUTES = "focus_minutes"
KEY_BREAK_MINUTES = "break_minutes"
KEY_TOTAL_ROUNDS = "total_rounds"
KEY_CURRENT_ROUND = "current_round"
KEY_PHASE = "current_state"
KEY_DEADLINE = "timer_end_timestamp"
KEY_REMAINING = "remaining_millis"
KEY_PAUSED_FROM = "paused_from"


# ── snapshot ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Snapshot:
    """The complete persisted state of the timer.

    ``deadline`` is set only while a countdown runs (Focus/Break);
    ``remaining`` and ``paused_from`` only while Paused.
    """

    focus_minutes: int = DEFAULT_FOCUS_MINUTES
    break_minutes: int = DEFAULT_BREAK_MINUTES
    total_rounds: int = DEFAULT_TOTAL_ROUNDS
    current_round: int = 1
    phase: Phase = Phase.IDLE
    deadline: int | None = None
    remaining: int = 0
    paused_from: Phase | None = None

    @property
    def is_running(self) -> bool:
        """True while a deadline is counting down."""
        return self.phase in RUNNING_PHASES

    @property
    def focus_ms(self) -> int:
        return self.focus_minutes * MINUTE_MS

    @property
    def break_ms(self) -> int:
        return self.break_minutes * MINUTE_MS

    def duration_for(self, phase: Phase) -> int:
        """Full length in milliseconds of a Focus or Break interval."""
        if phase == Phase.FOCUS:
            return self.focus_ms
        if phase == Phase.BREAK:
            return self.break_ms
        raise ValueError(f"{phase.name} has no duration")

    def remaining_at(self, now_ms: int) -> int:
        """Milliseconds left for display, clamped to >= 0."""
        if self.phase in RUNNING_PHASES and self.deadline is not None:
            return max(0, self.deadline - now_ms)
        if self.phase == Phase.PAUSED:
            return max(0, self.remaining)
        if self.phase == Phase.IDLE:
            return self.focus_ms
        return 0

    def idle(self) -> Snapshot:
        """Same configuration, state reset to Idle / round 1."""
        return replace(
            self,
            current_round=1,
            phase=Phase.IDLE,
            deadline=None,
            remaining=0,
            paused_from=None,
        )

    # ── encoding ──────────────────────────────────────────────────────

    def config_fields(self) -> dict[str, str]:
        return {
            KEY_FOCUS_MINUTES: str(self.focus_minutes),
            KEY_BREAK_MINUTES: str(self.break_minutes),
            KEY_TOTAL_ROUNDS: str(self.total_rounds),
        }

    def state_fields(self) -> dict[str, str | None]:
        """State fields; ``None`` means the key is removed."""
        return {
            KEY_PHASE: self.phase.value,
            KEY_CURRENT_ROUND: str(self.current_round),
            KEY_DEADLINE: None if self.deadline is None else str(self.deadline),
            KEY_REMAINING: str(self.remaining),
            KEY_PAUSED_FROM: None if self.paused_from is None else self.paused_from.value,
        }

    @classmethod
    def from_fields(cls, fields: Mapping[str, str | None]) -> Snapshot:
        """Decode stored fields, applying defaults and repairing bad data."""
        focus = _positive_int(fields.get(KEY_FOCUS_MINUTES), DEFAULT_FOCUS_MINUTES)
        brk = _positive_int(fields.get(KEY_BREAK_MINUTES), DEFAULT_BREAK_MINUTES)
        rounds = _positive_int(fields.get(KEY_TOTAL_ROUNDS), DEFAULT_TOTAL_ROUNDS)
        base = cls(focus_minutes=focus, break_minutes=brk, total_rounds=rounds)

        phase = parse_phase(fields.get(KEY_PHASE))
        deadline = _optional_int(fields.get(KEY_DEADLINE))
        round_ = min(max(_int(fields.get(KEY_CURRENT_ROUND), 1), 1), rounds)

        if phase in RUNNING_PHASES:
            if deadline is None:
                return base
            return replace(base, phase=phase, current_round=round_, deadline=deadline)

        if phase == Phase.PAUSED:
            paused_from = parse_phase(fields.get(KEY_PAUSED_FROM))
            if paused_from not in RUNNING_PHASES:
                # Older records never stored what was paused; not resumable.
                return base
            remaining = max(0, _int(fields.get(KEY_REMAINING), 0))
            return replace(
                base,
                phase=Phase.PAUSED,
                current_round=round_,
                remaining=remaining,
                paused_from=paused_from,
            )

        if phase == Phase.COMPLETED:
            return replace(base, phase=Phase.COMPLETED, current_round=round_)

        return base


# ── parsing helpers ───────────────────────────────────────────────────────


def parse_phase(raw: str | None) -> Phase:
    """Phase from a stored name (case-insensitive); unknown names give IDLE."""
    if not raw:
        return Phase.IDLE
    try:
        return Phase(raw.strip().lower())
    except ValueError:
        return Phase.IDLE


def _int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _optional_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _positive_int(raw: str | None, default: int) -> int:
    value = _int(raw, default)
    return value if value > 0 else default
