"""Durable snapshot store with atomic multi-field writes.

Usage::

    store = SnapshotStore()
    sub = store.subscribe(lambda snap: print(snap.phase))
    store.write_config(50, 10, 3)
    sub.cancel()

Several processes may share one database.  ``update`` is the only safe way
to derive a new state from the current one: it reads, computes and writes
inside a single transaction that holds SQLite's write lock throughout.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional

from PyQt6.QtCore import QObject, pyqtSignal
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InvalidConfig, StorageUnavailable
from .db import get_session
from .models import Preference
from .snapshot import (
    KEY_CURRENT_ROUND,
    Phase,
    Snapshot,
)

logger = logging.getLogger("pomotrack.store")

SnapshotCallback = Callable[[Snapshot], None]
Compute = Callable[[Snapshot], Optional[Snapshot]]


def validate_config(focus_minutes: int, break_minutes: int, total_rounds: int) -> None:
    """Raise ``InvalidConfig`` unless all three values are positive integers."""
    for name, value in (
        ("focus_minutes", focus_minutes),
        ("break_minutes", break_minutes),
        ("total_rounds", total_rounds),
    ):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise InvalidConfig(f"{name} must be a positive integer, got {value!r}")


def _check_state(current_round: int, remaining: int) -> None:
    if current_round < 1:
        raise ValueError(f"current_round must be >= 1, got {current_round}")
    if remaining < 0:
        raise ValueError(f"remaining must be >= 0, got {remaining}")


class Subscription:
    """Handle returned by ``SnapshotStore.subscribe``."""

    def __init__(self, store: SnapshotStore, callback: SnapshotCallback) -> None:
        self._store = store
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._store.changed.disconnect(self._callback)


class SnapshotStore(QObject):
    """The single durable owner of the timer snapshot.

    Signals
    -------
    changed(snapshot: Snapshot)
        Emitted after every committed write with the state as committed.
    """

    changed = pyqtSignal(object)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)

    # ── reads ─────────────────────────────────────────────────────────

    def read(self) -> Snapshot:
        """The latest durable snapshot, defaults filled in."""
        try:
            with get_session() as db:
                return _load(db)
        except SQLAlchemyError as error:
            raise StorageUnavailable(f"cannot read timer state: {error}") from error

    def subscribe(self, callback: SnapshotCallback) -> Subscription:
        """Deliver the current snapshot now and after every write."""
        current = self.read()
        self.changed.connect(callback)
        callback(current)
        return Subscription(self, callback)

    # ── writes ────────────────────────────────────────────────────────

    def write_config(
        self, focus_minutes: int, break_minutes: int, total_rounds: int
    ) -> Snapshot:
        """Replace the three configuration fields atomically."""
        validate_config(focus_minutes, break_minutes, total_rounds)
        config = Snapshot(
            focus_minutes=focus_minutes,
            break_minutes=break_minutes,
            total_rounds=total_rounds,
        ).config_fields()

        def clamp_round(db: Session) -> None:
            row = db.get(Preference, KEY_CURRENT_ROUND)
            if row is not None and row.value.isdigit() and int(row.value) > total_rounds:
                row.value = str(total_rounds)

        logger.info(
            "Config updated: focus=%sm break=%sm rounds=%s",
            focus_minutes, break_minutes, total_rounds,
        )
        return self._write(config, before_commit=clamp_round)

    def write_state(
        self,
        phase: Phase,
        current_round: int,
        deadline: int | None,
        remaining: int,
        paused_from: Phase | None = None,
    ) -> Snapshot:
        """Replace phase, round, deadline, remaining and paused_from as one unit."""
        _check_state(current_round, remaining)
        fields = Snapshot(
            current_round=current_round,
            phase=phase,
            deadline=deadline,
            remaining=remaining,
            paused_from=paused_from,
        ).state_fields()
        logger.debug("Writing state: %s", fields)
        return self._write(fields)

    def update(self, compute: Compute) -> Snapshot | None:
        """Read, compute and write the state in one locked transaction.

        ``compute`` receives the snapshot as stored right now and returns the
        snapshot to persist, or ``None`` to leave the store untouched.  Only
        state fields are written; configuration changes go through
        ``write_config``.  Returns the committed snapshot, or ``None`` when
        nothing was written.
        """
        try:
            with get_session(immediate=True) as db:
                nxt = compute(_load(db))
                if nxt is None:
                    return None
                _check_state(nxt.current_round, nxt.remaining)
                _apply_fields(db, nxt.state_fields())
                committed = _load(db)
        except SQLAlchemyError as error:
            raise StorageUnavailable(f"cannot update timer state: {error}") from error

        logger.debug("Updated state: %s %s", committed.phase.name, committed.current_round)
        self.changed.emit(committed)
        return committed

    def reset(self) -> Snapshot:
        """Back to Idle / round 1, configuration untouched."""
        logger.info("State reset")
        return self._write(Snapshot().idle().state_fields())

    # ── internal ──────────────────────────────────────────────────────

    def _write(
        self,
        fields: Mapping[str, str | None],
        before_commit: Callable[[Session], None] | None = None,
    ) -> Snapshot:
        try:
            with get_session(immediate=True) as db:
                _apply_fields(db, fields)
                if before_commit is not None:
                    before_commit(db)
                committed = _load(db)
        except SQLAlchemyError as error:
            raise StorageUnavailable(f"cannot write timer state: {error}") from error

        self.changed.emit(committed)
        return committed


def _load(db: Session) -> Snapshot:
    """Decode every stored field as this session sees it."""
    return Snapshot.from_fields({row.key: row.value for row in db.query(Preference).all()})


def _apply_fields(db: Session, fields: Mapping[str, str | None]) -> None:
    for key, value in fields.items():
        if value is None:
            row = db.get(Preference, key)
            if row is not None:
                db.delete(row)
        else:
            db.merge(Preference(key=key, value=value))
