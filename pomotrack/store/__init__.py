"""Durable snapshot store package."""

from .db import configure_engine, get_session, init_db
from .snapshot import Phase, Snapshot
from .store import SnapshotStore, Subscription, validate_config

__all__ = [
    "configure_engine",
    "get_session",
    "init_db",
    "Phase",
    "Snapshot",
    "SnapshotStore",
    "Subscription",
    "validate_config",
]
