"""Shared pytest fixtures for PomoTrack tests."""

import sys
import pytest

from PyQt6.QtCore import QCoreApplication

from pomotrack.store.db import configure_engine, init_db
from pomotrack.store.store import SnapshotStore
from pomotrack.timer.engine import TimerEngine

from helpers import FakeClock, RecordingNotifier


@pytest.fixture(scope="session")
def qapp():
    """A single headless Qt application shared across the entire test run."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store(qapp):
    return SnapshotStore()


@pytest.fixture
def engine(qapp, store, notifier, clock):
    """Fresh TimerEngine on a fake clock with a recording notifier."""
    return TimerEngine(store, notifier, clock=clock)
