"""Application settings with JSON persistence.

Settings are stored in the platform user-data directory, e.g.:
    ~/.local/share/PomoTrack/settings.json

Timer durations and round counts are not settings: they live in the
snapshot store so the engine can always rederive its state from it.

Usage::

    settings = load_settings()
    settings.alarm_seconds = 15
    save_settings(settings)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path

from .store.db import APP_DATA_DIR, DB_PATH

SETTINGS_PATH = APP_DATA_DIR / "settings.json"

logger = logging.getLogger("pomotrack.settings")


@dataclass
class Settings:
    """All user-configurable preferences."""

    # ── storage ───────────────────────────────────────────────────────
    db_path: str = str(DB_PATH)

    # ── loop ──────────────────────────────────────────────────────────
    tick_interval_ms: int = 1000

    # ── alarm ─────────────────────────────────────────────────────────
    alarm_seconds: int = 30                # auto-silence after this long
    sound_enabled: bool = True
    sound_volume: int = 70                 # 0-100

    # ── notifications ─────────────────────────────────────────────────
    notifications_enabled: bool = True     # print end-of-interval messages

    # ── logging ───────────────────────────────────────────────────────
    log_level: str = "INFO"


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from disk, falling back to defaults."""
    path = path or SETTINGS_PATH
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            # Only use keys that exist in the dataclass
            valid_keys = {f.name for f in fields(Settings)}
            filtered = {k: v for k, v in data.items() if k in valid_keys}
            return Settings(**filtered)
    except (OSError, ValueError, TypeError, AttributeError) as error:
        logger.warning("Ignoring unreadable settings %s: %s", path, error)
    return Settings()


def save_settings(settings: Settings, path: Path | None = None) -> None:
    """Write settings to disk as JSON."""
    path = path or SETTINGS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(asdict(settings), indent=2) + "\n",
        encoding="utf-8",
    )
