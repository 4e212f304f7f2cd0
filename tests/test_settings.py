"""Tests for JSON-persisted application settings."""

from __future__ import annotations

import json

from pomotrack.settings import Settings, load_settings, save_settings


class TestSettingsDefaults:
    def test_tick_interval(self):
        assert Settings().tick_interval_ms == 1000

    def test_alarm_auto_silence(self):
        assert Settings().alarm_seconds == 30

    def test_sound_defaults(self):
        s = Settings()
        assert s.sound_enabled is True
        assert s.sound_volume == 70

    def test_notifications_default(self):
        assert Settings().notifications_enabled is True

    def test_db_path_in_data_dir(self):
        assert Settings().db_path.endswith("pomotrack.db")


class TestSettingsPersistence:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "settings.json"
        s = Settings(alarm_seconds=10, sound_volume=20, log_level="DEBUG")
        save_settings(s, path)
        assert load_settings(path) == s

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path / "nope.json") == Settings()

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"alarm_seconds": 5, "theme": "dark"}), encoding="utf-8")
        s = load_settings(path)
        assert s.alarm_seconds == 5
        assert not hasattr(s, "theme")

    def test_corrupt_file_gives_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_settings(path) == Settings()

    def test_save_creates_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "settings.json"
        save_settings(Settings(), path)
        assert json.loads(path.read_text(encoding="utf-8"))["tick_interval_ms"] == 1000
