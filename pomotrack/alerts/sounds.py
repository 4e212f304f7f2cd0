"""Alarm tone synthesis and playback using numpy + QSoundEffect.

Tones are generated programmatically as WAV files with sine-wave synthesis
and ADSR envelopes, then cached to disk so later launches skip synthesis.

Sound names
-----------
- ``focus_end``      — urgent triple beep, loops until silenced
- ``break_end``      — rising two-note call, loops until silenced
- ``cycle_complete`` — bright arpeggio, loops until silenced
"""

from __future__ import annotations

import io
import wave
from pathlib import Path
from typing import Callable

import numpy as np

from PyQt6.QtCore import QObject, QUrl
from PyQt6.QtMultimedia import QSoundEffect

from ..store.db import APP_DATA_DIR


# ── paths ────────────────────────────────────────────────────────────────

SOUNDS_DIR = APP_DATA_DIR / "sounds"

SOUND_NAMES = (
    "focus_end",
    "break_end",
    "cycle_complete",
)

SAMPLE_RATE = 44100


# ═══════════════════════════════════════════════════════════════════════════
#  WAV SYNTHESIS HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def _make_envelope(
    length: int,
    attack: int = 200,
    decay: int = 400,
    sustain_level: float = 0.7,
    release: int = 800,
) -> np.ndarray:
    """ADSR envelope (all durations in samples)."""
    env = np.ones(length, dtype=np.float64)
    a = min(attack, length)
    if a > 0:
        env[:a] = np.linspace(0.0, 1.0, a)
    d_end = min(a + decay, length)
    if decay > 0 and d_end > a:
        env[a:d_end] = np.linspace(1.0, sustain_level, d_end - a)
    s_end = max(length - release, d_end)
    if s_end > d_end:
        env[d_end:s_end] = sustain_level
    if release > 0 and s_end < length:
        env[s_end:] = np.linspace(sustain_level, 0.0, length - s_end)
    return env


def _sine(freq: float, duration_s: float) -> np.ndarray:
    """Pure sine wave at *freq* Hz for *duration_s* seconds."""
    t = np.linspace(0, duration_s, int(SAMPLE_RATE * duration_s), endpoint=False)
    return np.sin(2 * np.pi * freq * t)


def _silence(duration_s: float) -> np.ndarray:
    return np.zeros(int(SAMPLE_RATE * duration_s))


def _to_wav_bytes(samples: np.ndarray) -> bytes:
    """Convert a float64 numpy array (-1..1) to 16-bit PCM WAV bytes."""
    samples = np.clip(samples, -1.0, 1.0)
    int_samples = (samples * 32767).astype(np.int16)

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(SAMPLE_RATE)
        wf.writeframes(int_samples.tobytes())
    return buf.getvalue()


# ═══════════════════════════════════════════════════════════════════════════
#  SOUND GENERATORS
# ═══════════════════════════════════════════════════════════════════════════


def _generate_triple_beep() -> bytes:
    """Focus end — three sharp 880 Hz beeps, then a pause before looping."""
    beep = _sine(880.0, 0.18) * 0.6
    beep = beep * _make_envelope(len(beep), attack=60, decay=200, sustain_level=0.8, release=300)
    parts: list[np.ndarray] = []
    for _ in range(3):
        parts.append(beep)
        parts.append(_silence(0.12))
    parts.append(_silence(0.6))
    return _to_wav_bytes(np.concatenate(parts))


def _generate_two_note_call() -> bytes:
    """Break end — rising fourth (E5→A5), a nudge back to work."""
    parts: list[np.ndarray] = []
    for freq in (659.25, 880.0):
        tone = _sine(freq, 0.25) * 0.5
        env = _make_envelope(len(tone), attack=100, decay=300, sustain_level=0.6, release=600)
        parts.append(tone * env)
        parts.append(_silence(0.05))
    parts.append(_silence(0.7))
    return _to_wav_bytes(np.concatenate(parts))


def _generate_arpeggio() -> bytes:
    """Cycle complete — bright arpeggio (C5→E5→G5→C6) with a held top note."""
    notes = [523.25, 659.25, 783.99, 1046.50]
    parts: list[np.ndarray] = []
    for i, freq in enumerate(notes):
        if i == len(notes) - 1:
            tone = _sine(freq, 0.45) * 0.5
            env = _make_envelope(len(tone), attack=80, decay=300, sustain_level=0.5, release=800)
        else:
            tone = _sine(freq, 0.10) * 0.5
            env = _make_envelope(len(tone), attack=60, decay=150, sustain_level=0.3, release=200)
        parts.append(tone * env)
        parts.append(_silence(0.02))
    parts.append(_silence(0.8))
    return _to_wav_bytes(np.concatenate(parts))


_GENERATORS: dict[str, Callable[[], bytes]] = {
    "focus_end": _generate_triple_beep,
    "break_end": _generate_two_note_call,
    "cycle_complete": _generate_arpeggio,
}


# ═══════════════════════════════════════════════════════════════════════════
#  ALARM PLAYER
# ═══════════════════════════════════════════════════════════════════════════


class AlarmSounds(QObject):
    """Synthesises, caches and loops the alarm tones.

    Usage::

        sounds = AlarmSounds(parent=self)
        sounds.set_volume(70)
        sounds.start_alarm("focus_end")
        ...
        sounds.stop()
    """

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        sounds_dir: Path | None = None,
    ) -> None:
        super().__init__(parent)
        self._enabled = True
        self._volume = 0.7  # 0.0–1.0
        self._sounds_dir = sounds_dir or SOUNDS_DIR
        self._effects: dict[str, QSoundEffect] = {}
        self._current: QSoundEffect | None = None

        self._ensure_wav_files()
        self._load_effects()

    # ── public API ────────────────────────────────────────────────────

    def set_volume(self, level: int) -> None:
        """Set volume (0-100).  Updates all loaded effects."""
        self._volume = max(0, min(level, 100)) / 100.0
        for effect in self._effects.values():
            effect.setVolume(self._volume)

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        if not enabled:
            self.stop()

    def start_alarm(self, name: str) -> None:
        """Loop a tone until ``stop``.  No-op if disabled or name unknown."""
        self.stop()
        if not self._enabled:
            return
        effect = self._effects.get(name)
        if effect is not None:
            self._current = effect
            effect.play()

    def stop(self) -> None:
        if self._current is not None:
            self._current.stop()
            self._current = None

    @property
    def playing(self) -> bool:
        return self._current is not None

    @property
    def volume(self) -> int:
        """Current volume as 0-100 integer."""
        return round(self._volume * 100)

    @property
    def enabled(self) -> bool:
        return self._enabled

    # ── internal ──────────────────────────────────────────────────────

    def _ensure_wav_files(self) -> None:
        """Generate any missing WAV files to the cache directory."""
        self._sounds_dir.mkdir(parents=True, exist_ok=True)
        for name, gen_fn in _GENERATORS.items():
            path = self._sounds_dir / f"{name}.wav"
            if not path.exists():
                path.write_bytes(gen_fn())

    def _load_effects(self) -> None:
        """Create looping QSoundEffect instances from cached WAV files."""
        for name in SOUND_NAMES:
            path = self._sounds_dir / f"{name}.wav"
            if path.exists():
                effect = QSoundEffect(self)
                effect.setSource(QUrl.fromLocalFile(str(path)))
                effect.setVolume(self._volume)
                effect.setLoopCount(QSoundEffect.Loop.Infinite.value)
                self._effects[name] = effect
