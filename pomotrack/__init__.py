"""PomoTrack: a deadline-based Pomodoro timer that survives restarts."""

__version__ = "0.1.0"
