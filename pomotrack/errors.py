"""Exception types raised by PomoTrack."""


class PomoTrackError(Exception):
    """Base exception for PomoTrack."""


class InvalidConfig(PomoTrackError, ValueError):
    """Raised when a duration or round count is not a positive integer."""


class StorageUnavailable(PomoTrackError):
    """Raised when the durable store cannot be read or written."""


class UnknownCommand(PomoTrackError):
    """Raised when a command name is not one the engine understands."""
