"""Error types raised by the walk tracker.

Storage read failures never escape the stores (they fall back to
defaults); everything here is meant to reach the caller.
"""


class WalkTrackError(Exception):
    """Base class for walk tracker errors."""


class PositionError(WalkTrackError):
    """The position source could not deliver a fix."""


class PermissionDenied(PositionError):
    """Access to the device location was refused."""


class Unavailable(PositionError):
    """No position fix could be obtained."""


class ValidationError(WalkTrackError, ValueError):
    def __init__(self, message: str, value=None):
        super().__init__(message)
        self.value = value


class PersistenceError(WalkTrackError):
    """A durable read or write failed.

    When raised from `TrackingEngine.stop()`, `session` holds the walk that
    was recorded in memory but could not be written.
    """

    def __init__(self, message: str, session=None):
        super().__init__(message)
        self.session = session


class EmptyPathError(WalkTrackError):
    """Export requested for a path with no recorded points."""
