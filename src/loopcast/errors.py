"""Loopcast exceptions for error handling."""


class LoopcastError(Exception):
    """Base exception for Loopcast operations."""

    pass


class StorageUnavailableError(LoopcastError):
    """Raised when the epoch/catalog store cannot be reached."""

    pass


class StationNotFoundError(LoopcastError):
    """Raised when a station has no epoch configured."""

    def __init__(self, station_id: int, message: str = None):
        self.station_id = station_id
        super().__init__(message or f"Station {station_id} not found")


class NoCurrentTrackError(LoopcastError):
    """Raised when a skip is requested but nothing is on air."""

    pass


class AuthorizationError(LoopcastError):
    """Raised when an admin capability token is missing or invalid.

    ``code`` is one of 'missing_token', 'invalid_token', 'expired_token',
    'invalid_password' or 'rate_limited'. The message never says which part
    of a token failed verification.
    """

    def __init__(self, code: str = "invalid_token"):
        self.code = code
        super().__init__(f"Unauthorized: {code}")


class SnapshotUnavailable(LoopcastError):
    """Raised when a schedule poll fails transiently (network, server error)."""

    pass


class PlaybackRejected(LoopcastError):
    """Raised when the playback engine refuses to start playback."""

    pass
