"""
Enumeration types for the endpoint directory system.

These enums provide type-safe constants for log levels, updater states,
refresh outcomes, and event delivery modes.
"""

from enum import Enum


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def severity(self) -> int:
        """Numeric severity used for level filtering."""
        return _SEVERITY[self]


_SEVERITY = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}


class DirectorySource(Enum):
    """Where the currently held directory came from."""

    BUILTIN = "builtin"
    CACHED = "cached"
    DOWNLOADED = "downloaded"


class UpdaterState(Enum):
    """Lifecycle of a single refresh cycle."""

    IDLE = "idle"
    PRECONDITION_CHECK = "precondition_check"
    AWAITING_CONNECTION = "awaiting_connection"
    REQUEST_SENT = "request_sent"
    COMPLETED = "completed"
    FAILED = "failed"


class UpdateOutcome(Enum):
    """Terminal outcome of a refresh cycle."""

    UPDATED = "updated"
    NO_DATA = "no_data"
    NETWORK_NOT_AVAILABLE = "network_not_available"
    OFFLINE_MODE = "offline_mode"
    ERROR = "error"
    TIMEOUT = "timeout"


class DeliveryMode(Enum):
    """How the event bus hands an event to a subscriber."""

    BACKGROUND = "background"  # independent task, may overlap
    ORDERED = "ordered"  # one at a time, in post order
