"""
Exception classes for the endpoint directory system.

All exceptions inherit from DirectoryError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class DirectoryError(Exception):
    """Base exception for all endpoint directory errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DirectoryError):
    """Raised when user or server supplied input fails validation."""

    pass


class EndpointError(ValidationError):
    """Raised when an endpoint address string is malformed."""

    pass


class ParseError(DirectoryError):
    """Raised when builtin or cached directory content cannot be parsed."""

    pass


class StoreError(DirectoryError):
    """Raised when directory files cannot be read, written or removed."""

    pass


class CacheNotFoundError(StoreError):
    """Raised when no cached directory file exists yet."""

    pass


class EmptyResultError(DirectoryError):
    """Raised when a server answers a list request with no usable endpoints."""

    pass


class NoEndpointAvailableError(DirectoryError):
    """Raised when neither an override nor the directory yields an endpoint."""

    pass


class UpdateTimeoutError(DirectoryError):
    """Raised when no server list arrives within the response timeout."""

    pass
