"""
Structured logger for the endpoint directory system.

Every component takes an optional StructuredLogger and reports through it.
Entries are written as JSON lines, as plain text lines, or as both, after
dropping anything below the configured level and masking values whose key
looks like a credential.
"""

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from endpoint_directory.enums import LogLevel


OUTPUT_FORMATS = ("json", "text", "both")


@dataclass
class LogEntry:
    """One emitted log record."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "component": self.component,
            "message": self.message,
            "data": self.data,
        }


class StructuredLogger:
    """
    Leveled logger with JSON and text output.

    Emitted entries are also kept in memory and exposed through ``entries``
    so tests can inspect what a component reported.
    """

    # Substrings of data keys whose values are never written out
    SENSITIVE_KEYS = frozenset({
        'token', 'secret', 'password', 'passphrase', 'auth',
        'authorization', 'credential', 'credentials', 'private_key',
    })

    MASK_VALUE = "***MASKED***"

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        level: LogLevel = LogLevel.INFO,
    ):
        """
        Initialize the logger.

        Args:
            output_format: One of 'json', 'text' or 'both'
            output_stream: Where lines are written, sys.stderr when None
            level: Minimum level that is emitted
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown log output format: {output_format!r}")

        self._output_format = output_format
        self._stream = output_stream or sys.stderr
        self._level = level
        self._entries: list[LogEntry] = []

    @classmethod
    def from_config(cls, level: str, output_format: str,
                    output_stream: Optional[TextIO] = None) -> "StructuredLogger":
        """Build a logger from LoggingConfig values."""
        return cls(
            output_format=output_format,
            output_stream=output_stream,
            level=LogLevel(level.lower()),
        )

    @property
    def output_format(self) -> str:
        return self._output_format

    @property
    def level(self) -> LogLevel:
        return self._level

    @property
    def entries(self) -> list[LogEntry]:
        """Snapshot of the entries emitted so far."""
        return list(self._entries)

    def clear_entries(self) -> None:
        self._entries.clear()

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level.severity >= self._level.severity

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Emit one entry.

        Args:
            level: Severity of the entry
            component: Name of the reporting component
            message: Human-readable message
            data: Structured context, masked before output

        Returns:
            The emitted LogEntry, or None when the level is filtered out
        """
        if not self.is_enabled_for(level):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=self.mask_sensitive_data(data or {}),
        )
        self._entries.append(entry)
        self._write(entry)
        return entry

    def debug(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.DEBUG, component, message, data)

    def info(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.INFO, component, message, data)

    def warn(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.WARN, component, message, data)

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[BaseException] = None,
        additional_data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Emit an ERROR entry describing an exception.

        The exception's text and class name are added to the data, and its
        ``code`` as well for DirectoryError subclasses.
        """
        data = dict(additional_data or {})
        if error is not None:
            data.update(
                error_message=str(error),
                error_type=type(error).__name__,
            )
            if getattr(error, "code", None) is not None:
                data["error_code"] = error.code
        return self.log(LogLevel.ERROR, component, message, data)

    def mask_sensitive_data(self, data: dict) -> dict:
        """Return a copy of data with credential-like values replaced."""
        if not isinstance(data, dict):
            return data
        return {
            key: self.MASK_VALUE if self._is_sensitive(key) else self._mask_value(value)
            for key, value in data.items()
        }

    def _mask_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self.mask_sensitive_data(value)
        if isinstance(value, (list, tuple)):
            return [self._mask_value(item) for item in value]
        return value

    def _is_sensitive(self, key: Any) -> bool:
        lowered = str(key).lower()
        return any(marker in lowered for marker in self.SENSITIVE_KEYS)

    def format_json(self, entry: LogEntry) -> str:
        return json.dumps(entry.to_dict(), ensure_ascii=False, default=str)

    def format_text(self, entry: LogEntry) -> str:
        """Render ``[timestamp] LEVEL [component] message {data}``."""
        line = f"[{entry.timestamp}] {entry.level.value.upper()} [{entry.component}] {entry.message}"
        if entry.data:
            line += " " + json.dumps(entry.data, ensure_ascii=False, default=str)
        return line

    def _write(self, entry: LogEntry) -> None:
        lines = []
        if self._output_format != "text":
            lines.append(self.format_json(entry))
        if self._output_format != "json":
            lines.append(self.format_text(entry))
        self._stream.write("".join(line + "\n" for line in lines))
        self._stream.flush()
