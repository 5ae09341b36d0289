"""
Directory: a timestamped, ordered collection of endpoints.

Directories are serialized as flat ``KEY=VALUE`` text, one ``server.N``
key per endpoint (1-based, in preference order) plus a ``timestamp`` key.
The same format is used for the bundled default list and the cache file.
Unknown keys are ignored so that newer writers can add fields.
"""

import io
import random
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Iterator, Mapping, Optional, Union

from dotenv import dotenv_values

from endpoint_directory.endpoint import Endpoint
from endpoint_directory.exceptions import EndpointError, ParseError


TIMESTAMP_KEY = "timestamp"
SERVER_KEY_PREFIX = "server."

_SERVER_KEY_PATTERN = re.compile(r"^server\.(\d+)$")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _normalize_timestamp(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def format_timestamp(value: datetime) -> str:
    """Format a directory timestamp as ISO-8601 UTC with second precision."""
    return _normalize_timestamp(value).isoformat()


def parse_timestamp(raw: str) -> datetime:
    """
    Parse a serialized directory timestamp.

    Raises:
        ValueError: If the value is not an ISO-8601 date/time
        OverflowError: If the value falls outside the UTC date range
    """
    value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    return _normalize_timestamp(value)


@dataclass(frozen=True)
class Directory:
    """Ordered endpoints plus the moment the list became authoritative."""

    endpoints: tuple[Endpoint, ...]
    timestamp: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "endpoints", tuple(self.endpoints))
        object.__setattr__(self, "timestamp", _normalize_timestamp(self.timestamp))

    @classmethod
    def create(
        cls,
        endpoints: Iterable[Endpoint],
        timestamp: Optional[datetime] = None,
    ) -> "Directory":
        """Build a directory, stamped now unless a timestamp is given."""
        return cls(
            endpoints=tuple(endpoints),
            timestamp=timestamp if timestamp is not None else _utc_now(),
        )

    def __len__(self) -> int:
        return len(self.endpoints)

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(self.endpoints)

    def is_newer_than(self, other: "Directory") -> bool:
        """Strict timestamp comparison."""
        return self.timestamp > other.timestamp

    def pick_random(self, rng: Optional[random.Random] = None) -> Optional[Endpoint]:
        """Uniformly choose an endpoint, or None when the directory is empty."""
        if not self.endpoints:
            return None
        return (rng or random).choice(self.endpoints)

    def to_properties(self) -> dict[str, str]:
        """Key/value view of this directory."""
        props = {TIMESTAMP_KEY: format_timestamp(self.timestamp)}
        for index, endpoint in enumerate(self.endpoints, start=1):
            props[f"{SERVER_KEY_PREFIX}{index}"] = str(endpoint)
        return props

    @classmethod
    def from_properties(cls, props: Mapping[str, Optional[str]]) -> "Directory":
        """
        Build a directory from its key/value view.

        Raises:
            ParseError: If the timestamp is missing or malformed, or an
                endpoint string is invalid
        """
        raw_timestamp = props.get(TIMESTAMP_KEY)
        if not raw_timestamp:
            raise ParseError(
                code="missing_timestamp",
                message="Directory has no timestamp",
                details={"keys": sorted(props)},
            )
        try:
            timestamp = parse_timestamp(raw_timestamp)
        except (ValueError, OverflowError) as e:
            raise ParseError(
                code="invalid_timestamp",
                message=f"Malformed directory timestamp: {raw_timestamp!r}",
                details={"timestamp": raw_timestamp, "reason": str(e)},
            )

        numbered = []
        for key, value in props.items():
            match = _SERVER_KEY_PATTERN.match(key)
            if match is None:
                continue
            try:
                endpoint = Endpoint.parse(value or "")
            except EndpointError as e:
                raise ParseError(
                    code="invalid_endpoint",
                    message=f"Invalid endpoint for {key}: {e.message}",
                    details={"key": key, "value": value, "endpoint_error": e.code},
                )
            numbered.append((int(match.group(1)), endpoint))

        numbered.sort(key=lambda item: item[0])
        return cls(
            endpoints=tuple(endpoint for _, endpoint in numbered),
            timestamp=timestamp,
        )

    def serialize(self) -> bytes:
        """Serialize to the flat text format."""
        lines = [f"# endpoint directory, {len(self.endpoints)} server(s)"]
        lines.extend(f"{key}={value}" for key, value in self.to_properties().items())
        return ("\n".join(lines) + "\n").encode("utf-8")

    @classmethod
    def parse(cls, data: Union[bytes, str]) -> "Directory":
        """
        Deserialize the flat text format.

        Raises:
            ParseError: If the content is not UTF-8 text or does not hold a
                valid directory
        """
        if isinstance(data, bytes):
            try:
                text = data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ParseError(
                    code="invalid_encoding",
                    message=f"Directory content is not UTF-8: {e}",
                    details={},
                )
        else:
            text = data

        props = dotenv_values(stream=io.StringIO(text), interpolate=False)
        return cls.from_properties(props)
