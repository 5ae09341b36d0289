"""
Endpoint value object.

An endpoint is written as ``[network|]host[:port]``: the optional network
part names the service domain the server belongs to (it defaults to the
host), the port defaults to DEFAULT_PORT. Hosts are normalized to their
lowercase ASCII form so that equal addresses compare equal.
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Optional

import idna

from endpoint_directory.exceptions import EndpointError


DEFAULT_PORT = 5222

NETWORK_SEPARATOR = "|"

# RFC 1123 label: alphanumeric, inner hyphens allowed, 1-63 chars
_LABEL_PATTERN = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")

_MAX_HOST_LENGTH = 253


def normalize_host(raw_host: str) -> str:
    """
    Convert a host to its canonical form.

    Args:
        raw_host: Hostname, IPv4 literal, or bracketed IPv6 literal

    Returns:
        Lowercase ASCII host (IDNA-encoded if needed, brackets kept for IPv6)

    Raises:
        EndpointError: If the host is not a valid hostname or IP literal
    """
    host = raw_host.strip().lower()
    if not host:
        raise EndpointError(
            code="empty_host",
            message="Endpoint host is empty",
            details={"host": raw_host},
        )

    if host.startswith("["):
        if not host.endswith("]"):
            raise EndpointError(
                code="invalid_host",
                message=f"Unterminated IPv6 literal: {raw_host}",
                details={"host": raw_host},
            )
        try:
            address = ipaddress.IPv6Address(host[1:-1])
        except ValueError as e:
            raise EndpointError(
                code="invalid_host",
                message=f"Invalid IPv6 literal: {raw_host}",
                details={"host": raw_host, "reason": str(e)},
            )
        return f"[{address.compressed}]"

    if host.endswith("."):
        host = host[:-1]

    if any(ord(c) > 127 for c in host):
        try:
            host = idna.encode(host, uts46=True).decode("ascii")
        except idna.IDNAError as e:
            raise EndpointError(
                code="idna_error",
                message=f"IDNA encoding failed: {e}",
                details={"host": raw_host, "idna_error": str(e)},
            )

    if len(host) > _MAX_HOST_LENGTH:
        raise EndpointError(
            code="invalid_host",
            message="Endpoint host is too long",
            details={"host": raw_host, "length": len(host)},
        )

    labels = host.split(".")
    if not all(_LABEL_PATTERN.match(label) for label in labels):
        raise EndpointError(
            code="invalid_host",
            message=f"Invalid endpoint host: {raw_host}",
            details={"host": raw_host},
        )

    # All-numeric dotted names are IPv4 literals, never DNS names
    if all(label.isdigit() for label in labels):
        try:
            return str(ipaddress.IPv4Address(host))
        except ValueError as e:
            raise EndpointError(
                code="invalid_host",
                message=f"Invalid IPv4 literal: {raw_host}",
                details={"host": raw_host, "reason": str(e)},
            )

    return host


def _parse_port(raw_port: str, address: str) -> int:
    if not (raw_port.isascii() and raw_port.isdigit()):
        raise EndpointError(
            code="invalid_port",
            message=f"Invalid port in endpoint: {address}",
            details={"address": address, "port": raw_port},
        )
    port = int(raw_port)
    if not 1 <= port <= 65535:
        raise EndpointError(
            code="invalid_port",
            message=f"Port out of range in endpoint: {address}",
            details={"address": address, "port": port},
        )
    return port


@dataclass(frozen=True)
class Endpoint:
    """One candidate server address a client may connect to."""

    host: str
    port: int = DEFAULT_PORT
    network: Optional[str] = None

    def __post_init__(self) -> None:
        # Normalize here too so directly constructed endpoints are validated
        object.__setattr__(self, "host", normalize_host(self.host))
        if not isinstance(self.port, int) or isinstance(self.port, bool):
            raise EndpointError(
                code="invalid_port",
                message=f"Port must be an integer: {self.port!r}",
                details={"port": repr(self.port)},
            )
        if not 1 <= self.port <= 65535:
            raise EndpointError(
                code="invalid_port",
                message=f"Port out of range: {self.port}",
                details={"port": self.port},
            )
        network = normalize_host(self.network) if self.network else self.host
        object.__setattr__(self, "network", network)

    @classmethod
    def parse(cls, address: str) -> "Endpoint":
        """
        Parse an ``[network|]host[:port]`` address.

        Args:
            address: The endpoint address string

        Returns:
            The validated Endpoint

        Raises:
            EndpointError: If the address is malformed
        """
        if not isinstance(address, str) or not address.strip():
            raise EndpointError(
                code="empty_address",
                message="Endpoint address is empty",
                details={"address": address},
            )

        rest = address.strip()
        network = None
        if NETWORK_SEPARATOR in rest:
            network, rest = rest.split(NETWORK_SEPARATOR, 1)
            if not network:
                raise EndpointError(
                    code="invalid_network",
                    message=f"Empty network in endpoint: {address}",
                    details={"address": address},
                )

        port = DEFAULT_PORT
        if rest.startswith("["):
            # [v6]:port
            closing = rest.find("]")
            if closing < 0:
                raise EndpointError(
                    code="invalid_host",
                    message=f"Unterminated IPv6 literal: {address}",
                    details={"address": address},
                )
            host = rest[:closing + 1]
            tail = rest[closing + 1:]
            if tail:
                if not tail.startswith(":"):
                    raise EndpointError(
                        code="invalid_address",
                        message=f"Unexpected text after host: {address}",
                        details={"address": address},
                    )
                port = _parse_port(tail[1:], address)
        elif ":" in rest:
            host, raw_port = rest.rsplit(":", 1)
            port = _parse_port(raw_port, address)
        else:
            host = rest

        return cls(host=host, port=port, network=network)

    @property
    def address(self) -> str:
        """The ``host:port`` pair to open a socket to."""
        return f"{self.host}:{self.port}"

    def __str__(self) -> str:
        if self.network == self.host:
            return self.address
        return f"{self.network}{NETWORK_SEPARATOR}{self.address}"
