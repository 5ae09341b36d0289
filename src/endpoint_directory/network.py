"""
Network collaborators of the directory updater.

Defines the connection service and network oracle interfaces, plus an
oracle that decides reachability by probing a well-known URL over HTTPS.
"""

import time
from abc import abstractmethod
from typing import Optional, Protocol, runtime_checkable

import httpx

from .config import NetworkConfig
from .endpoint import Endpoint
from .enums import LogLevel
from .logger import StructuredLogger


@runtime_checkable
class ConnectionService(Protocol):
    """Protocol for the layer that connects to servers."""

    @abstractmethod
    def start(self, endpoint: Endpoint) -> None:
        """
        Begin connecting to an endpoint.

        Must return without waiting for the connection. Success is announced
        by posting a Connected event on the shared event bus.
        """
        ...


@runtime_checkable
class NetworkOracle(Protocol):
    """Protocol answering the updater's precondition questions."""

    @abstractmethod
    async def is_network_available(self) -> bool:
        """Return True if the network can be reached at all."""
        ...

    @abstractmethod
    def is_offline_mode_enabled(self) -> bool:
        """Return True if the user asked the client to stay offline."""
        ...


class HttpNetworkOracle:
    """
    Network oracle backed by an HTTP probe.

    Any HTTP response from the probe URL, whatever its status, means the
    network is up; a transport level failure means it is not.
    """

    COMPONENT = "NetworkOracle"

    def __init__(
        self,
        config: NetworkConfig,
        logger: Optional[StructuredLogger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the oracle.

        Args:
            config: Network configuration (probe URL, timeout, offline flag)
            logger: Optional logger
            transport: Optional httpx transport, e.g. a MockTransport in tests
        """
        self._config = config
        self._logger = logger
        self._transport = transport
        self._offline_mode = config.offline_mode

    def set_offline_mode(self, enabled: bool) -> None:
        self._offline_mode = enabled

    def is_offline_mode_enabled(self) -> bool:
        return self._offline_mode

    async def is_network_available(self) -> bool:
        """Probe the configured URL once."""
        start_time = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.probe_timeout_seconds),
                follow_redirects=False,
                transport=self._transport,
            ) as client:
                response = await client.head(self._config.probe_url)
        except httpx.TransportError as e:
            self._log(
                LogLevel.INFO,
                "Network probe failed",
                {
                    "probe_url": self._config.probe_url,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            return False

        self._log(
            LogLevel.DEBUG,
            "Network probe answered",
            {
                "probe_url": self._config.probe_url,
                "status_code": response.status_code,
                "response_time_ms": (time.perf_counter() - start_time) * 1000,
            },
        )
        return True

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)
