"""
Directory Updater: one refresh cycle of the endpoint directory.

A cycle picks a server from the current directory (or the configured
override), checks that the network is usable, asks the connection layer
to connect, requests the server list once connected, and persists the
answer. Every cycle ends with exactly one listener callback:

- ``no_data()``: nothing to contact
- ``network_not_available()``: the network probe failed
- ``offline_mode_enabled()``: the user asked to stay offline
- ``error(cause)``: empty answer, write failure, connect failure or timeout
- ``updated(directory)``: the new directory is on disk and in the cache

There is no retry; the caller decides when to run the next cycle.
"""

import asyncio
from abc import abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

from .config import UpdaterConfig
from .directory import Directory
from .directory_cache import DirectoryCache
from .endpoint import Endpoint
from .enums import DeliveryMode, DirectorySource, LogLevel, UpdateOutcome, UpdaterState
from .events import Connected, EventBus, ListReceived, ListRequest, Subscription
from .exceptions import EmptyResultError, EndpointError, StoreError, UpdateTimeoutError
from .logger import StructuredLogger
from .network import ConnectionService, NetworkOracle
from .resolver import resolve_endpoint


@runtime_checkable
class UpdaterListener(Protocol):
    """Receives the outcome of a refresh cycle."""

    @abstractmethod
    def no_data(self) -> None:
        """Called when there is no endpoint to contact."""
        ...

    @abstractmethod
    def network_not_available(self) -> None:
        """Called when the network is not available."""
        ...

    @abstractmethod
    def offline_mode_enabled(self) -> None:
        """Called when offline mode is active."""
        ...

    @abstractmethod
    def error(self, cause: Optional[BaseException]) -> None:
        """Called if an error occurs during the update."""
        ...

    @abstractmethod
    def updated(self, directory: Directory) -> None:
        """Called when the new directory has been stored."""
        ...


@dataclass
class UpdateResult:
    """Outcome of one refresh cycle."""

    outcome: UpdateOutcome
    directory: Optional[Directory] = None
    error: Optional[BaseException] = None
    endpoint: Optional[Endpoint] = None
    requests_sent: int = 0


_ACTIVE_STATES = frozenset({
    UpdaterState.PRECONDITION_CHECK,
    UpdaterState.AWAITING_CONNECTION,
    UpdaterState.REQUEST_SENT,
})


class DirectoryUpdater:
    """
    Runs refresh cycles against an event-driven connection layer.

    Only one cycle runs at a time: calling ``start()`` while a cycle is
    pending returns the pending cycle's future and changes nothing.
    """

    COMPONENT = "DirectoryUpdater"

    def __init__(
        self,
        cache: DirectoryCache,
        bus: EventBus,
        connection: ConnectionService,
        oracle: NetworkOracle,
        config: Optional[UpdaterConfig] = None,
        listener: Optional[UpdaterListener] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Initialize the updater.

        Args:
            cache: Directory cache to resolve from and update
            bus: Event bus shared with the connection layer
            connection: Connection layer to start
            oracle: Network availability and offline mode oracle
            config: Updater configuration (timeout, server override)
            listener: Optional outcome listener
            logger: Optional logger
        """
        self._cache = cache
        self._bus = bus
        self._connection = connection
        self._oracle = oracle
        self._config = config or UpdaterConfig()
        self._listener = listener
        self._logger = logger

        self._state = UpdaterState.IDLE
        self._session: Optional[asyncio.Future] = None
        self._subscriptions: list[Subscription] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        self._endpoint: Optional[Endpoint] = None
        self._requests_sent = 0

    def set_listener(self, listener: Optional[UpdaterListener]) -> None:
        self._listener = listener

    @property
    def state(self) -> UpdaterState:
        return self._state

    @property
    def is_active(self) -> bool:
        """True while a cycle is pending."""
        return self._state in _ACTIVE_STATES

    @property
    def is_subscribed(self) -> bool:
        return bool(self._subscriptions)

    async def start(self) -> "asyncio.Future[UpdateResult]":
        """
        Begin a refresh cycle.

        Returns once the preconditions are checked and the connection has
        been requested; the outcome arrives later through the listener and
        the returned future.

        Returns:
            Future resolved with the cycle's UpdateResult
        """
        if self.is_active and self._session is not None:
            self._log(LogLevel.DEBUG, "Refresh already in progress", {"state": self._state.value})
            return self._session

        loop = asyncio.get_running_loop()
        session = loop.create_future()
        self._session = session
        self._state = UpdaterState.PRECONDITION_CHECK
        self._endpoint = None
        self._requests_sent = 0

        # Step 1: something to contact
        endpoint = resolve_endpoint(
            self._config.endpoint_override,
            self._cache.current(),
            logger=self._logger,
        )
        if endpoint is None:
            self._log(LogLevel.INFO, "No directory to pick a server from, aborting", {})
            self._finish(session, UpdateOutcome.NO_DATA, lambda listener: listener.no_data())
            return session
        self._endpoint = endpoint

        # Step 2: network
        available = await self._oracle.is_network_available()
        if session.done():
            # cancelled while probing
            return session
        if not available:
            self._log(LogLevel.INFO, "Network not available", {})
            self._finish(
                session,
                UpdateOutcome.NETWORK_NOT_AVAILABLE,
                lambda listener: listener.network_not_available(),
            )
            return session

        # Step 3: offline mode
        if self._oracle.is_offline_mode_enabled():
            self._log(LogLevel.INFO, "Offline mode enabled", {})
            self._finish(
                session,
                UpdateOutcome.OFFLINE_MODE,
                lambda listener: listener.offline_mode_enabled(),
            )
            return session

        # Step 4: subscribe before connecting so no Connected event is lost
        self._subscriptions = [
            self._bus.subscribe(
                Connected,
                self._on_connected,
                mode=DeliveryMode.BACKGROUND,
                sticky=True,
            ),
            self._bus.subscribe(
                ListReceived,
                self._on_list_received,
                mode=DeliveryMode.ORDERED,
            ),
        ]
        self._state = UpdaterState.AWAITING_CONNECTION
        self._timer = loop.call_later(
            self._config.response_timeout_seconds,
            self._on_timeout,
        )

        # Step 5: connect, without waiting
        self._log(
            LogLevel.INFO,
            "Requesting server list",
            {"endpoint": str(endpoint), "timeout_seconds": self._config.response_timeout_seconds},
        )
        try:
            self._connection.start(endpoint)
        except Exception as e:
            if self._logger:
                self._logger.log_error(self.COMPONENT, "Connection layer failed to start", e)
            self._finish(session, UpdateOutcome.ERROR, lambda listener: listener.error(e), error=e)

        return session

    def cancel(self) -> None:
        """
        Stop handling events for the pending cycle, if any.

        Does not abort a connection attempt or a cache write already under
        way, and notifies no listener.
        """
        self._release()
        if self._session is not None and not self._session.done():
            self._session.cancel()
            self._log(LogLevel.INFO, "Refresh cancelled", {"state": self._state.value})
        if self.is_active:
            self._state = UpdaterState.IDLE

    def _on_connected(self, event: Connected) -> None:
        if not self.is_active:
            return
        self._state = UpdaterState.REQUEST_SENT
        self._requests_sent += 1
        self._log(
            LogLevel.DEBUG,
            "Connected, requesting server list",
            {"endpoint": event.endpoint, "request": self._requests_sent},
        )
        self._bus.post(ListRequest(target=None))

    async def _on_list_received(self, event: ListReceived) -> None:
        # One-shot: later list events must not reach this cycle
        self._release()
        if not self.is_active:
            return
        session = self._session

        if not event.servers:
            error = EmptyResultError(
                code="empty_list",
                message="Server returned an empty endpoint list",
            )
            self._log(LogLevel.WARN, error.message, {})
            self._finish(session, UpdateOutcome.ERROR, lambda listener: listener.error(error), error=error)
            return

        directory = self._build_directory(event.servers)
        if len(directory) == 0:
            error = EmptyResultError(
                code="no_valid_endpoints",
                message="Server returned no valid endpoints",
                details={"received": len(event.servers)},
            )
            self._log(LogLevel.WARN, error.message, error.details)
            self._finish(session, UpdateOutcome.ERROR, lambda listener: listener.error(error), error=error)
            return

        try:
            await asyncio.to_thread(self._cache.store.save_cached, directory)
        except StoreError as e:
            if self._logger:
                self._logger.log_error(self.COMPONENT, "Unable to store server list", e)
            self._finish(session, UpdateOutcome.ERROR, lambda listener: listener.error(e), error=e)
            return

        # Disk and memory must agree, even if cancelled during the write
        self._cache.replace(directory, DirectorySource.DOWNLOADED)
        self._finish(
            session,
            UpdateOutcome.UPDATED,
            lambda listener: listener.updated(directory),
            directory=directory,
        )

    def _on_timeout(self) -> None:
        self._timer = None
        if not self.is_active:
            return
        session = self._session
        error = UpdateTimeoutError(
            code="timeout",
            message="No server list received in time",
            details={
                "timeout_seconds": self._config.response_timeout_seconds,
                "requests_sent": self._requests_sent,
            },
        )
        self._log(LogLevel.WARN, error.message, error.details)
        self._finish(session, UpdateOutcome.TIMEOUT, lambda listener: listener.error(error), error=error)

    def _build_directory(self, servers: tuple[str, ...]) -> Directory:
        endpoints = []
        for item in servers:
            try:
                endpoints.append(Endpoint.parse(item))
            except EndpointError as e:
                self._log(
                    LogLevel.WARN,
                    "Skipping malformed endpoint",
                    {"value": item, "error_code": e.code},
                )
        return Directory.create(endpoints)

    def _release(self) -> None:
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions = []
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _finish(
        self,
        session: Optional[asyncio.Future],
        outcome: UpdateOutcome,
        notify: Callable[[UpdaterListener], None],
        directory: Optional[Directory] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        # A cycle cancelled mid-write must not touch the cycle started after it
        if session is None or session is not self._session or session.done():
            return
        self._release()

        self._state = (
            UpdaterState.COMPLETED if outcome is UpdateOutcome.UPDATED else UpdaterState.FAILED
        )
        session.set_result(UpdateResult(
            outcome=outcome,
            directory=directory,
            error=error,
            endpoint=self._endpoint,
            requests_sent=self._requests_sent,
        ))

        if self._listener is None:
            return
        try:
            notify(self._listener)
        except Exception as e:
            if self._logger:
                self._logger.log_error(self.COMPONENT, "Listener raised", e, {"outcome": outcome.value})
            else:
                asyncio.get_running_loop().call_exception_handler({
                    "message": "Updater listener raised",
                    "exception": e,
                })

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        """Log a message if logger is available."""
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)
