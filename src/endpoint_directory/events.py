"""
Transport events and the event bus that carries them.

The connection layer posts ``Connected`` and ``ListReceived`` events; the
updater posts ``ListRequest``. Subscribers get a Subscription handle back
and release it with ``close()`` (or by leaving a ``with`` block).

Delivery happens on the bus's event loop, never inside ``post()``:
- BACKGROUND subscriptions get each event as an independent task, so
  deliveries may overlap and arrive more than once.
- ORDERED subscriptions get events one at a time, in post order. A
  subscription closed while events are queued receives none of them.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .enums import DeliveryMode
from .logger import StructuredLogger


@dataclass(frozen=True)
class Connected:
    """The connection layer reached a server."""

    endpoint: Optional[str] = None


@dataclass(frozen=True)
class ListReceived:
    """A server answered a list request."""

    servers: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "servers", tuple(self.servers or ()))


@dataclass(frozen=True)
class ListRequest:
    """Ask the connected server for its endpoint list."""

    target: Optional[str] = None  # None: whichever server answers


Handler = Callable[[Any], Any]


class Subscription:
    """Handle for one registered handler."""

    def __init__(
        self,
        bus: "EventBus",
        event_type: type,
        handler: Handler,
        mode: DeliveryMode,
    ) -> None:
        self._bus = bus
        self.event_type = event_type
        self.handler = handler
        self.mode = mode
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, event: Any) -> bool:
        return self._active and isinstance(event, self.event_type)

    def close(self) -> None:
        """Unsubscribe; safe to call more than once."""
        if self._active:
            self._active = False
            self._bus._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class EventBus:
    """
    Asyncio event bus with sticky events.

    ``post`` must be called on the loop thread; other threads use
    ``post_threadsafe``. A bus serves one event loop at a time: the first
    subscribe or post on another loop moves it there and drops deliveries
    still queued on the previous one.
    """

    COMPONENT = "EventBus"

    def __init__(self, logger: Optional[StructuredLogger] = None) -> None:
        self._logger = logger
        self._subscriptions: list[Subscription] = []
        self._sticky: dict[type, Any] = {}
        self._ordered_lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def subscription_count(self) -> int:
        """Number of live subscriptions."""
        return len(self._subscriptions)

    def subscribe(
        self,
        event_type: type,
        handler: Handler,
        mode: DeliveryMode = DeliveryMode.ORDERED,
        sticky: bool = False,
    ) -> Subscription:
        """
        Register a handler for an event type (and its subclasses).

        Must be called from a running event loop, which becomes the loop
        deliveries run on.

        Args:
            event_type: Event class to receive
            handler: Plain function or coroutine function taking the event
            mode: Delivery mode
            sticky: Also deliver the last sticky event of this type, if any

        Returns:
            Subscription handle
        """
        self._bind_loop()
        subscription = Subscription(self, event_type, handler, mode)
        self._subscriptions.append(subscription)

        if sticky:
            for sticky_type, event in list(self._sticky.items()):
                if issubclass(sticky_type, event_type):
                    self._schedule(subscription, event)

        return subscription

    def post(self, event: Any) -> None:
        """Queue an event for every matching subscription."""
        for subscription in list(self._subscriptions):
            if subscription.matches(event):
                self._schedule(subscription, event)

    def post_sticky(self, event: Any) -> None:
        """Post an event and keep it for later sticky subscribers."""
        self._sticky[type(event)] = event
        self.post(event)

    def remove_sticky(self, event_type: type) -> Optional[Any]:
        """Forget the sticky event of a type, returning it."""
        return self._sticky.pop(event_type, None)

    def get_sticky(self, event_type: type) -> Optional[Any]:
        return self._sticky.get(event_type)

    def post_threadsafe(self, event: Any, sticky: bool = False) -> None:
        """Hand an event over from a thread other than the loop's."""
        if self._loop is None:
            raise RuntimeError("EventBus has no subscribers bound to an event loop")
        target = self.post_sticky if sticky else self.post
        self._loop.call_soon_threadsafe(target, event)

    async def flush(self) -> None:
        """Wait until every queued delivery, including follow-ups, is done."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _bind_loop(self) -> asyncio.AbstractEventLoop:
        loop = asyncio.get_running_loop()
        if loop is not self._loop:
            if self._loop is not None and self._logger:
                self._logger.debug(
                    self.COMPONENT,
                    "Moving to a new event loop",
                    {"dropped_deliveries": sum(1 for task in self._pending if not task.done())},
                )
            self._loop = loop
            self._ordered_lock = asyncio.Lock()
            self._pending = set()
        return loop

    def _schedule(self, subscription: Subscription, event: Any) -> None:
        loop = self._bind_loop()
        task = loop.create_task(self._deliver(subscription, event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, subscription: Subscription, event: Any) -> None:
        if subscription.mode is DeliveryMode.ORDERED:
            async with self._ordered_lock:
                await self._invoke(subscription, event)
        else:
            await self._invoke(subscription, event)

    async def _invoke(self, subscription: Subscription, event: Any) -> None:
        if not subscription.active:
            return
        try:
            result = subscription.handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            message = f"Handler for {type(event).__name__} raised"
            if self._logger:
                self._logger.log_error(self.COMPONENT, message, e)
            else:
                asyncio.get_running_loop().call_exception_handler({
                    "message": message,
                    "exception": e,
                })
