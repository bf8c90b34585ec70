"""Subscribe/emit bridge over the named socket events.

The bridge carries no game logic. Handlers are registered through
``subscribe`` and released through the returned ``Subscription``.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import socketio
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from .errors import TransportError
from .wire import InboundName, OutboundRequest

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class Subscription:
    """Registration of one handler for one event name."""

    def __init__(self, event: str, handler: Handler, release: Callable[["Subscription"], None]):
        self.event = event
        self.handler = handler
        self._release = release
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Deregister the handler. Later calls are no-ops."""
        if not self._active:
            return
        self._active = False
        self._release(self)


class TransportBridge(ABC):
    """Event channel to the game server."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(self, event: str, handler: Handler) -> Subscription:
        subscription = Subscription(event, handler, self._remove)
        self._subscriptions.setdefault(event, []).append(subscription)
        return subscription

    def handler_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._subscriptions.get(event, []))
        return sum(len(items) for items in self._subscriptions.values())

    def send(self, request: OutboundRequest) -> None:
        self.emit(request.name.value, request.payload)

    @abstractmethod
    def emit(self, event: str, payload: Any) -> None:
        """Deliver one outbound event to the server."""

    def _remove(self, subscription: Subscription) -> None:
        handlers = self._subscriptions.get(subscription.event, [])
        if subscription in handlers:
            handlers.remove(subscription)
        if not handlers:
            self._subscriptions.pop(subscription.event, None)

    def _deliver(self, event: str, payload: Any) -> None:
        for subscription in list(self._subscriptions.get(event, [])):
            if subscription.active:
                subscription.handler(payload)


class InMemoryTransport(TransportBridge):
    """Loopback transport that records emits and lets callers inject events."""

    def __init__(self) -> None:
        super().__init__()
        self.emitted: list[tuple[str, Any]] = []

    def emit(self, event: str, payload: Any) -> None:
        self.emitted.append((event, payload))

    def deliver(self, event: str, payload: Any = None) -> None:
        """Push an inbound event as if the server had sent it."""
        self._deliver(event, payload)

    def emitted_names(self) -> list[str]:
        return [name for name, _ in self.emitted]


class SocketIOTransport(TransportBridge):
    """Bridge backed by a ``socketio.AsyncClient`` on the running event loop."""

    def __init__(self, url: str, client: socketio.AsyncClient | None = None):
        super().__init__()
        self.url = url
        self._client = client or socketio.AsyncClient()
        self._pending: set[asyncio.Task[Any]] = set()
        self._client.on("connect", self._on_connect)
        self._client.on("disconnect", self._on_disconnect)
        for name in InboundName:
            self._client.on(name.value, self._relay(name.value))

    @property
    def connected(self) -> bool:
        return bool(self._client.connected)

    async def connect(self) -> None:
        try:
            await self._client.connect(self.url)
        except SocketIOConnectionError as exc:
            raise TransportError(f"Could not connect to {self.url}: {exc}") from exc

    async def disconnect(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._client.disconnect()

    def emit(self, event: str, payload: Any) -> None:
        if not self.connected:
            raise TransportError(f"Cannot emit '{event}': not connected to {self.url}.")
        task = asyncio.get_running_loop().create_task(self._client.emit(event, payload))
        self._pending.add(task)
        task.add_done_callback(self._emit_done)

    def _emit_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Emit failed: %s", task.exception())

    def _relay(self, event: str) -> Callable[..., Any]:
        async def _handler(*args: Any) -> None:
            payload = args[0] if args else None
            self._deliver(event, payload)

        return _handler

    async def _on_connect(self) -> None:
        logger.info("Connected to %s", self.url)

    async def _on_disconnect(self, *args: Any) -> None:
        logger.warning("Disconnected from %s", self.url)
