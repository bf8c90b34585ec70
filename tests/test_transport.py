"""Transport bridge subscription handling and the socket.io adapter."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from turing_client.errors import TransportError
from turing_client.transport import InMemoryTransport, SocketIOTransport
from turing_client.wire import InboundName, join_lobby
from turing_client.state import Role


class _FakeAsyncClient:
    """Stand-in for ``socketio.AsyncClient`` that records calls."""

    def __init__(self, fail_connect: bool = False) -> None:
        self.handlers: dict[str, Any] = {}
        self.emitted: list[tuple[str, Any]] = []
        self.connected = False
        self.fail_connect = fail_connect

    def on(self, event: str, handler: Any) -> None:
        self.handlers[event] = handler

    async def connect(self, url: str) -> None:
        if self.fail_connect:
            raise SocketIOConnectionError("refused")
        self.connected = True

    async def emit(self, event: str, payload: Any) -> None:
        self.emitted.append((event, payload))

    async def disconnect(self) -> None:
        self.connected = False


def test_cancel_is_idempotent() -> None:
    transport = InMemoryTransport()
    received: list[Any] = []
    first = transport.subscribe("matchFound", received.append)
    transport.subscribe("matchFound", received.append)

    first.cancel()
    first.cancel()

    assert not first.active
    assert transport.handler_count("matchFound") == 1
    transport.deliver("matchFound", {"sessionId": "s"})
    assert received == [{"sessionId": "s"}]


def test_send_uses_request_name_and_payload() -> None:
    transport = InMemoryTransport()
    transport.send(join_lobby(Role.TESTER))
    assert transport.emitted == [("joinLobby", {"role": "tester"})]
    assert transport.emitted_names() == ["joinLobby"]


def test_socketio_registers_every_inbound_event_and_relays() -> None:
    client = _FakeAsyncClient()
    transport = SocketIOTransport("http://game.test", client=client)  # type: ignore[arg-type]
    received: list[Any] = []
    transport.subscribe("gameEnd", received.append)

    for name in InboundName:
        assert name.value in client.handlers
    assert "connect" in client.handlers and "disconnect" in client.handlers

    asyncio.run(client.handlers["gameEnd"]({"reason": "timeout"}))
    assert received == [{"reason": "timeout"}]


def test_socketio_emit_requires_connection() -> None:
    transport = SocketIOTransport("http://game.test", client=_FakeAsyncClient())  # type: ignore[arg-type]
    with pytest.raises(TransportError):
        transport.emit("joinLobby", {"role": "tester"})


def test_socketio_emits_on_the_running_loop() -> None:
    client = _FakeAsyncClient()
    transport = SocketIOTransport("http://game.test", client=client)  # type: ignore[arg-type]

    async def scenario() -> None:
        await transport.connect()
        transport.send(join_lobby(Role.TESTED_PERSON))
        await transport.disconnect()

    asyncio.run(scenario())
    assert client.emitted == [("joinLobby", {"role": "tested person"})]
    assert not transport.connected


def test_socketio_connect_failure_is_wrapped() -> None:
    transport = SocketIOTransport("http://game.test", client=_FakeAsyncClient(fail_connect=True))  # type: ignore[arg-type]
    with pytest.raises(TransportError, match="Could not connect"):
        asyncio.run(transport.connect())


def test_asyncio_client_backend_is_available() -> None:
    import aiohttp

    assert aiohttp.ClientSession is not None
