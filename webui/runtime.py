"""Process-wide holder for the session context served by the web API."""

from __future__ import annotations

import logging

from turing_client.config import ClientConfig
from turing_client.controller import SessionController
from turing_client.errors import ClientError
from turing_client.transport import SocketIOTransport

logger = logging.getLogger(__name__)


class ClientRuntime:
    """Owns the socket transport and the session controller for one process."""

    def __init__(self, config: ClientConfig | None = None) -> None:
        self.config = config
        self._controller: SessionController | None = None
        self._transport: SocketIOTransport | None = None

    @property
    def controller(self) -> SessionController:
        if self._controller is None or not self._controller.is_open:
            raise ClientError("Client session is not running.")
        return self._controller

    @property
    def running(self) -> bool:
        return self._controller is not None and self._controller.is_open

    def attach(self, controller: SessionController) -> None:
        """Serve an already-built controller (embedders and tests)."""
        self._controller = controller.open()

    async def start(self) -> None:
        config = self.config or ClientConfig.from_env()
        self.config = config
        transport = SocketIOTransport(config.server_url)
        controller = SessionController(transport, config).open()
        try:
            await transport.connect()
        except ClientError:
            controller.close()
            raise
        self._transport = transport
        self._controller = controller
        logger.info("Client session started against %s", config.server_url)

    async def stop(self) -> None:
        controller, self._controller = self._controller, None
        transport, self._transport = self._transport, None
        try:
            if controller is not None:
                controller.close()
        finally:
            if transport is not None and transport.connected:
                await transport.disconnect()
        logger.info("Client session stopped")
