"""WebSocket transport to a packet bridge."""

from __future__ import annotations

import logging
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect

from ackless.config import EngineSettings
from .base import BaseTransport

LOGGER = logging.getLogger(__name__)


class WebSocketTransport(BaseTransport):
    """Binary-frame transport; one WebSocket message per command or packet."""

    def __init__(self, settings: EngineSettings) -> None:
        self._settings = settings
        self._ws: Optional[ClientConnection] = None

    async def connect(self) -> None:
        LOGGER.info("Connecting to packet bridge at %s", self._settings.bridge_ws_url)
        self._ws = await connect(str(self._settings.bridge_ws_url))

    async def send(self, frame: bytes) -> None:
        if not self._ws:
            raise RuntimeError("WebSocket transport not connected")
        LOGGER.debug("WebSocket send: %s", frame.hex())
        await self._ws.send(frame)

    async def receive(self) -> bytes:
        if not self._ws:
            raise RuntimeError("WebSocket transport not connected")
        raw = await self._ws.recv()
        if isinstance(raw, str):
            try:
                raw = bytes.fromhex(raw)
            except ValueError:
                LOGGER.warning("Discarding non-hex text frame (%s chars)", len(raw))
                return b""
        LOGGER.debug("WebSocket receive: %s", raw.hex())
        return raw

    async def close(self) -> None:
        if self._ws:
            LOGGER.info("Closing WebSocket transport")
            await self._ws.close()
            self._ws = None
