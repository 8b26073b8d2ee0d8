"""No-op transport for offline use."""

from __future__ import annotations

import asyncio
import logging

from .base import BaseTransport

LOGGER = logging.getLogger(__name__)


class DummyTransport(BaseTransport):
    """Accepts every frame and never delivers anything inbound."""

    def __init__(self, settings=None) -> None:
        self._settings = settings

    async def connect(self) -> None:
        LOGGER.debug("Dummy transport connect()")

    async def send(self, frame: bytes) -> None:
        LOGGER.debug("Dummy transport send(): %s", frame.hex())

    async def receive(self) -> bytes:
        LOGGER.debug("Dummy transport receive() (no-op)")
        await asyncio.sleep(3600)
        return b""

    async def close(self) -> None:
        LOGGER.debug("Dummy transport close()")
