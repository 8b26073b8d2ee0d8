"""Packet client facade (connection + dispatcher + subscription routing)."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Optional, Union

from ackless.config import EngineSettings
from ackless.network.connection import Connection
from ackless.network.dispatcher import CommandDispatcher
from ackless.network.subscriptions import Callback, SubscriptionRegistry
from ackless.network.transport.base import BaseTransport
from ackless.protocol.command import parse_inbound

LOGGER = logging.getLogger(__name__)


@dataclass
class PacketClient:
    """Wires the outbound dispatcher and routes inbound frames to subscribers."""

    settings: EngineSettings
    transport_factory: Callable[[EngineSettings], BaseTransport]

    connection: Connection = field(init=False, repr=False)
    dispatcher: CommandDispatcher = field(init=False, repr=False)
    registry: SubscriptionRegistry = field(init=False, repr=False)
    _route_task: Optional[asyncio.Task[None]] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.connection = Connection(self.settings, self.transport_factory)
        self.dispatcher = CommandDispatcher(self.connection.send)
        self.registry = SubscriptionRegistry(self.settings)

    async def start(self) -> None:
        await self.connection.start()
        if self._route_task is None or self._route_task.done():
            self._route_task = asyncio.create_task(self._route_loop(), name="packet-router")

    async def stop(self) -> None:
        route_task = self._route_task
        if route_task:
            route_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await route_task
        self._route_task = None
        await self.registry.close()
        await self.connection.stop()

    def subscribe(self, opcodes: Union[int, Iterable[int]], callback: Callback) -> int:
        """Register a callback for inbound packets with the given opcode(s)."""
        return self.registry.subscribe(opcodes, callback)

    def unsubscribe(self, token: int) -> bool:
        return self.registry.unsubscribe(token)

    async def _route_loop(self) -> None:
        try:
            async for frame in self.connection.messages():
                try:
                    message = parse_inbound(frame)
                except ValueError as exc:
                    LOGGER.warning("Dropping invalid inbound frame: %s", exc)
                    continue
                await self.registry.publish(message)
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            LOGGER.exception("Packet routing loop crashed")
