"""Single write path from the engine to the outbound channel."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from ackless.network.connection import ConnectionError
from ackless.protocol.command import Command, CommandField

LOGGER = logging.getLogger(__name__)

FrameSink = Callable[[bytes], Awaitable[None]]


class CommandDispatcher:
    """Encodes commands and hands them to the outbound sink.

    Fire-and-forget: returning means the frame was handed over, not that the
    remote side saw it. A write the connection could not complete counts as
    a dropped send; the caller's confirmation window notices the missing
    effect. ``TransportNotReady`` still propagates.
    """

    def __init__(self, sink: FrameSink) -> None:
        self._sink = sink
        self._lock = asyncio.Lock()
        self.sent = 0
        self.dropped = 0

    async def send(self, opcode: int, *args: CommandField) -> Command:
        command = Command(opcode=opcode, args=tuple(args))
        await self.send_command(command)
        return command

    async def send_command(self, command: Command) -> None:
        frame = command.encode()
        async with self._lock:
            try:
                await self._sink(frame)
            except ConnectionError as exc:
                self.dropped += 1
                LOGGER.warning("Dropped %r: %s", command, exc)
                return
            self.sent += 1
        LOGGER.debug("Sent %r", command)
