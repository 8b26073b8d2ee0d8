"""Transport lifecycle: connect with backoff, buffer inbound frames, send."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from typing import AsyncIterator, Callable, Optional

from ackless.config import EngineSettings
from ackless.network.transport.base import BaseTransport

LOGGER = logging.getLogger(__name__)

TransportFactory = Callable[[EngineSettings], BaseTransport]


class ConnectionError(RuntimeError):
    """Raised when the transport connection fails."""


class TransportNotReady(RuntimeError):
    """Raised when a frame is sent before the connection was started."""


def reconnect_delay(
    attempt: int,
    base: float,
    maximum: float,
    jitter: float,
    uniform: Callable[[float, float], float] = random.uniform,
) -> float:
    """Exponential backoff for the n-th failed connect (1-based), jittered.

    Never below 100ms so a zero base delay cannot spin.
    """

    delay = min(maximum, base * (2 ** max(0, attempt - 1)))
    return max(0.1, delay * uniform(1 - jitter, 1 + jitter))


class Connection:
    """Owns one transport at a time and re-creates it after failures.

    Inbound frames are buffered in a queue bounded by
    ``transport_recv_queue_max``; when it is full the oldest frame is
    discarded, since world-state packets go stale quickly.
    """

    def __init__(
        self,
        settings: EngineSettings,
        transport_factory: TransportFactory,
        *,
        base_delay: float | None = None,
        max_delay: float | None = None,
        jitter: float | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self._settings = settings
        self._transport_factory = transport_factory
        self._transport: Optional[BaseTransport] = None
        self._base_delay = float(settings.reconnect_base_delay_seconds if base_delay is None else base_delay)
        self._max_delay = float(settings.reconnect_max_delay_seconds if max_delay is None else max_delay)
        self._jitter = float(settings.reconnect_jitter if jitter is None else jitter)
        self._max_attempts = int(settings.reconnect_max_attempts if max_attempts is None else max_attempts)
        self._inbound: asyncio.Queue[bytes] = asyncio.Queue(maxsize=int(settings.transport_recv_queue_max))
        self._recv_task: Optional[asyncio.Task[None]] = None
        self._connecting: Optional[asyncio.Task[None]] = None
        self._closing = asyncio.Event()
        self._started = False
        self.reconnects = 0
        self.dropped_frames = 0

    @property
    def connected(self) -> bool:
        return self._transport is not None

    async def start(self) -> None:
        if self._recv_task and not self._recv_task.done():
            return
        self._closing.clear()
        self._started = True
        await self._ensure_connected()
        self._recv_task = asyncio.create_task(self._receive_loop(), name="packet-recv")

    async def stop(self) -> None:
        self._closing.set()
        self._started = False
        for task in (self._recv_task, self._connecting):
            if task is None:
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, ConnectionError):
                await task
        self._recv_task = None
        self._connecting = None
        await self._drop_transport()

    async def send(self, frame: bytes) -> None:
        """Write one encoded command.

        A failed write reconnects and raises ``ConnectionError``; so does a
        reconnect that runs out of ``reconnect_max_attempts``. The frame is
        never replayed; re-sending is the retry controller's decision.
        """

        if not self._started:
            raise TransportNotReady("Connection has not been started")
        await self._ensure_connected()
        transport = self._transport
        if transport is None:
            raise ConnectionError("Transport not available")
        try:
            await transport.send(frame)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Send of %s byte frame failed: %s", len(frame), exc)
            await self._reconnect()
            raise ConnectionError(str(exc)) from exc

    async def messages(self) -> AsyncIterator[bytes]:
        """Yield inbound frames until the connection is stopped."""

        while not self._closing.is_set():
            yield await self._inbound.get()

    def recv_queue_size(self) -> int:
        return self._inbound.qsize()

    def _buffer(self, frame: bytes) -> None:
        if self._inbound.full():
            self._inbound.get_nowait()
            self.dropped_frames += 1
            LOGGER.warning("Inbound buffer full; discarded oldest frame (%s so far)", self.dropped_frames)
        self._inbound.put_nowait(frame)

    async def _drop_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            await transport.close()
        except Exception:  # noqa: BLE001
            LOGGER.debug("Ignoring error while closing transport", exc_info=True)

    async def _reconnect(self) -> None:
        await self._drop_transport()
        if self._closing.is_set():
            return
        self.reconnects += 1
        await self._ensure_connected()

    async def _ensure_connected(self) -> None:
        if self._transport is not None:
            return
        if self._closing.is_set():
            raise ConnectionError("Connection stopped")
        if self._connecting is None or self._connecting.done():
            self._connecting = asyncio.create_task(self._connect_with_backoff(), name="packet-connect")
        await asyncio.shield(self._connecting)

    async def _connect_with_backoff(self) -> None:
        attempt = 0
        while not self._closing.is_set():
            attempt += 1
            try:
                transport = self._transport_factory(self._settings)
                await transport.connect()
            except Exception as exc:  # noqa: BLE001
                if attempt >= self._max_attempts:
                    LOGGER.error("Giving up after %s connect attempt(s): %s", attempt, exc)
                    raise ConnectionError(f"Transport unavailable after {attempt} attempt(s)") from exc
                delay = reconnect_delay(attempt, self._base_delay, self._max_delay, self._jitter)
                LOGGER.warning("Connect attempt %s failed: %s; next try in %.2fs", attempt, exc, delay)
                await asyncio.sleep(delay)
                continue
            self._transport = transport
            LOGGER.info("Transport connected after %s attempt(s)", attempt)
            return
        raise ConnectionError("Connection stopped")

    async def _receive_loop(self) -> None:
        while not self._closing.is_set():
            try:
                await self._ensure_connected()
                frame = await self._transport.receive()  # type: ignore[union-attr]
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Receive failed, reconnecting: %s", exc)
                try:
                    await self._reconnect()
                except ConnectionError:
                    # Next round after the longest backoff delay.
                    await asyncio.sleep(self._max_delay)
                continue
            if frame:
                self._buffer(frame)
