"""Passive notification subscriptions keyed by inbound opcode.

Each opcode gets its own queue and worker task so a slow callback only
delays messages of the opcode it subscribed to.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from dataclasses import dataclass, field
from itertools import count
from typing import Awaitable, Callable, Dict, Iterable, Iterator, List, Optional, Union

from ackless.config import EngineSettings
from ackless.protocol.command import InboundMessage

LOGGER = logging.getLogger(__name__)

Callback = Callable[[InboundMessage], Union[Awaitable[None], None]]


@dataclass
class Subscription:
    token: int
    opcodes: frozenset[int]
    callback: Callback
    active: bool = True
    failures: int = 0
    cooldown_until: float = 0.0


def _normalize_opcodes(opcodes: Union[int, Iterable[int]]) -> frozenset[int]:
    values = frozenset([opcodes]) if isinstance(opcodes, int) else frozenset(opcodes)
    if not values:
        raise ValueError("At least one opcode is required")
    for value in values:
        if not isinstance(value, int) or not 0 <= value <= 0xFF:
            raise ValueError(f"Invalid opcode {value!r}")
    return values


@dataclass
class SubscriptionRegistry:
    """Registry of opcode callbacks with an explicit construct/close lifecycle."""

    settings: EngineSettings

    _entries: Dict[int, Subscription] = field(default_factory=dict, init=False, repr=False)
    _tokens: Iterator[int] = field(default_factory=lambda: count(1), init=False, repr=False)
    _lanes: Dict[int, asyncio.Queue[InboundMessage]] = field(default_factory=dict, init=False, repr=False)
    _lane_tasks: Dict[int, asyncio.Task[None]] = field(default_factory=dict, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    def subscribe(self, opcodes: Union[int, Iterable[int]], callback: Callback) -> int:
        """Register ``callback`` for one or more opcodes and return its token.

        Async callbacks are bounded by ``subscription_callback_timeout_seconds``.
        Sync callbacks run inline on the event loop with no time bound and
        must not block; hand slow work off to a task or executor.
        """

        if self._closed:
            raise RuntimeError("Subscription registry is closed")
        values = _normalize_opcodes(opcodes)
        token = next(self._tokens)
        self._entries[token] = Subscription(token=token, opcodes=values, callback=callback)
        LOGGER.debug("Subscribed token=%s opcodes=%s", token, sorted(values))
        return token

    def unsubscribe(self, token: int) -> bool:
        entry = self._entries.pop(token, None)
        if entry is None:
            return False
        entry.active = False
        LOGGER.debug("Unsubscribed token=%s", token)
        return True

    def subscribers(self, opcode: int) -> List[Subscription]:
        """Active entries interested in ``opcode``, in registration order."""

        return [entry for entry in self._entries.values() if entry.active and opcode in entry.opcodes]

    async def dispatch(self, message: InboundMessage) -> int:
        """Deliver ``message`` to every matching entry now; returns callbacks run."""

        delivered = 0
        now = asyncio.get_running_loop().time()
        for entry in self.subscribers(message.opcode):
            # Unsubscribed while an earlier callback of this message ran.
            if not entry.active:
                continue
            if entry.cooldown_until > now:
                LOGGER.warning(
                    "Subscription %s in cooldown for opcode %#04x (%.0fms remaining)",
                    entry.token,
                    message.opcode,
                    (entry.cooldown_until - now) * 1000,
                )
                continue
            delivered += 1
            try:
                await self._invoke(entry, message)
                entry.failures = 0
            except asyncio.CancelledError:
                raise
            except asyncio.TimeoutError as exc:
                self._record_failure(entry, message, exc, "timeout")
            except Exception:  # noqa: BLE001
                self._record_failure(entry, message, None, "error")
        return delivered

    async def publish(self, message: InboundMessage) -> None:
        """Queue ``message`` on its opcode lane for asynchronous dispatch."""

        if self._closed or not self.subscribers(message.opcode):
            return
        queue = self._get_lane(message.opcode)
        overflow = self.settings.subscription_queue_overflow
        if not queue.full() or overflow == "block":
            await queue.put(message)
            return
        if overflow == "drop_new":
            LOGGER.warning("Subscription lane %#04x full; dropping new message", message.opcode)
            return
        with contextlib.suppress(asyncio.QueueEmpty):
            queue.get_nowait()
            queue.task_done()
            LOGGER.warning("Subscription lane %#04x full; dropping oldest message", message.opcode)
        await queue.put(message)

    async def drain(self) -> None:
        """Wait until every queued message has been dispatched."""

        for queue in list(self._lanes.values()):
            await queue.join()

    async def close(self) -> None:
        """Stop all lanes and drop every subscription."""

        self._closed = True
        tasks = list(self._lane_tasks.values())
        self._lane_tasks.clear()
        self._lanes.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for entry in self._entries.values():
            entry.active = False
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    async def _invoke(self, entry: Subscription, message: InboundMessage) -> None:
        result = entry.callback(message)
        if not inspect.isawaitable(result):
            return
        timeout = float(self.settings.subscription_callback_timeout_seconds or 0)
        if timeout > 0:
            await asyncio.wait_for(result, timeout=timeout)
        else:
            await result

    def _record_failure(
        self,
        entry: Subscription,
        message: InboundMessage,
        exc: Optional[BaseException],
        reason: str,
    ) -> None:
        entry.failures += 1
        if exc:
            LOGGER.warning("Subscription %s failed for opcode %#04x (%s)", entry.token, message.opcode, reason)
        else:
            LOGGER.exception("Subscription %s raised for opcode %#04x", entry.token, message.opcode)
        limit = int(self.settings.subscription_max_failures or 0)
        cooldown = float(self.settings.subscription_failure_cooldown_seconds or 0)
        if limit > 0 and entry.failures >= limit and cooldown > 0:
            entry.cooldown_until = asyncio.get_running_loop().time() + cooldown
            LOGGER.warning(
                "Subscription %s cooling down for %.2fs after %s failures",
                entry.token,
                cooldown,
                entry.failures,
            )

    def _get_lane(self, opcode: int) -> asyncio.Queue[InboundMessage]:
        queue = self._lanes.get(opcode)
        if queue is not None:
            return queue
        queue = asyncio.Queue(maxsize=int(self.settings.subscription_queue_max))
        self._lanes[opcode] = queue
        self._lane_tasks[opcode] = asyncio.create_task(
            self._lane_loop(opcode, queue),
            name=f"subscription-lane-{opcode:#04x}",
        )
        return queue

    async def _lane_loop(self, opcode: int, queue: asyncio.Queue[InboundMessage]) -> None:
        while True:
            message = await queue.get()
            try:
                await self.dispatch(message)
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                LOGGER.exception("Subscription lane %#04x failed", opcode)
            finally:
                queue.task_done()
