"""Bounded observation of a confirmation predicate."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

LOGGER = logging.getLogger(__name__)

Predicate = Callable[[], bool]
AbortCheck = Callable[[float], bool]


class PredicateError(RuntimeError):
    """Raised when a confirmation predicate or abort check itself fails."""


def observe(check: Callable[..., bool], *args: float) -> bool:
    try:
        return bool(check(*args))
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        raise PredicateError(f"Confirmation check {check!r} raised {exc!r}") from exc


async def wait_until(
    predicate: Predicate,
    interval_ms: int,
    budget_ms: int,
    *,
    abort_if: Optional[AbortCheck] = None,
) -> bool:
    """Poll ``predicate`` every ``interval_ms`` until it holds or ``budget_ms`` elapses.

    Elapsed time is measured against the loop's monotonic clock sampled once
    on entry, never by counting ticks. ``abort_if`` receives the elapsed
    milliseconds after each negative observation and may end the window
    early; it must be as side-effect free as the predicate.
    """

    if interval_ms <= 0:
        raise ValueError("interval_ms must be positive")
    loop = asyncio.get_running_loop()
    started = loop.time()
    interval = interval_ms / 1000.0
    while True:
        await asyncio.sleep(interval)
        if observe(predicate):
            return True
        elapsed_ms = (loop.time() - started) * 1000.0
        if abort_if is not None and observe(abort_if, elapsed_ms):
            LOGGER.debug("Confirmation window aborted after %.0fms", elapsed_ms)
            return False
        if elapsed_ms >= budget_ms:
            return False
