"""Bounded send/confirm attempts with corrective steps in between.

Re-sending after a confirmation window closes can double-apply a command
whose effect was merely observed late. There is no deduplication on the
wire, so that risk is accepted here and nowhere else: a sequencing or
idempotency layer would slot in around ``send_step``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ackless.config import EngineSettings
from ackless.confirm.poller import AbortCheck, Predicate, observe, wait_until
from ackless.confirm.timeouts import TimeoutBudget, compute_budget

LOGGER = logging.getLogger(__name__)

SendStep = Callable[[], Awaitable[Optional[bool]]]
CorrectiveStep = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class AttemptPlan:
    max_attempts: int
    poll_interval_ms: int
    budget: TimeoutBudget
    corrective_step: Optional[CorrectiveStep] = None
    desync_check: Optional[AbortCheck] = None
    label: str = "action"

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")
        if self.poll_interval_ms >= self.budget.minimum_ms:
            raise ValueError(
                f"poll_interval_ms ({self.poll_interval_ms}) must be below the budget floor "
                f"({self.budget.minimum_ms})"
            )


@dataclass
class RetryController:
    """Runs the dispatch → observe loop for one action at a time.

    Holds no state between calls; ``latency`` is sampled fresh for every
    attempt.
    """

    settings: EngineSettings
    latency: Callable[[], int]

    async def attempt(self, send_step: SendStep, confirm: Predicate, plan: AttemptPlan) -> bool:
        for attempt in range(1, plan.max_attempts + 1):
            sent = await send_step()
            if sent is False:
                # The subject vanished; its disappearance may itself be the effect.
                LOGGER.info("%s: subject no longer valid before attempt %s", plan.label, attempt)
                return observe(confirm)
            budget_ms = plan.budget.effective_ms(self.latency())
            if await wait_until(confirm, plan.poll_interval_ms, budget_ms, abort_if=plan.desync_check):
                LOGGER.debug("%s confirmed on attempt %s/%s", plan.label, attempt, plan.max_attempts)
                return True
            if plan.corrective_step is not None and attempt < plan.max_attempts:
                LOGGER.debug("%s: running corrective step after attempt %s", plan.label, attempt)
                await plan.corrective_step()
                await self.settle()
        LOGGER.info("%s: not confirmed after %s attempt(s)", plan.label, plan.max_attempts)
        return False

    async def settle(self) -> None:
        """Give a corrective command time to land before the next send."""

        delay_ms = compute_budget(self.latency(), self.settings.settle_floor_ms, 2)
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000.0)
