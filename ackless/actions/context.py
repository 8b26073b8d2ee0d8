"""Shared dependencies for the action transactions."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from ackless.config import EngineSettings
from ackless.confirm.retry import RetryController
from ackless.confirm.timeouts import LatencySource, compute_budget
from ackless.network.dispatcher import CommandDispatcher
from ackless.protocol.command import CommandField
from ackless.protocol.opcodes import DEFAULT_OPCODES, OpcodeTable
from ackless.world.model import EntityRef
from ackless.world.state import Navigator, SkillSelector, WorldState

LOGGER = logging.getLogger(__name__)


@dataclass
class ActionContext:
    settings: EngineSettings
    dispatcher: CommandDispatcher
    world: WorldState
    opcodes: OpcodeTable = DEFAULT_OPCODES
    navigator: Optional[Navigator] = None
    skills: Optional[SkillSelector] = None
    latency: LatencySource = field(init=False)
    retry: RetryController = field(init=False)

    def __post_init__(self) -> None:
        self.latency = LatencySource(self.settings, self.world)
        self.retry = RetryController(self.settings, self.latency)

    async def send(self, opcode: int, *args: CommandField) -> None:
        await self.dispatcher.send(opcode, *args)

    def exists(self, ref: Optional[EntityRef]) -> bool:
        return ref is not None and self.world.entity_exists(ref)

    def reject(self, action: str, reason: str, *args: object) -> bool:
        """Log a precondition failure; always returns False."""

        LOGGER.warning("%s rejected: " + reason, action, *args)
        return False

    async def pause(self, minimum_ms: int, multiplier: int = 2) -> None:
        """Latency-scaled delay, never shorter than ``minimum_ms``."""

        delay_ms = compute_budget(self.latency(), minimum_ms, multiplier)
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000.0)
