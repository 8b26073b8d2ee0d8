"""NPC interaction: menus, trade sessions and the cancel/refresh helpers."""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Optional

from ackless.actions.context import ActionContext
from ackless.confirm.retry import AttemptPlan
from ackless.confirm.timeouts import TimeoutBudget, compute_budget
from ackless.protocol.command import dword
from ackless.world.model import EntityRef

LOGGER = logging.getLogger(__name__)


class TradeMode(enum.IntEnum):
    TRADE = 1
    GAMBLE = 2


class NpcActions:
    def __init__(self, ctx: ActionContext) -> None:
        self._ctx = ctx

    async def interact(self, entity: EntityRef) -> bool:
        ctx = self._ctx
        if not ctx.exists(entity):
            return ctx.reject("interact", "entity %s no longer exists", entity)
        await ctx.send(ctx.opcodes.interact_with_entity, dword(entity.wire_type), dword(entity.id))
        return True

    async def cancel_interaction(self, entity: EntityRef) -> bool:
        ctx = self._ctx
        if not ctx.exists(entity):
            return ctx.reject("cancel_interaction", "entity %s no longer exists", entity)
        await ctx.send(ctx.opcodes.npc_cancel, dword(entity.wire_type), dword(entity.id))
        return True

    async def refresh_entity(self, entity: EntityRef, wait_ms: Optional[int] = None) -> bool:
        """Ask the remote side to resend an entity's state.

        Without ``wait_ms`` the call waits long enough for the update to come
        back; a negative ``wait_ms`` returns immediately.
        """

        ctx = self._ctx
        if not ctx.exists(entity):
            return ctx.reject("refresh_entity", "entity %s no longer exists", entity)
        await ctx.send(ctx.opcodes.request_entity_update, dword(entity.wire_type), dword(entity.id))
        if wait_ms is None:
            base = ctx.settings.refresh_base_ms
            if ctx.world.game_ready():
                wait_ms = base + compute_budget(ctx.latency(), 0, 2)
            else:
                wait_ms = base * 2
        if wait_ms > 0:
            await asyncio.sleep(wait_ms / 1000.0)
        return True

    async def open_menu(self, npc: EntityRef) -> bool:
        """Interact with ``npc`` until its menu opens.

        A window ends early when the world shows a half-open interaction (an
        interacted NPC or a running dialog without the menu flag); the stale
        interaction is re-initialised and cancelled before the next attempt.
        """

        ctx = self._ctx
        settings = ctx.settings
        world = ctx.world
        if not npc.kind.capabilities.npc_like:
            return ctx.reject("open_menu", "%s is not an NPC", npc)
        if world.npc_menu_open():
            return True

        async def send_step() -> bool:
            if not ctx.exists(npc):
                return False
            if ctx.navigator is not None and world.distance_to(npc) > settings.approach_distance:
                await ctx.navigator.move_to(npc)
            return await self.interact(npc)

        def desynced(elapsed_ms: float) -> bool:
            if elapsed_ms > settings.desync_interacted_after_ms and world.interacted_npc() is not None:
                return True
            return elapsed_ms > settings.desync_talking_after_ms and world.talking_to_npc()

        async def correct() -> None:
            LOGGER.debug("Resetting interaction with %s", npc)
            await ctx.send(ctx.opcodes.npc_init, dword(1), dword(npc.id))
            await ctx.retry.settle()
            await self.cancel_interaction(npc)
            await self.refresh_entity(world.player(), wait_ms=-1)

        plan = AttemptPlan(
            max_attempts=settings.menu_attempts,
            poll_interval_ms=settings.menu_poll_interval_ms,
            budget=TimeoutBudget.fixed(settings.menu_window_ms),
            corrective_step=correct,
            desync_check=desynced,
            label="open_menu",
        )
        if not await ctx.retry.attempt(send_step, world.npc_menu_open, plan):
            return False
        await ctx.pause(settings.menu_settle_floor_ms)
        return True

    async def start_trade(self, npc: EntityRef, mode: TradeMode = TradeMode.TRADE) -> bool:
        """Open the menu and start a trade or gamble session with ``npc``."""

        ctx = self._ctx
        settings = ctx.settings
        if not npc.kind.capabilities.npc_like:
            return ctx.reject("start_trade", "%s is not an NPC", npc)
        if ctx.world.shop_open():
            return True
        LOGGER.info("%s at %s", mode.name.title(), npc)
        if not await self.open_menu(npc):
            return False

        async def send_step() -> bool:
            if not ctx.exists(npc):
                return False
            await ctx.send(ctx.opcodes.entity_action, dword(int(mode)), dword(npc.id), dword(0))
            return True

        # A request goes out every other pulse; each window spans two pulses.
        plan = AttemptPlan(
            max_attempts=max(1, settings.trade_pulses // 2),
            poll_interval_ms=settings.trade_pulse_ms,
            budget=TimeoutBudget.fixed(settings.trade_pulse_ms * 2),
            label="start_trade",
        )
        if not await ctx.retry.attempt(send_step, lambda: ctx.world.trade_session_open(npc), plan):
            return False
        await asyncio.sleep(settings.trade_pulse_ms / 1000.0)
        LOGGER.info("Started %s at %s", mode.name.lower(), npc)
        return True
