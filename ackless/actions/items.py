"""Item handling: identify, cursor moves, belt placement and merc potions."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ackless.actions.context import ActionContext
from ackless.confirm.poller import wait_until
from ackless.confirm.retry import AttemptPlan
from ackless.confirm.timeouts import TimeoutBudget
from ackless.protocol.command import dword, word
from ackless.world.model import EntityKind, EntityRef, ItemLocation

LOGGER = logging.getLogger(__name__)


class ItemActions:
    def __init__(self, ctx: ActionContext) -> None:
        self._ctx = ctx

    def _cursor_plan(self, label: str) -> AttemptPlan:
        settings = self._ctx.settings
        return AttemptPlan(
            max_attempts=settings.cursor_attempts,
            poll_interval_ms=settings.poll_interval_ms,
            budget=TimeoutBudget(
                minimum_ms=settings.cursor_floor_ms,
                latency_multiplier=settings.latency_multiplier,
                padding_ms=settings.cursor_padding_ms,
            ),
            label=label,
        )

    def _identified(self, item: EntityRef) -> bool:
        info = self._ctx.world.item(item)
        return info is not None and info.identified

    async def identify_item(self, item: EntityRef, tool: Optional[EntityRef]) -> bool:
        """Identify ``item`` with ``tool`` (scroll or tome).

        Two phases: the first send arms the identify cursor, the second
        applies it to the item. Each phase has its own attempt budget.
        """

        ctx = self._ctx
        settings = ctx.settings
        if tool is None:
            return ctx.reject("identify_item", "no identification tool given")
        info = ctx.world.item(item)
        if info is None:
            return ctx.reject("identify_item", "item %s no longer exists", item)
        if info.identified:
            return ctx.reject("identify_item", "item %s is already identified", item)
        if not ctx.exists(tool):
            return ctx.reject("identify_item", "tool %s no longer exists", tool)

        async def send_identify() -> bool:
            if not ctx.exists(item):
                return False
            await ctx.send(ctx.opcodes.identify_item, dword(item.id), dword(tool.id))
            return True

        async def apply_cursor() -> bool:
            if not ctx.exists(item):
                return False
            if ctx.world.identify_cursor_active():
                await ctx.send(ctx.opcodes.identify_item, dword(item.id), dword(tool.id))
            return True

        budget = TimeoutBudget(minimum_ms=settings.confirm_floor_ms, latency_multiplier=settings.latency_multiplier)
        arm = AttemptPlan(
            max_attempts=settings.identify_attempts,
            poll_interval_ms=settings.poll_interval_ms,
            budget=budget,
            label="identify_item.cursor",
        )
        if not await ctx.retry.attempt(send_identify, ctx.world.identify_cursor_active, arm):
            return False

        apply = AttemptPlan(
            max_attempts=settings.identify_attempts,
            poll_interval_ms=settings.poll_interval_ms,
            budget=budget,
            label="identify_item.apply",
        )
        if not await ctx.retry.attempt(apply_cursor, lambda: self._identified(item), apply):
            return False
        await asyncio.sleep(settings.identify_settle_ms / 1000.0)
        return True

    async def item_to_cursor(self, item: EntityRef) -> bool:
        ctx = self._ctx
        if ctx.world.item(item) is None:
            return ctx.reject("item_to_cursor", "item %s no longer exists", item)
        if ctx.world.item_on_cursor():
            held = ctx.world.cursor_item()
            if held == item:
                return True
            if held is not None:
                LOGGER.debug("Dropping %s to free the cursor for %s", held, item)
                if not await self.drop_item(held):
                    return False

        async def send_step() -> bool:
            info = ctx.world.item(item)
            if info is None:
                return False
            if info.equipped:
                await ctx.send(ctx.opcodes.pickup_body_item, word(info.body_location))
            else:
                await ctx.send(ctx.opcodes.pickup_buffer_item, dword(item.id))
            return True

        return await ctx.retry.attempt(
            send_step,
            lambda: ctx.world.cursor_item() == item,
            self._cursor_plan("item_to_cursor"),
        )

    async def drop_item(self, item: EntityRef) -> bool:
        ctx = self._ctx
        if not await self.item_to_cursor(item):
            return False

        async def send_step() -> bool:
            if not ctx.exists(item):
                return False
            await ctx.send(ctx.opcodes.drop_item, dword(item.id))
            return True

        return await ctx.retry.attempt(
            send_step,
            lambda: not ctx.world.item_on_cursor(),
            self._cursor_plan("drop_item"),
        )

    async def place_in_belt(self, item: EntityRef, column: int) -> bool:
        ctx = self._ctx
        if not await self.item_to_cursor(item):
            return False
        if not ctx.exists(item):
            return ctx.reject("place_in_belt", "item %s vanished from the cursor", item)
        await ctx.send(ctx.opcodes.item_to_belt, dword(item.id), dword(column))

        def in_belt() -> bool:
            info = ctx.world.item(item)
            return info is not None and info.in_belt

        return await wait_until(in_belt, ctx.settings.belt_poll_interval_ms, ctx.settings.belt_budget_ms)

    async def click_item(self, item: EntityRef, to_cursor: bool = False) -> bool:
        """Request pickup of a ground item, optionally straight to the cursor."""

        ctx = self._ctx
        if not ctx.exists(item):
            return ctx.reject("click_item", "item %s no longer exists", item)
        await ctx.send(
            ctx.opcodes.pickup_item,
            dword(EntityKind.ITEM.wire_type),
            dword(item.id),
            dword(1 if to_cursor else 0),
        )
        return True

    async def use_belt_item_for_merc(self, item: EntityRef) -> bool:
        ctx = self._ctx
        if not ctx.exists(item):
            return ctx.reject("use_belt_item_for_merc", "item %s no longer exists", item)
        await ctx.send(ctx.opcodes.use_belt_item, dword(item.id), dword(1), dword(0))
        return True

    async def give_potion_to_merc(self, item: EntityRef) -> bool:
        ctx = self._ctx
        info = ctx.world.item(item)
        if info is None or not info.is_merc_potion:
            return ctx.reject("give_potion_to_merc", "%s is not a potion a mercenary can drink", item)
        if info.location is ItemLocation.BELT:
            return await self.use_belt_item_for_merc(item)
        if info.location is ItemLocation.INVENTORY:
            if not await self.item_to_cursor(item):
                return False
            await ctx.send(ctx.opcodes.merc_item, word(0))
            return True
        return ctx.reject("give_potion_to_merc", "potion %s is neither in the belt nor the inventory", item)
