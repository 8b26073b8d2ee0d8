"""Buying and selling through an open NPC trade session."""

from __future__ import annotations

import logging
from typing import Optional

from ackless.actions.context import ActionContext
from ackless.confirm.retry import AttemptPlan, SendStep
from ackless.confirm.timeouts import TimeoutBudget
from ackless.protocol.command import dword
from ackless.world.model import EntityRef

LOGGER = logging.getLogger(__name__)

BUY_FLAG_SHIFT = 0x80000000
BUY_FLAG_GAMBLE = 0x2


class ShopActions:
    def __init__(self, ctx: ActionContext) -> None:
        self._ctx = ctx

    def _buy_plan(self, label: str) -> AttemptPlan:
        settings = self._ctx.settings
        return AttemptPlan(
            max_attempts=settings.buy_attempts,
            poll_interval_ms=settings.poll_interval_ms,
            budget=TimeoutBudget(
                minimum_ms=settings.confirm_floor_ms,
                latency_multiplier=settings.latency_multiplier,
                padding_ms=settings.buy_padding_ms,
            ),
            label=label,
        )

    def _buy_preconditions(self, action: str, item: EntityRef) -> Optional[EntityRef]:
        ctx = self._ctx
        npc = ctx.world.interacted_npc()
        if npc is None:
            ctx.reject(action, "no NPC menu open")
            return None
        info = ctx.world.item(item)
        if info is None:
            ctx.reject(action, "item %s no longer exists", item)
            return None
        gold = ctx.world.gold()
        if gold < info.cost:
            ctx.reject(action, "cost %s exceeds funds %s", info.cost, gold)
            return None
        return npc

    def _buy_step(self, npc: EntityRef, item: EntityRef, flags: int) -> SendStep:
        ctx = self._ctx

        async def send_step() -> bool:
            if not ctx.exists(item):
                return False
            await ctx.send(ctx.opcodes.npc_buy, dword(npc.id), dword(item.id), dword(flags), dword(0))
            return True

        return send_step

    async def buy_item(self, item: EntityRef, shift_buy: bool = False, gamble: bool = False) -> bool:
        """Buy ``item`` from the NPC whose trade window is open.

        A shift-buy fills the inventory with as many copies as fit, so it is
        confirmed by the funds dropping; a plain buy by the inventory growing.
        """

        ctx = self._ctx
        npc = self._buy_preconditions("buy_item", item)
        if npc is None:
            return False
        old_gold = ctx.world.gold()
        old_count = ctx.world.item_count()
        flags = BUY_FLAG_SHIFT if shift_buy else BUY_FLAG_GAMBLE if gamble else 0

        def bought() -> bool:
            if shift_buy and ctx.world.gold() < old_gold:
                return True
            return ctx.world.item_count() > old_count

        return await ctx.retry.attempt(self._buy_step(npc, item, flags), bought, self._buy_plan("buy_item"))

    async def buy_consumable(
        self,
        item: EntityRef,
        container: Optional[EntityRef] = None,
        shift_buy: bool = False,
    ) -> bool:
        """Buy a consumable that may be absorbed into a container.

        When the container takes the purchase the inventory count does not
        move, so the container's quantity is watched as well.
        """

        ctx = self._ctx
        npc = self._buy_preconditions("buy_consumable", item)
        if npc is None:
            return False
        if container is None:
            container = ctx.world.find_container_for(item)
        old_gold = ctx.world.gold()
        old_count = ctx.world.item_count()
        old_quantity = self._quantity(container)
        flags = BUY_FLAG_SHIFT if shift_buy else 0

        def bought() -> bool:
            if shift_buy and ctx.world.gold() < old_gold:
                return True
            if ctx.world.item_count() != old_count:
                return True
            return container is not None and self._quantity(container) > old_quantity

        return await ctx.retry.attempt(self._buy_step(npc, item, flags), bought, self._buy_plan("buy_consumable"))

    async def sell_item(self, item: EntityRef) -> bool:
        ctx = self._ctx
        if not item.kind.capabilities.is_item:
            return ctx.reject("sell_item", "%s is not an item", item)
        info = ctx.world.item(item)
        if info is None:
            return ctx.reject("sell_item", "item %s no longer exists", item)
        if not info.sellable:
            return ctx.reject("sell_item", "item %s is unsellable", item)
        npc = ctx.world.interacted_npc()
        if npc is None:
            return ctx.reject("sell_item", "no NPC menu open")
        old_count = ctx.world.item_count()

        async def send_step() -> bool:
            if not ctx.exists(item):
                return False
            await ctx.send(ctx.opcodes.npc_sell, dword(npc.id), dword(item.id), dword(0), dword(0))
            return True

        plan = AttemptPlan(
            max_attempts=ctx.settings.sell_attempts,
            poll_interval_ms=ctx.settings.poll_interval_ms,
            budget=TimeoutBudget(
                minimum_ms=ctx.settings.confirm_floor_ms,
                latency_multiplier=ctx.settings.latency_multiplier,
            ),
            label="sell_item",
        )
        return await ctx.retry.attempt(send_step, lambda: ctx.world.item_count() < old_count, plan)

    def _quantity(self, container: Optional[EntityRef]) -> int:
        if container is None:
            return 0
        info = self._ctx.world.item(container)
        if info is None or info.quantity is None:
            return 0
        return info.quantity
