"""Skill casts and teleports (fire-and-forget once the skill is selected)."""

from __future__ import annotations

import logging

from ackless.actions.context import ActionContext
from ackless.protocol.command import dword, word
from ackless.world.model import EntityRef, Hand, Skill

LOGGER = logging.getLogger(__name__)


class SkillActions:
    def __init__(self, ctx: ActionContext) -> None:
        self._ctx = ctx

    async def _select(self, action: str, skill_id: int, hand: Hand) -> bool:
        ctx = self._ctx
        if ctx.skills is None:
            return ctx.reject(action, "no skill selector configured")
        if not await ctx.skills.select(skill_id, hand):
            return ctx.reject(action, "could not select skill %s on %s hand", skill_id, hand.name.lower())
        return True

    async def cast_at_location(self, skill_id: int, hand: Hand, x: int, y: int) -> bool:
        ctx = self._ctx
        if not await self._select("cast_at_location", skill_id, hand):
            return False
        opcode = ctx.opcodes.right_skill_on_location if hand is Hand.RIGHT else ctx.opcodes.left_skill_on_location
        await ctx.send(opcode, word(x), word(y))
        return True

    async def cast_at_entity(self, skill_id: int, hand: Hand, target: EntityRef) -> bool:
        ctx = self._ctx
        if not ctx.exists(target):
            return ctx.reject("cast_at_entity", "target %s no longer exists", target)
        if not await self._select("cast_at_entity", skill_id, hand):
            return False
        # Selection may take a while; the target can vanish meanwhile.
        if not ctx.exists(target):
            return ctx.reject("cast_at_entity", "target %s vanished during skill selection", target)
        opcode = ctx.opcodes.right_skill_on_entity if hand is Hand.RIGHT else ctx.opcodes.left_skill_on_entity
        await ctx.send(opcode, dword(target.wire_type), dword(target.id))
        return True

    async def telekinesis(self, target: EntityRef) -> bool:
        if not target.kind.capabilities.telekinesis_target:
            return self._ctx.reject("telekinesis", "%s cannot be targeted by telekinesis", target)
        return await self.cast_at_entity(Skill.TELEKINESIS, Hand.RIGHT, target)

    async def enchant(self, target: EntityRef) -> bool:
        if not target.kind.capabilities.enchant_target:
            return self._ctx.reject("enchant", "%s cannot be enchanted", target)
        return await self.cast_at_entity(Skill.ENCHANT, Hand.RIGHT, target)

    async def teleport(self, x: int, y: int) -> bool:
        if not all(isinstance(value, int) and not isinstance(value, bool) for value in (x, y)):
            return self._ctx.reject("teleport", "coordinates (%r, %r) are not integers", x, y)
        return await self.cast_at_location(Skill.TELEPORT, Hand.RIGHT, x, y)

    async def refresh_quests(self) -> None:
        await self._ctx.send(self._ctx.opcodes.update_quests)
