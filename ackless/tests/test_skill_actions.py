import struct

import pytest

from ackless.actions import SkillActions
from ackless.protocol import DEFAULT_OPCODES as OPS
from ackless.world.model import EntityKind, EntityRef, Hand, Skill

CHEST = EntityRef(EntityKind.OBJECT, 0x77)
ZOMBIE = EntityRef(EntityKind.MONSTER, 0x78)


@pytest.mark.asyncio
async def test_cast_without_selector_is_rejected(make_context, sink):
    actions = SkillActions(make_context())

    assert await actions.teleport(5000, 5100) is False
    assert sink.frames == []


@pytest.mark.asyncio
async def test_teleport_casts_right_hand_at_location(make_context, sink, selector):
    actions = SkillActions(make_context(skills=selector))

    assert await actions.teleport(5000, 5100) is True
    assert selector.selected == [(Skill.TELEPORT, Hand.RIGHT)]
    assert sink.frames == [bytes([OPS.right_skill_on_location]) + struct.pack("<HH", 5000, 5100)]


@pytest.mark.asyncio
async def test_teleport_rejects_non_integer_coordinates(make_context, sink, selector):
    actions = SkillActions(make_context(skills=selector))

    assert await actions.teleport(5000.5, 5100) is False
    assert await actions.teleport(True, 5100) is False
    assert selector.selected == []
    assert sink.frames == []


@pytest.mark.asyncio
async def test_telekinesis_on_object(make_context, world, sink, selector):
    world.entities.add(CHEST)
    actions = SkillActions(make_context(skills=selector))

    assert await actions.telekinesis(CHEST) is True
    assert sink.frames == [bytes([OPS.right_skill_on_entity]) + struct.pack("<II", 2, CHEST.id)]


@pytest.mark.asyncio
async def test_kind_gates(make_context, world, sink, selector, npc):
    world.entities.add(CHEST)
    actions = SkillActions(make_context(skills=selector))

    assert await actions.telekinesis(npc) is False
    assert await actions.enchant(CHEST) is False
    assert sink.frames == []


@pytest.mark.asyncio
async def test_target_vanishing_during_selection(make_context, world, sink, selector):
    world.entities.add(ZOMBIE)
    selector.on_select = lambda: world.entities.discard(ZOMBIE)
    actions = SkillActions(make_context(skills=selector))

    assert await actions.enchant(ZOMBIE) is False
    assert sink.frames == []


@pytest.mark.asyncio
async def test_left_hand_cast_and_quest_refresh(make_context, world, sink, selector):
    world.entities.add(ZOMBIE)
    actions = SkillActions(make_context(skills=selector))

    assert await actions.cast_at_entity(Skill.ENCHANT, Hand.LEFT, ZOMBIE) is True
    await actions.refresh_quests()

    assert sink.frames == [
        bytes([OPS.left_skill_on_entity]) + struct.pack("<II", 1, ZOMBIE.id),
        bytes([OPS.update_quests]),
    ]
