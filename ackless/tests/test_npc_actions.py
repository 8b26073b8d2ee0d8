import struct

import pytest

from ackless.actions import NpcActions, TradeMode
from ackless.protocol import DEFAULT_OPCODES as OPS
from ackless.world.model import EntityKind, EntityRef
from ackless.world.state import Navigator


class _RecordingNavigator(Navigator):
    def __init__(self) -> None:
        self.targets = []

    async def move_to(self, ref: EntityRef) -> bool:
        self.targets.append(ref)
        return True


@pytest.mark.asyncio
async def test_open_menu_already_open_sends_nothing(make_context, world, sink, npc):
    world.menu_open = True
    actions = NpcActions(make_context())

    assert await actions.open_menu(npc) is True
    assert sink.frames == []


@pytest.mark.asyncio
async def test_open_menu_rejects_non_npc(make_context, sink, caplog):
    actions = NpcActions(make_context())
    monster = EntityRef(EntityKind.MONSTER, 9)

    with caplog.at_level("WARNING"):
        assert await actions.open_menu(monster) is False
    assert sink.frames == []
    assert any("open_menu rejected" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_open_menu_resets_half_open_interaction(make_context, world, sink, npc):
    attempts = {"count": 0}

    def on_interact(frame: bytes) -> None:
        attempts["count"] += 1
        if attempts["count"] == 1:
            # Dialog registered but the menu never shows up.
            world.interacted = npc
        else:
            world.menu_open = True

    def on_cancel(frame: bytes) -> None:
        world.interacted = None

    sink.on(OPS.interact_with_entity, on_interact)
    sink.on(OPS.npc_cancel, on_cancel)
    actions = NpcActions(make_context())

    assert await actions.open_menu(npc) is True
    assert sink.opcodes == [
        OPS.interact_with_entity,
        OPS.npc_init,
        OPS.npc_cancel,
        OPS.request_entity_update,
        OPS.interact_with_entity,
    ]
    assert sink.frames[0] == bytes([OPS.interact_with_entity]) + struct.pack("<II", 1, npc.id)
    assert sink.frames[1] == bytes([OPS.npc_init]) + struct.pack("<II", 1, npc.id)


@pytest.mark.asyncio
async def test_open_menu_gives_up_after_attempts(make_context, settings, sink, npc):
    actions = NpcActions(make_context())

    assert await actions.open_menu(npc) is False
    assert sink.count(OPS.interact_with_entity) == settings.menu_attempts
    # No correction after the last attempt.
    assert sink.count(OPS.npc_init) == settings.menu_attempts - 1


@pytest.mark.asyncio
async def test_open_menu_approaches_distant_npc(make_context, world, sink, npc):
    navigator = _RecordingNavigator()
    world.distances[npc] = 25.0
    sink.on(OPS.interact_with_entity, lambda frame: setattr(world, "menu_open", True))
    actions = NpcActions(make_context(navigator=navigator))

    assert await actions.open_menu(npc) is True
    assert navigator.targets == [npc]


@pytest.mark.asyncio
async def test_open_menu_stops_when_npc_vanishes(make_context, world, sink, npc):
    world.entities.discard(npc)
    actions = NpcActions(make_context())

    assert await actions.open_menu(npc) is False
    assert sink.frames == []


@pytest.mark.asyncio
async def test_start_trade_sends_entity_action(make_context, world, sink, npc):
    world.menu_open = True

    def on_action(frame: bytes) -> None:
        world.trading_with = npc

    sink.on(OPS.entity_action, on_action)
    actions = NpcActions(make_context())

    assert await actions.start_trade(npc, TradeMode.GAMBLE) is True
    assert sink.frames == [bytes([OPS.entity_action]) + struct.pack("<III", 2, npc.id, 0)]


@pytest.mark.asyncio
async def test_start_trade_bounded_when_session_never_opens(make_context, settings, world, sink, npc):
    world.menu_open = True
    actions = NpcActions(make_context())

    assert await actions.start_trade(npc) is False
    assert sink.count(OPS.entity_action) == settings.trade_pulses // 2


@pytest.mark.asyncio
async def test_start_trade_shop_already_open(make_context, world, sink, npc):
    world.shop = True
    actions = NpcActions(make_context())

    assert await actions.start_trade(npc) is True
    assert sink.frames == []


@pytest.mark.asyncio
async def test_refresh_and_cancel_helpers(make_context, world, sink, npc):
    actions = NpcActions(make_context())

    assert await actions.refresh_entity(world.player(), wait_ms=-1) is True
    assert await actions.cancel_interaction(npc) is True

    assert sink.frames == [
        bytes([OPS.request_entity_update]) + struct.pack("<II", 0, 1),
        bytes([OPS.npc_cancel]) + struct.pack("<II", 1, npc.id),
    ]


@pytest.mark.asyncio
async def test_refresh_skips_vanished_entity(make_context, world, sink, npc):
    world.entities.discard(npc)
    actions = NpcActions(make_context())

    assert await actions.refresh_entity(npc) is False
    assert sink.frames == []
