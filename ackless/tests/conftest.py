import dataclasses
from typing import Callable, Dict, List, Optional

import pytest

from ackless.actions import ActionContext
from ackless.config import EngineSettings
from ackless.network.dispatcher import CommandDispatcher
from ackless.world.model import EntityKind, EntityRef, Hand, ItemInfo, ItemLocation
from ackless.world.state import SkillSelector, WorldState

PLAYER = EntityRef(EntityKind.PLAYER, 1)
NPC = EntityRef(EntityKind.NPC, 0x51)


class FakeWorld(WorldState):
    """Mutable world whose state the tests (and sink reactions) poke directly."""

    def __init__(self) -> None:
        self.ready = True
        self.latency = 0
        self.entities = {PLAYER, NPC}
        self.distances: Dict[EntityRef, float] = {}
        self.menu_open = False
        self.shop = False
        self.trading_with: Optional[EntityRef] = None
        self.interacted: Optional[EntityRef] = None
        self.talking = False
        self.funds = 0
        self.items: Dict[EntityRef, ItemInfo] = {}
        self.container: Optional[EntityRef] = None
        self.identify_cursor = False
        self.cursor: Optional[EntityRef] = None

    def add_item(self, ref: EntityRef, **attrs) -> ItemInfo:
        info = ItemInfo(ref=ref, **attrs)
        self.items[ref] = info
        return info

    def update_item(self, ref: EntityRef, **changes) -> None:
        self.items[ref] = dataclasses.replace(self.items[ref], **changes)

    def remove_item(self, ref: EntityRef) -> None:
        self.items.pop(ref, None)

    def game_ready(self) -> bool:
        return self.ready

    def latency_ms(self) -> int:
        return self.latency

    def player(self) -> EntityRef:
        return PLAYER

    def entity_exists(self, ref: EntityRef) -> bool:
        return ref in self.entities or ref in self.items

    def distance_to(self, ref: EntityRef) -> float:
        return self.distances.get(ref, 0.0)

    def npc_menu_open(self) -> bool:
        return self.menu_open

    def shop_open(self) -> bool:
        return self.shop

    def trade_session_open(self, npc: EntityRef) -> bool:
        return self.trading_with == npc

    def interacted_npc(self) -> Optional[EntityRef]:
        return self.interacted

    def talking_to_npc(self) -> bool:
        return self.talking

    def gold(self) -> int:
        return self.funds

    def item_count(self) -> int:
        return sum(1 for info in self.items.values() if info.location is not ItemLocation.SHOP)

    def item(self, ref: EntityRef) -> Optional[ItemInfo]:
        return self.items.get(ref)

    def find_container_for(self, item: EntityRef) -> Optional[EntityRef]:
        return self.container

    def identify_cursor_active(self) -> bool:
        return self.identify_cursor

    def item_on_cursor(self) -> bool:
        return self.cursor is not None

    def cursor_item(self) -> Optional[EntityRef]:
        return self.cursor


class RecordingSink:
    """Outbound sink that records frames and lets tests script world reactions."""

    def __init__(self) -> None:
        self.frames: List[bytes] = []
        self._reactions: Dict[int, Callable[[bytes], None]] = {}

    def on(self, opcode: int, reaction: Callable[[bytes], None]) -> None:
        self._reactions[opcode] = reaction

    async def __call__(self, frame: bytes) -> None:
        self.frames.append(frame)
        reaction = self._reactions.get(frame[0])
        if reaction is not None:
            reaction(frame)

    @property
    def opcodes(self) -> List[int]:
        return [frame[0] for frame in self.frames]

    def count(self, opcode: int) -> int:
        return self.opcodes.count(opcode)


class StubSelector(SkillSelector):
    def __init__(self, result: bool = True, on_select: Optional[Callable[[], None]] = None) -> None:
        self.result = result
        self.on_select = on_select
        self.selected: List[tuple[int, Hand]] = []

    async def select(self, skill_id: int, hand: Hand) -> bool:
        self.selected.append((skill_id, hand))
        if self.on_select is not None:
            self.on_select()
        return self.result


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(
        fallback_latency_ms=0,
        poll_interval_ms=1,
        settle_floor_ms=0,
        confirm_floor_ms=20,
        buy_padding_ms=0,
        menu_window_ms=30,
        menu_poll_interval_ms=2,
        menu_settle_floor_ms=0,
        desync_interacted_after_ms=5,
        desync_talking_after_ms=5,
        trade_pulse_ms=2,
        identify_settle_ms=0,
        cursor_floor_ms=20,
        cursor_padding_ms=0,
        belt_budget_ms=20,
        belt_poll_interval_ms=2,
        refresh_base_ms=0,
    )


@pytest.fixture
def world() -> FakeWorld:
    return FakeWorld()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_context(settings, world, sink):
    def _make(**kwargs) -> ActionContext:
        return ActionContext(
            settings=settings,
            dispatcher=CommandDispatcher(sink),
            world=world,
            **kwargs,
        )

    return _make


@pytest.fixture
def npc() -> EntityRef:
    return NPC


@pytest.fixture
def selector() -> StubSelector:
    return StubSelector()
