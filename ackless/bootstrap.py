"""Engine bootstrap: transport selection, client wiring and action surfaces."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Type

from ackless.actions import ActionContext, ItemActions, NpcActions, ShopActions, SkillActions
from ackless.config import EngineSettings, get_settings
from ackless.network.client import PacketClient
from ackless.network.transport.base import BaseTransport
from ackless.network.transport.dummy import DummyTransport
from ackless.network.transport.websocket import WebSocketTransport
from ackless.protocol.opcodes import DEFAULT_OPCODES, OpcodeTable
from ackless.world.state import Navigator, SkillSelector, WorldState

LOGGER = logging.getLogger(__name__)


def resolve_transport(settings: EngineSettings) -> Callable[[EngineSettings], BaseTransport]:
    resolved_cls: Type[BaseTransport]
    resolved_cls = WebSocketTransport if settings.transport == "websocket" else DummyTransport
    LOGGER.debug("Using %s for the packet channel", resolved_cls.__name__)
    return lambda s: resolved_cls(s)


@dataclass
class Engine:
    """A started client plus the action transactions bound to one world view."""

    client: PacketClient
    context: ActionContext
    npc: NpcActions = field(init=False)
    shop: ShopActions = field(init=False)
    items: ItemActions = field(init=False)
    skills: SkillActions = field(init=False)

    def __post_init__(self) -> None:
        self.npc = NpcActions(self.context)
        self.shop = ShopActions(self.context)
        self.items = ItemActions(self.context)
        self.skills = SkillActions(self.context)

    async def start(self) -> None:
        await self.client.start()

    async def stop(self) -> None:
        await self.client.stop()

    async def __aenter__(self) -> "Engine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()


def build_engine(
    world: WorldState,
    *,
    settings: Optional[EngineSettings] = None,
    transport_factory: Optional[Callable[[EngineSettings], BaseTransport]] = None,
    navigator: Optional[Navigator] = None,
    skills: Optional[SkillSelector] = None,
    opcodes: OpcodeTable = DEFAULT_OPCODES,
) -> Engine:
    """Construct (but do not start) an engine for ``world``."""

    settings = settings or get_settings()
    client = PacketClient(
        settings=settings,
        transport_factory=transport_factory or resolve_transport(settings),
    )
    context = ActionContext(
        settings=settings,
        dispatcher=client.dispatcher,
        world=world,
        opcodes=opcodes,
        navigator=navigator,
        skills=skills,
    )
    return Engine(client=client, context=context)
