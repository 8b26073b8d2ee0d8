"""Entity references, kind capabilities and item snapshots."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class EntityKind(enum.Enum):
    PLAYER = "player"
    MONSTER = "monster"
    NPC = "npc"
    MERC = "merc"
    OBJECT = "object"
    ITEM = "item"

    @property
    def capabilities(self) -> "KindCapabilities":
        return KIND_CAPABILITIES[self]

    @property
    def wire_type(self) -> int:
        return KIND_CAPABILITIES[self].wire_type


@dataclass(frozen=True)
class KindCapabilities:
    """What an entity kind can be addressed with."""

    wire_type: int
    npc_like: bool = False
    is_item: bool = False
    telekinesis_target: bool = False
    enchant_target: bool = False


KIND_CAPABILITIES: dict[EntityKind, KindCapabilities] = {
    EntityKind.PLAYER: KindCapabilities(wire_type=0, enchant_target=True),
    EntityKind.MONSTER: KindCapabilities(wire_type=1, telekinesis_target=True, enchant_target=True),
    EntityKind.NPC: KindCapabilities(wire_type=1, npc_like=True),
    EntityKind.MERC: KindCapabilities(wire_type=1, enchant_target=True),
    EntityKind.OBJECT: KindCapabilities(wire_type=2, telekinesis_target=True),
    EntityKind.ITEM: KindCapabilities(wire_type=4, is_item=True, telekinesis_target=True),
}


@dataclass(frozen=True)
class EntityRef:
    """Lookup key for a live entity; the entity itself may vanish at any time."""

    kind: EntityKind
    id: int

    def __post_init__(self) -> None:
        if not 0 <= self.id <= 0xFFFFFFFF:
            raise ValueError(f"Entity id {self.id} outside 32-bit range")

    @property
    def wire_type(self) -> int:
        return self.kind.wire_type


class Hand(enum.IntEnum):
    RIGHT = 0
    LEFT = 1


class Skill(enum.IntEnum):
    TELEKINESIS = 43
    ENCHANT = 52
    TELEPORT = 54


class ItemLocation(enum.Enum):
    GROUND = "ground"
    EQUIPPED = "equipped"
    BELT = "belt"
    INVENTORY = "inventory"
    STASH = "stash"
    CUBE = "cube"
    CURSOR = "cursor"
    SHOP = "shop"


class ItemType(enum.IntEnum):
    HEALING_POTION = 76
    MANA_POTION = 77
    REJUV_POTION = 78
    STAMINA_POTION = 79
    ANTIDOTE_POTION = 80
    THAWING_POTION = 81


MERC_POTION_TYPES = frozenset(
    {
        ItemType.HEALING_POTION,
        ItemType.REJUV_POTION,
        ItemType.THAWING_POTION,
        ItemType.ANTIDOTE_POTION,
    }
)


@dataclass(frozen=True)
class ItemInfo:
    """Point-in-time read of an item's state."""

    ref: EntityRef
    class_id: int = 0
    item_type: int = 0
    location: ItemLocation = ItemLocation.INVENTORY
    sellable: bool = True
    identified: bool = True
    body_location: int = 0
    quantity: Optional[int] = None
    cost: int = 0

    @property
    def stackable(self) -> bool:
        return self.quantity is not None

    @property
    def equipped(self) -> bool:
        return self.location is ItemLocation.EQUIPPED

    @property
    def in_belt(self) -> bool:
        return self.location is ItemLocation.BELT

    @property
    def is_merc_potion(self) -> bool:
        return self.item_type in MERC_POTION_TYPES
