"""Collaborator interfaces consumed by the action transactions.

Every read on ``WorldState`` must be instantaneous and free of side effects:
confirmation predicates call these on every poll tick.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .model import EntityRef, Hand, ItemInfo


class WorldState(ABC):
    """Read-only view of the remote world as currently observed."""

    @abstractmethod
    def game_ready(self) -> bool:
        ...

    @abstractmethod
    def latency_ms(self) -> int:
        """Latest round-trip estimate in milliseconds."""

    @abstractmethod
    def player(self) -> EntityRef:
        """The locally controlled character."""

    @abstractmethod
    def entity_exists(self, ref: EntityRef) -> bool:
        ...

    @abstractmethod
    def distance_to(self, ref: EntityRef) -> float:
        ...

    @abstractmethod
    def npc_menu_open(self) -> bool:
        ...

    @abstractmethod
    def shop_open(self) -> bool:
        ...

    @abstractmethod
    def trade_session_open(self, npc: EntityRef) -> bool:
        """True once the NPC's trade inventory has been populated."""

    @abstractmethod
    def interacted_npc(self) -> Optional[EntityRef]:
        ...

    @abstractmethod
    def talking_to_npc(self) -> bool:
        ...

    @abstractmethod
    def gold(self) -> int:
        ...

    @abstractmethod
    def item_count(self) -> int:
        ...

    @abstractmethod
    def item(self, ref: EntityRef) -> Optional[ItemInfo]:
        """Current snapshot of an item, or None when it no longer exists."""

    @abstractmethod
    def find_container_for(self, item: EntityRef) -> Optional[EntityRef]:
        """Container that absorbs a consumable (e.g. a tome for scrolls)."""

    @abstractmethod
    def identify_cursor_active(self) -> bool:
        ...

    @abstractmethod
    def item_on_cursor(self) -> bool:
        ...

    @abstractmethod
    def cursor_item(self) -> Optional[EntityRef]:
        ...


class Navigator(ABC):
    """Movement capability invoked before commands that need proximity."""

    @abstractmethod
    async def move_to(self, ref: EntityRef) -> bool:
        ...


class SkillSelector(ABC):
    """Selects the active skill on a hand; returns False when it could not."""

    @abstractmethod
    async def select(self, skill_id: int, hand: Hand) -> bool:
        ...
