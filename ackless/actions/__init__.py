"""Action transactions composed from dispatch, poll and retry."""

from .context import ActionContext
from .items import ItemActions
from .npc import NpcActions, TradeMode
from .shop import ShopActions
from .skills import SkillActions

__all__ = [
    "ActionContext",
    "ItemActions",
    "NpcActions",
    "ShopActions",
    "SkillActions",
    "TradeMode",
]
