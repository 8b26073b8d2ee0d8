"""World model and collaborator interfaces."""

from .model import (
    KIND_CAPABILITIES,
    EntityKind,
    EntityRef,
    Hand,
    ItemInfo,
    ItemLocation,
    ItemType,
    KindCapabilities,
    Skill,
)
from .state import Navigator, SkillSelector, WorldState

__all__ = [
    "EntityKind",
    "EntityRef",
    "Hand",
    "ItemInfo",
    "ItemLocation",
    "ItemType",
    "KindCapabilities",
    "KIND_CAPABILITIES",
    "Skill",
    "Navigator",
    "SkillSelector",
    "WorldState",
]
