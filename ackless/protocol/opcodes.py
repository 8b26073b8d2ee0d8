"""Outbound opcode table.

The values default to the client-to-server command ids of the game protocol
the engine was first written against. A different protocol supplies its own
table; nothing in the engine hard-codes these numbers.
"""

from __future__ import annotations

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class OpcodeTable:
    """Outbound command ids used by the action transactions."""

    left_skill_on_location: int = 0x05
    left_skill_on_entity: int = 0x0A
    right_skill_on_location: int = 0x0C
    right_skill_on_entity: int = 0x11
    interact_with_entity: int = 0x13
    pickup_item: int = 0x16
    drop_item: int = 0x17
    pickup_buffer_item: int = 0x19
    pickup_body_item: int = 0x1C
    item_to_belt: int = 0x23
    use_belt_item: int = 0x26
    identify_item: int = 0x27
    npc_init: int = 0x2F
    npc_cancel: int = 0x30
    npc_buy: int = 0x32
    npc_sell: int = 0x33
    entity_action: int = 0x38
    update_quests: int = 0x40
    request_entity_update: int = 0x4B
    merc_item: int = 0x61

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if not 0 <= value <= 0xFF:
                raise ValueError(f"Opcode {item.name}={value} outside a single byte")

    def name(self, opcode: int) -> str:
        for item in fields(self):
            if getattr(self, item.name) == opcode:
                return item.name
        return f"unknown({opcode:#x})"


DEFAULT_OPCODES = OpcodeTable()
