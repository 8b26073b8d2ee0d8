from .command import Command, CommandField, InboundMessage, byte, dword, parse_inbound, word
from .opcodes import DEFAULT_OPCODES, OpcodeTable

__all__ = [
    "Command",
    "CommandField",
    "InboundMessage",
    "byte",
    "word",
    "dword",
    "parse_inbound",
    "OpcodeTable",
    "DEFAULT_OPCODES",
]
