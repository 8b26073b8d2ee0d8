"""Outbound command model and inbound frame parsing.

A command is an opcode byte followed by an ordered list of unsigned
little-endian integers, each one, two or four bytes wide.
"""

from __future__ import annotations

import struct
from typing import Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

Width = Literal[1, 2, 4]

_WIDTH_FORMATS: dict[int, str] = {1: "<B", 2: "<H", 4: "<I"}


class CommandField(BaseModel):
    """A single fixed-width field of a command."""

    model_config = ConfigDict(frozen=True)

    width: Width
    value: int

    @model_validator(mode="after")
    def _check_range(self) -> "CommandField":
        limit = 1 << (8 * self.width)
        if not 0 <= self.value < limit:
            raise ValueError(f"value {self.value} does not fit in {self.width} byte(s)")
        return self

    def encode(self) -> bytes:
        return struct.pack(_WIDTH_FORMATS[self.width], self.value)


class Command(BaseModel):
    """Immutable opcode + field list handed to the outbound channel."""

    model_config = ConfigDict(frozen=True)

    opcode: int = Field(ge=0, le=0xFF)
    args: Tuple[CommandField, ...] = ()

    def encode(self) -> bytes:
        """Serialize the command to its wire bytes."""
        return struct.pack("<B", self.opcode) + b"".join(item.encode() for item in self.args)

    def __len__(self) -> int:
        return 1 + sum(item.width for item in self.args)

    def __repr__(self) -> str:
        rendered = ", ".join(f"{item.width}:{item.value:#x}" for item in self.args)
        return f"Command(opcode={self.opcode:#04x}, args=[{rendered}])"


def byte(value: int) -> CommandField:
    return CommandField(width=1, value=value)


def word(value: int) -> CommandField:
    return CommandField(width=2, value=value)


def dword(value: int) -> CommandField:
    return CommandField(width=4, value=value)


class InboundMessage(BaseModel):
    """A raw inbound frame split into its opcode and remaining payload."""

    model_config = ConfigDict(frozen=True)

    opcode: int = Field(ge=0, le=0xFF)
    payload: bytes = b""

    @property
    def raw(self) -> bytes:
        return bytes([self.opcode]) + self.payload


def parse_inbound(frame: bytes) -> InboundMessage:
    """Validate and split a raw inbound frame."""

    if not frame:
        raise ValueError("Inbound frame is empty")
    return InboundMessage(opcode=frame[0], payload=bytes(frame[1:]))
