"""Transport abstractions for the packet channel."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseTransport(ABC):
    """Abstract frame transport carrying encoded commands and inbound packets."""

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def send(self, frame: bytes) -> None:
        ...

    @abstractmethod
    async def receive(self) -> bytes:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
