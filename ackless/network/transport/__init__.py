"""Transport implementations for the packet channel."""

from .base import BaseTransport
from .dummy import DummyTransport
from .websocket import WebSocketTransport

__all__ = ["BaseTransport", "DummyTransport", "WebSocketTransport"]
