"""Packet channel: transport, connection, dispatcher and subscriptions."""

from ackless.network.client import PacketClient
from ackless.network.connection import Connection, ConnectionError, TransportNotReady
from ackless.network.dispatcher import CommandDispatcher
from ackless.network.subscriptions import Subscription, SubscriptionRegistry
from ackless.network.transport.base import BaseTransport
from ackless.network.transport.dummy import DummyTransport
from ackless.network.transport.websocket import WebSocketTransport

__all__ = [
    "PacketClient",
    "Connection",
    "ConnectionError",
    "TransportNotReady",
    "CommandDispatcher",
    "Subscription",
    "SubscriptionRegistry",
    "BaseTransport",
    "DummyTransport",
    "WebSocketTransport",
]
