import asyncio

import pytest

from ackless.config import EngineSettings
from ackless.network.subscriptions import SubscriptionRegistry
from ackless.protocol.command import InboundMessage


def _message(opcode: int, payload: bytes = b"") -> InboundMessage:
    return InboundMessage(opcode=opcode, payload=payload)


@pytest.mark.asyncio
async def test_dispatch_runs_callbacks_in_registration_order():
    registry = SubscriptionRegistry(EngineSettings())
    calls = []

    async def first(message: InboundMessage) -> None:
        calls.append(("first", message.opcode))

    def second(message: InboundMessage) -> None:
        calls.append(("second", message.opcode))

    registry.subscribe(0x9C, first)
    registry.subscribe([0x9C, 0x9D], second)

    assert await registry.dispatch(_message(0x9C)) == 2
    assert await registry.dispatch(_message(0x9D)) == 1
    assert await registry.dispatch(_message(0x01)) == 0
    assert calls == [("first", 0x9C), ("second", 0x9C), ("second", 0x9D)]


@pytest.mark.asyncio
async def test_unsubscribe_during_dispatch_skips_remaining_entry():
    registry = SubscriptionRegistry(EngineSettings())
    calls = []
    tokens = {}

    def first(message: InboundMessage) -> None:
        calls.append("first")
        registry.unsubscribe(tokens["second"])

    def second(message: InboundMessage) -> None:
        calls.append("second")

    tokens["first"] = registry.subscribe(0x9C, first)
    tokens["second"] = registry.subscribe(0x9C, second)

    await registry.dispatch(_message(0x9C))

    assert calls == ["first"]
    assert registry.unsubscribe(tokens["second"]) is False
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_publish_delivers_through_opcode_lane():
    registry = SubscriptionRegistry(EngineSettings())
    received = []
    registry.subscribe(0x9C, lambda message: received.append(message.payload))

    await registry.publish(_message(0x9C, b"\x01"))
    await registry.publish(_message(0x9C, b"\x02"))
    await registry.publish(_message(0x10, b"\x03"))
    await registry.drain()

    assert received == [b"\x01", b"\x02"]
    await registry.close()
    with pytest.raises(RuntimeError):
        registry.subscribe(0x9C, lambda message: None)


@pytest.mark.asyncio
async def test_callback_timeout_enters_cooldown():
    settings = EngineSettings(
        subscription_callback_timeout_seconds=0.01,
        subscription_max_failures=1,
        subscription_failure_cooldown_seconds=0.1,
    )
    registry = SubscriptionRegistry(settings)
    calls = {"count": 0}

    async def slow(message: InboundMessage) -> None:
        calls["count"] += 1
        await asyncio.sleep(0.05)

    registry.subscribe(0x9C, slow)

    await registry.dispatch(_message(0x9C))
    assert calls["count"] == 1

    await registry.dispatch(_message(0x9C))
    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_failing_callback_does_not_block_others(caplog):
    registry = SubscriptionRegistry(EngineSettings())
    calls = []

    def broken(message: InboundMessage) -> None:
        raise RuntimeError("boom")

    registry.subscribe(0x9C, broken)
    registry.subscribe(0x9C, lambda message: calls.append(message.opcode))

    with caplog.at_level("WARNING"):
        await registry.dispatch(_message(0x9C))

    assert calls == [0x9C]
    assert any("raised for opcode" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_lane_drop_oldest():
    settings = EngineSettings(subscription_queue_max=1, subscription_queue_overflow="drop_oldest")
    registry = SubscriptionRegistry(settings)
    registry.subscribe(0x9C, lambda message: None)

    queue = asyncio.Queue(maxsize=1)
    await queue.put(_message(0x9C, b"old"))
    registry._lanes[0x9C] = queue

    await registry.publish(_message(0x9C, b"new"))

    assert queue.qsize() == 1
    item = await queue.get()
    assert item.payload == b"new"


def test_subscribe_validates_opcodes():
    registry = SubscriptionRegistry(EngineSettings())
    with pytest.raises(ValueError):
        registry.subscribe([], lambda message: None)
    with pytest.raises(ValueError):
        registry.subscribe(0x100, lambda message: None)


@pytest.mark.asyncio
async def test_unsubscribe_applies_to_messages_already_queued():
    registry = SubscriptionRegistry(EngineSettings())
    gone, kept = [], []
    token = registry.subscribe(0x9C, lambda message: gone.append(message.payload))
    registry.subscribe(0x9C, lambda message: kept.append(message.payload))

    await registry.publish(_message(0x9C, b"\x01"))
    await registry.publish(_message(0x9C, b"\x02"))
    assert registry.unsubscribe(token) is True
    await registry.publish(_message(0x9C, b"\x03"))
    await registry.drain()

    assert gone == []
    assert kept == [b"\x01", b"\x02", b"\x03"]
    await registry.close()
