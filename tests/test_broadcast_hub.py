"""Tests for BroadcastHub and SubscriberRegistry."""

import json

import pytest

from core.domain.entities.price_sample_entity import PriceSampleEntity
from core.services.broadcast_hub import BroadcastHub
from core.services.subscriber_registry import SubscriberRegistry
from fakes import FIXED_NOW, JLP_ID, FakeSubscriber

SAMPLES = [PriceSampleEntity(symbol="JLP", price=1.23, source_key=JLP_ID, observed_at=FIXED_NOW)]


@pytest.mark.asyncio
class TestBroadcastHub:
    """Unit tests for fan-out."""

    async def test_message_shape(self):
        registry = SubscriberRegistry()
        sub = FakeSubscriber()
        registry.add(sub)

        await BroadcastHub(registry=registry).broadcast(SAMPLES)

        message = json.loads(sub.sent[0])
        assert message["type"] == "PRICE_UPDATE"
        assert message["payload"] == [
            {"symbol": "JLP", "price": 1.23, "source_key": JLP_ID, "observed_at": "2025-01-15T12:00:00Z"}
        ]

    async def test_closed_subscriber_is_skipped(self):
        """All open subscribers get the message; the closed one neither receives nor errors."""
        registry = SubscriberRegistry()
        open_a, open_b, closed = FakeSubscriber(), FakeSubscriber(), FakeSubscriber(open_=False)
        for s in (open_a, open_b, closed):
            registry.add(s)

        delivered = await BroadcastHub(registry=registry).broadcast(SAMPLES)

        assert delivered == 2
        assert len(open_a.sent) == 1
        assert len(open_b.sent) == 1
        assert closed.sent == []

    async def test_send_error_does_not_abort_broadcast(self):
        registry = SubscriberRegistry()
        good, bad = FakeSubscriber(), FakeSubscriber(fail=True)
        registry.add(bad)
        registry.add(good)

        delivered = await BroadcastHub(registry=registry).broadcast(SAMPLES)

        assert delivered == 1
        assert len(good.sent) == 1
        assert bad in registry  # removal is left to the channel's own disconnect handling

    async def test_serialized_once(self):
        """Every subscriber gets the very same serialized string."""
        registry = SubscriberRegistry()
        subs = [FakeSubscriber() for _ in range(3)]
        for s in subs:
            registry.add(s)
        await BroadcastHub(registry=registry).broadcast(SAMPLES)
        assert len({id(s.sent[0]) for s in subs}) == 1

    async def test_empty_samples_send_nothing(self):
        registry = SubscriberRegistry()
        sub = FakeSubscriber()
        registry.add(sub)
        assert await BroadcastHub(registry=registry).broadcast([]) == 0
        assert sub.sent == []

    async def test_no_subscribers(self):
        assert await BroadcastHub(registry=SubscriberRegistry()).broadcast(SAMPLES) == 0


@pytest.mark.asyncio
class TestSubscriberChannel:
    async def test_close_handlers_run_once(self):
        sub = FakeSubscriber()
        calls = []

        async def handler(channel):
            calls.append(channel)

        sub.on_close(handler)
        await sub.notify_closed()
        await sub.notify_closed()
        assert calls == [sub]


class TestSubscriberRegistry:
    def test_set_semantics(self):
        registry = SubscriberRegistry()
        sub = FakeSubscriber()
        assert registry.add(sub) == 1
        assert registry.add(sub) == 1
        assert registry.remove(sub) == 0
        assert registry.remove(sub) == 0
        assert sub not in registry
