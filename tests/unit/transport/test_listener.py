"""Tests for PushListener."""

import asyncio

import pytest

from relaybench.core.update import RunSession, Update
from relaybench.transport.bridge import TransportBridge
from relaybench.transport.listener import PushListener
from relaybench.transport.memory import InMemoryRelay, make_event

A = "+4100000001"
B = "+4100000002"


def _bridge(relay: InMemoryRelay) -> TransportBridge:
    return TransportBridge(relay, RunSession(group_id="g"))


class TestPushListener:
    """Forwarding from the push stream into the queue."""

    def test_forwards_accepted_updates(self):
        async def scenario():
            relay = InMemoryRelay([A, B])
            bridge = _bridge(relay)
            listener = PushListener(bridge)
            await listener.start()
            try:
                await bridge.send(A, Update(id=1, payload=b"one", produced_at=0))
                await bridge.send(B, Update(id=2, payload=b"two", produced_at=0))
                first = await asyncio.wait_for(listener.queue.get(), 1.0)
                second = await asyncio.wait_for(listener.queue.get(), 1.0)
            finally:
                await listener.close(timeout=1.0)
            return listener, [first.id, second.id]

        listener, ids = asyncio.run(scenario())
        assert ids == [1, 2]
        assert listener.forwarded == 2
        assert not listener.running

    def test_filtered_events_are_not_queued(self):
        async def scenario():
            relay = InMemoryRelay([A, B])
            listener = PushListener(_bridge(relay))
            await listener.start()
            try:
                relay.inject(make_event(A, "other-group", "ignored"))
                await asyncio.sleep(0.01)
                return listener.queue.qsize()
            finally:
                await listener.close(timeout=1.0)

        assert asyncio.run(scenario()) == 0

    def test_close_returns_promptly_when_idle(self):
        async def scenario():
            listener = PushListener(_bridge(InMemoryRelay([A, B])))
            await listener.start()
            loop = asyncio.get_running_loop()
            started = loop.time()
            await listener.close(timeout=2.0)
            return listener, loop.time() - started

        listener, elapsed = asyncio.run(scenario())
        assert not listener.running
        assert elapsed < 1.0

    def test_close_without_start_is_noop(self):
        async def scenario():
            await PushListener(_bridge(InMemoryRelay())).close()

        asyncio.run(scenario())

    def test_start_twice_rejected(self):
        async def scenario():
            listener = PushListener(_bridge(InMemoryRelay([A, B])))
            await listener.start()
            try:
                await listener.start()
            finally:
                await listener.close()

        with pytest.raises(RuntimeError):
            asyncio.run(scenario())
