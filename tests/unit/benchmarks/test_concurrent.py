"""Tests for the concurrent scenario's producers and task cleanup."""

import asyncio

import pytest

from relaybench.benchmarks import concurrent
from relaybench.benchmarks.orchestrator import BenchmarkOrchestrator
from relaybench.replica.pycrdt_engine import PycrdtFactory
from relaybench.transport.memory import InMemoryRelay


class BrokenSendRelay:
    """Poll-only relay whose sends fail with an unexpected error."""

    async def send(self, account, group_id, message):
        raise RuntimeError("socket closed")

    async def receive(self, account, max_messages, timeout):
        return []


class TaskRecordingPoller:
    """Wraps a poller and remembers the task its receive loop runs in."""

    def __init__(self, poller):
        self._poller = poller
        self.task = None

    async def run(self, round_fn):
        self.task = asyncio.current_task()
        return await self._poller.run(round_fn)


def _context(config, relay):
    return BenchmarkOrchestrator(PycrdtFactory(), config, relay).context(concurrent.NAME)


class TestProduce:
    def test_waits_only_for_its_own_replica_lock(self, fast_config):
        config = fast_config.replace(updates=2)

        async def scenario():
            ctx = _context(config, InMemoryRelay([config.account_a, config.account_b]))
            replica = ctx.replica("A")
            replica.seed("abc")
            own_lock, other_lock = asyncio.Lock(), asyncio.Lock()
            pool = ctx.send_pool()

            await other_lock.acquire()
            await concurrent._produce(ctx, replica, config.account_a, (0.0, 0.0), False,
                                      own_lock, pool)
            produced_with_other_held = replica.local_updates

            await own_lock.acquire()
            task = asyncio.create_task(
                concurrent._produce(ctx, replica, config.account_a, (0.0, 0.0), False,
                                    own_lock, pool)
            )
            await asyncio.sleep(0.01)
            produced_while_blocked = replica.local_updates
            own_lock.release()
            await task
            other_lock.release()
            return produced_with_other_held, produced_while_blocked, replica.local_updates

        assert asyncio.run(scenario()) == (2, 2, 4)


class TestCleanup:
    def test_receiver_task_finished_when_producers_fail(self, fast_config):
        async def scenario():
            ctx = _context(fast_config.replace(max_idle_rounds=50), BrokenSendRelay())
            make_poller = ctx.poller
            recorder = None

            def poller(target_count):
                nonlocal recorder
                recorder = TaskRecordingPoller(make_poller(target_count))
                return recorder

            ctx.poller = poller
            with pytest.raises(RuntimeError, match="socket closed"):
                await concurrent.run(ctx)
            return recorder.task

        receiver = asyncio.run(scenario())
        assert receiver.done()
        assert receiver.cancelled()
