"""Tests for the IdlePoller state machine."""

import asyncio

import pytest

from relaybench.core.poller import IdlePoller, PollerState
from relaybench.errors import RateLimitedError, TransportError


def _rounds(*results):
    """Round function returning (or raising) the given results in order, then 0."""
    queue = list(results)

    async def one_round():
        if not queue:
            return 0
        value = queue.pop(0)
        if isinstance(value, Exception):
            raise value
        return value

    return one_round


class TestRecord:
    def test_productive_round_resets_idle(self):
        poller = IdlePoller(target_count=10, max_idle_rounds=3)
        poller.record(0)
        poller.record(0)
        assert poller.record(2) is PollerState.POLLING
        assert poller.idle_rounds == 0
        assert poller.collected == 2

    def test_reaching_target_satisfies(self):
        poller = IdlePoller(target_count=3, max_idle_rounds=3)
        assert poller.record(3) is PollerState.SATISFIED

    def test_idle_budget_gives_up(self):
        poller = IdlePoller(target_count=3, max_idle_rounds=2)
        assert poller.record(0) is PollerState.BACKING_OFF
        assert poller.record(0) is PollerState.GAVE_UP

    def test_invalid_budget(self):
        with pytest.raises(ValueError):
            IdlePoller(target_count=1, max_idle_rounds=0)


class TestRun:
    """The async loop, with a recording sleep."""

    def test_satisfied_without_sleeping(self, recording_sleep):
        poller = IdlePoller(5, max_idle_rounds=3, sleep=recording_sleep)
        outcome = asyncio.run(poller.run(_rounds(2, 3)))
        assert outcome.state is PollerState.SATISFIED
        assert outcome.collected == 5
        assert outcome.rounds == 2
        assert recording_sleep.calls == []

    def test_gives_up_after_max_idle_rounds(self, recording_sleep):
        poller = IdlePoller(5, max_idle_rounds=3, idle_delay=0.5, sleep=recording_sleep)
        outcome = asyncio.run(poller.run(_rounds()))
        assert outcome.state is PollerState.GAVE_UP
        assert outcome.rounds == 3
        assert outcome.idle_rounds == 3
        # No sleep after the final idle round.
        assert recording_sleep.calls == [0.5, 0.5]

    def test_partial_collection_reported_on_give_up(self, recording_sleep):
        poller = IdlePoller(10, max_idle_rounds=2, sleep=recording_sleep)
        outcome = asyncio.run(poller.run(_rounds(4)))
        assert outcome.state is PollerState.GAVE_UP
        assert outcome.collected == 4
        assert not outcome.satisfied

    def test_zero_target_is_immediately_satisfied(self, recording_sleep):
        calls = []

        async def one_round():
            calls.append(1)
            return 0

        outcome = asyncio.run(IdlePoller(0, 3, sleep=recording_sleep).run(one_round))
        assert outcome.satisfied
        assert calls == []

    def test_rate_limit_waits_for_hint(self, recording_sleep):
        poller = IdlePoller(1, max_idle_rounds=5, idle_delay=1.0, error_delay=2.0, sleep=recording_sleep)
        limited = RateLimitedError("slow down", challenge="tok", wait_seconds=7.5)
        outcome = asyncio.run(poller.run(_rounds(limited, 1)))
        assert outcome.satisfied
        assert outcome.errors == 1
        assert recording_sleep.calls == [7.5]

    def test_rate_limit_without_hint_uses_error_delay(self, recording_sleep):
        poller = IdlePoller(1, max_idle_rounds=5, idle_delay=1.0, error_delay=2.0, sleep=recording_sleep)
        outcome = asyncio.run(poller.run(_rounds(RateLimitedError(), 1)))
        assert outcome.satisfied
        assert recording_sleep.calls == [2.0]

    def test_transport_error_counts_as_idle(self, recording_sleep):
        poller = IdlePoller(1, max_idle_rounds=2, error_delay=0.25, sleep=recording_sleep)
        outcome = asyncio.run(poller.run(_rounds(TransportError("down"), TransportError("down"))))
        assert outcome.state is PollerState.GAVE_UP
        assert outcome.errors == 2
        assert recording_sleep.calls == [0.25]

    def test_outcome_to_dict(self, recording_sleep):
        outcome = asyncio.run(IdlePoller(1, 1, sleep=recording_sleep).run(_rounds(1)))
        assert outcome.to_dict() == {
            "state": "satisfied", "collected": 1, "rounds": 1, "idle_rounds": 0, "errors": 0,
        }
