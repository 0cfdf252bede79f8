"""Tests for TokenBucketPolicy."""

import pytest

from relaybench.transport.rate_limit import TokenBucketPolicy


class TestTokenBucketPolicy:
    """Token bucket driven by an explicit clock."""

    def test_starts_full(self):
        policy = TokenBucketPolicy(capacity=3, refill_rate=1.0)
        assert [policy.try_acquire(0.0) for _ in range(4)] == [True, True, True, False]

    def test_initial_tokens(self):
        policy = TokenBucketPolicy(capacity=3, refill_rate=1.0, initial_tokens=1)
        assert policy.try_acquire(0.0)
        assert not policy.try_acquire(0.0)

    def test_refills_over_time(self):
        policy = TokenBucketPolicy(capacity=2, refill_rate=2.0, initial_tokens=0)
        assert not policy.try_acquire(0.0)
        assert policy.try_acquire(0.5)
        assert not policy.try_acquire(0.5)

    def test_refill_capped_at_capacity(self):
        policy = TokenBucketPolicy(capacity=2, refill_rate=1.0, initial_tokens=0)
        policy.try_acquire(0.0)
        policy.try_acquire(100.0)
        assert policy.tokens == pytest.approx(1.0)

    def test_time_until_available(self):
        policy = TokenBucketPolicy(capacity=1, refill_rate=4.0, initial_tokens=0)
        assert policy.time_until_available(0.0) == pytest.approx(0.25)
        assert policy.time_until_available(0.25) == 0.0

    def test_clock_going_backwards_is_ignored(self):
        policy = TokenBucketPolicy(capacity=1, refill_rate=1.0, initial_tokens=0)
        policy.try_acquire(5.0)
        assert not policy.try_acquire(4.0)

    def test_invalid_refill_rate(self):
        with pytest.raises(ValueError):
            TokenBucketPolicy(refill_rate=0)
