"""Token bucket used by the in-memory relay to imitate server-side throttling.

Times are plain float seconds from a monotonic clock, so the policy can be
driven by ``time.monotonic`` in a live run or by hand in tests.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class TokenBucketPolicy:
    """Token bucket rate limiter policy.

    Tokens refill at a constant rate up to a maximum capacity. Each
    request consumes one token. Allows controlled bursting up to the
    bucket capacity.

    Args:
        capacity: Maximum tokens the bucket can hold.
        refill_rate: Tokens added per second.
        initial_tokens: Starting token count (defaults to capacity).
    """

    def __init__(
        self,
        capacity: float = 10.0,
        refill_rate: float = 1.0,
        initial_tokens: float | None = None,
    ):
        if refill_rate <= 0:
            raise ValueError(f"refill_rate must be positive, got {refill_rate}")
        self._capacity = float(capacity)
        self._refill_rate = float(refill_rate)
        self._tokens = self._capacity if initial_tokens is None else float(initial_tokens)
        self._last_refill_time: float | None = None

    @property
    def capacity(self) -> float:
        return self._capacity

    @property
    def refill_rate(self) -> float:
        return self._refill_rate

    @property
    def tokens(self) -> float:
        return self._tokens

    def _refill(self, now: float) -> None:
        if self._last_refill_time is None:
            self._last_refill_time = now
            return
        elapsed = now - self._last_refill_time
        if elapsed <= 0:
            return
        self._tokens = min(self._capacity, self._tokens + elapsed * self._refill_rate)
        self._last_refill_time = now

    def try_acquire(self, now: float) -> bool:
        self._refill(now)
        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return True
        return False

    def time_until_available(self, now: float) -> float:
        """Seconds until the next token; 0.0 if one is available now."""
        self._refill(now)
        if self._tokens >= 1.0:
            return 0.0
        return (1.0 - self._tokens) / self._refill_rate
