"""Bulk sending with a fixed number of concurrent workers.

Each worker takes the next job index, builds the update for it and sends
it, retrying on transport errors. Building happens synchronously between
taking the index and the first await, so update ids follow job order and
each replica transaction is captured whole.

Example::

    pool = SendPool(bridge, concurrency=8)
    jobs = [functools.partial(replica.apply_local_edit, op) for op in edits]
    report = await pool.run(jobs, account, collector)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from relaybench.core.update import Update, wall_ms
from relaybench.errors import RateLimitedError, TransportError
from relaybench.instrumentation.collector import MetricsCollector
from relaybench.transport.bridge import TransportBridge

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class SendReport:
    """Outcome of one ``SendPool.run``.

    Attributes:
        sent: Updates the relay accepted.
        failed: Updates given up on after ``max_attempts``.
        attempts: Send calls made, including retries.
        rate_limited: Attempts refused with a rate-limit error.
        total_bytes: Raw update bytes of all built updates.
    """

    sent: int
    failed: int
    attempts: int
    rate_limited: int
    total_bytes: int


class SendPool:
    """Sends updates through a bridge with bounded concurrency and retries.

    Args:
        bridge: Bridge used for sending.
        concurrency: Number of worker tasks.
        max_attempts: Send attempts per update before it counts as failed.
        retry_delay: Seconds between attempts when the relay gives no hint.
        sleep: Awaitable sleep, replaceable in tests.
    """

    def __init__(
        self,
        bridge: TransportBridge,
        concurrency: int = 8,
        max_attempts: int = 5,
        retry_delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._bridge = bridge
        self.concurrency = concurrency
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

        self._sent = 0
        self._failed = 0
        self._attempts = 0
        self._rate_limited = 0
        self._bytes = 0

    def report(self) -> SendReport:
        return SendReport(
            sent=self._sent,
            failed=self._failed,
            attempts=self._attempts,
            rate_limited=self._rate_limited,
            total_bytes=self._bytes,
        )

    def record(self, account: str, update: Update, collector: MetricsCollector | None) -> None:
        """Count a built update and stamp its send time in ``collector``."""
        self._bytes += update.size
        if collector is not None:
            collector.record_sent(update.id, account, update.size, wall_ms())

    async def send(self, account: str, update: Update) -> bool:
        """Send one update, retrying up to ``max_attempts`` times.

        Returns:
            True if the relay accepted it, False if every attempt failed.
        """
        for attempt in range(1, self.max_attempts + 1):
            self._attempts += 1
            try:
                await self._bridge.send(account, update)
            except RateLimitedError as e:
                self._rate_limited += 1
                delay = e.wait_seconds if e.wait_seconds is not None else self.retry_delay
                logger.warning(
                    "send of update #%d rate-limited (attempt %d/%d): challenge=%s options=%s wait=%s",
                    update.id, attempt, self.max_attempts, e.challenge, e.options, e.wait_seconds,
                )
            except TransportError as e:
                delay = self.retry_delay
                logger.warning("send of update #%d failed (attempt %d/%d): %s",
                               update.id, attempt, self.max_attempts, e)
            else:
                self._sent += 1
                return True
            if attempt < self.max_attempts:
                await self._sleep(delay)

        self._failed += 1
        logger.error("giving up on update #%d after %d attempts", update.id, self.max_attempts)
        return False

    async def run(
        self,
        jobs: Sequence[Callable[[], Update]],
        account: str,
        collector: MetricsCollector | None = None,
    ) -> SendReport:
        """Build and send every job's update from ``account``."""
        next_index = 0
        total = len(jobs)

        async def worker() -> None:
            nonlocal next_index
            while next_index < total:
                index = next_index
                next_index += 1
                update = jobs[index]()
                self.record(account, update, collector)
                await self.send(account, update)
                done = self._sent + self._failed
                if done % 100 == 0 or done == total:
                    logger.info("sent %d/%d updates as %s", done, total, account)

        workers = min(self.concurrency, total)
        await asyncio.gather(*(worker() for _ in range(workers)))
        return self.report()
