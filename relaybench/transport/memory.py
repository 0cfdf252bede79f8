"""In-process relay for offline runs and tests.

Behaves like a group-messaging daemon serving several accounts: a message
sent to a group lands in the inbox of every other member and on the
daemon-wide push stream. Delivery can be made imperfect in the ways a real
relay is: duplicated (at-least-once), delayed with jitter (which reorders),
shuffled within a poll batch, and throttled by a token bucket that answers
with a rate-limit challenge.

Example::

    relay = InMemoryRelay(["+100", "+200"], seed=1, duplicate_rate=0.2)
    await relay.send("+100", "group", "hello")
    events = await relay.receive("+200", max_messages=10, timeout=0)
"""

from __future__ import annotations

import asyncio
import copy
import logging
import random
import time
from collections import defaultdict
from collections.abc import AsyncIterator, Callable, Iterable

from relaybench.core.update import wall_ms
from relaybench.errors import RateLimitedError
from relaybench.transport.protocol import RelayEvent
from relaybench.transport.rate_limit import TokenBucketPolicy

logger = logging.getLogger(__name__)

DEFAULT_CHALLENGE = "signalcaptcha://relaybench.local-challenge"

_CLOSED = object()


def make_event(
    sender: str,
    group_id: str,
    message: object,
    timestamp: int | None = None,
) -> RelayEvent:
    """Build a relay event in the signal-cli JSON shape."""
    ts = wall_ms() if timestamp is None else timestamp
    return {
        "envelope": {
            "source": sender,
            "sourceNumber": sender,
            "timestamp": ts,
            "dataMessage": {
                "timestamp": ts,
                "message": message,
                "groupInfo": {"groupId": group_id, "type": "DELIVER"},
            },
        }
    }


class InMemoryRelay:
    """Group relay held entirely in memory.

    Args:
        accounts: Accounts that are members of every group from the start.
            Senders are added automatically.
        seed: Seed for duplicate/jitter/shuffle decisions.
        duplicate_rate: Probability that a message is delivered twice.
        delivery_delay: Base seconds between send and delivery.
        jitter: Extra uniform random delay in ``[0, jitter]`` seconds.
        reorder: Shuffle each poll batch.
        rate_limit: Optional token bucket applied to sends.
        challenge: Challenge token reported with rate-limit errors.
        clock: Monotonic clock in seconds driving the token bucket.
    """

    def __init__(
        self,
        accounts: Iterable[str] = (),
        *,
        seed: int | None = None,
        duplicate_rate: float = 0.0,
        delivery_delay: float = 0.0,
        jitter: float = 0.0,
        reorder: bool = False,
        rate_limit: TokenBucketPolicy | None = None,
        challenge: str = DEFAULT_CHALLENGE,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not 0.0 <= duplicate_rate <= 1.0:
            raise ValueError(f"duplicate_rate must be in [0, 1], got {duplicate_rate}")
        self._members: set[str] = set(accounts)
        self._rng = random.Random(seed)
        self._duplicate_rate = duplicate_rate
        self._delivery_delay = delivery_delay
        self._jitter = jitter
        self._reorder = reorder
        self._rate_limit = rate_limit
        self._challenge = challenge
        self._clock = clock

        self._inboxes: dict[str, list[RelayEvent]] = defaultdict(list)
        self._arrivals: dict[str, asyncio.Event] = {}
        self._subscribers: list[asyncio.Queue] = []
        self._pending: set[asyncio.TimerHandle] = set()

        self.sent_count = 0
        self.delivered_count = 0
        self.rate_limited_count = 0

    @property
    def members(self) -> frozenset[str]:
        return frozenset(self._members)

    def join(self, account: str) -> None:
        self._members.add(account)

    async def send(self, account: str, group_id: str, message: str) -> None:
        if self._rate_limit is not None and not self._rate_limit.try_acquire(self._clock()):
            self.rate_limited_count += 1
            wait = self._rate_limit.time_until_available(self._clock())
            raise RateLimitedError(
                f"rate limit exceeded for {account}",
                challenge=self._challenge,
                options=["captcha"],
                wait_seconds=wait,
            )

        self.join(account)
        self.sent_count += 1
        event = make_event(account, group_id, message)
        copies = 2 if self._rng.random() < self._duplicate_rate else 1

        for _ in range(copies):
            delay = self._delivery_delay + (self._rng.uniform(0, self._jitter) if self._jitter else 0.0)
            if delay > 0:
                self._schedule(delay, event, account)
            else:
                self._deliver(event, account)

    def _schedule(self, delay: float, event: RelayEvent, sender: str) -> None:
        handles: list[asyncio.TimerHandle] = []

        def fire() -> None:
            self._pending.discard(handles[0])
            self._deliver(event, sender)

        handles.append(asyncio.get_running_loop().call_later(delay, fire))
        self._pending.add(handles[0])

    def _deliver(self, event: RelayEvent, sender: str | None) -> None:
        for member in self._members:
            if member == sender:
                continue
            self._inboxes[member].append(copy.deepcopy(event))
            arrival = self._arrivals.get(member)
            if arrival is not None:
                arrival.set()
        for queue in self._subscribers:
            queue.put_nowait(copy.deepcopy(event))
        self.delivered_count += 1

    def inject(self, event: RelayEvent) -> None:
        """Deliver a raw event to every member and push subscriber as-is."""
        self._deliver(event, None)

    async def receive(self, account: str, max_messages: int, timeout: float) -> list[RelayEvent]:
        self.join(account)
        inbox = self._inboxes[account]
        if not inbox and timeout > 0:
            arrival = self._arrivals.setdefault(account, asyncio.Event())
            arrival.clear()
            try:
                await asyncio.wait_for(arrival.wait(), timeout)
            except asyncio.TimeoutError:
                return []
        batch = inbox[:max_messages]
        del inbox[:max_messages]
        if self._reorder:
            self._rng.shuffle(batch)
        return batch

    async def events(self) -> AsyncIterator[RelayEvent]:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            while True:
                event = await queue.get()
                if event is _CLOSED:
                    return
                yield event
        finally:
            self._subscribers.remove(queue)

    async def drain(self) -> None:
        """Wait until every delayed delivery has fired."""
        while self._pending:
            await asyncio.sleep(0.001)

    def close(self) -> None:
        """End every push stream and drop undelivered messages."""
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()
        for queue in self._subscribers:
            queue.put_nowait(_CLOSED)
