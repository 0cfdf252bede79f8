"""Bounded-retry polling state machine shared by every receive loop.

Each round asks a source for new updates. A productive round resets the
idle counter; an empty round increments it and backs off. The loop ends
when the target count is reached (``SATISFIED``) or the idle budget runs
out (``GAVE_UP``). Giving up is a partial result, not an error.

Transport errors count as empty rounds after a fixed retry delay. A
rate-limit signal also counts as an empty round, but the next attempt
waits for the relay's own hint.

Example::

    poller = IdlePoller(target_count=100, max_idle_rounds=60, idle_delay=1.0)

    async def one_round() -> int:
        batch = await bridge.receive_batch(account)
        return sum(registry.admit(u.id, u.raw_update) is Admission.ACCEPTED for u in batch)

    outcome = await poller.run(one_round)
    if outcome.state is PollerState.GAVE_UP:
        print(f"partial: {outcome.collected}/100")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from relaybench.errors import RateLimitedError, TransportError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class PollerState(Enum):
    POLLING = "polling"
    BACKING_OFF = "backing_off"
    GAVE_UP = "gave_up"
    SATISFIED = "satisfied"

    @property
    def terminal(self) -> bool:
        return self in (PollerState.GAVE_UP, PollerState.SATISFIED)


@dataclass(frozen=True)
class PollOutcome:
    """Result of a finished poll loop.

    Attributes:
        state: ``SATISFIED`` or ``GAVE_UP``.
        collected: Updates accepted across all rounds.
        rounds: Rounds attempted, including failed ones.
        idle_rounds: Consecutive empty rounds at termination.
        errors: Rounds that ended in a transport error.
    """

    state: PollerState
    collected: int
    rounds: int
    idle_rounds: int
    errors: int = 0

    @property
    def satisfied(self) -> bool:
        return self.state is PollerState.SATISFIED

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "collected": self.collected,
            "rounds": self.rounds,
            "idle_rounds": self.idle_rounds,
            "errors": self.errors,
        }


class IdlePoller:
    """Drives rounds until the target is met or the idle budget is spent.

    Args:
        target_count: Accepted updates needed to stop with ``SATISFIED``.
        max_idle_rounds: Consecutive empty rounds before ``GAVE_UP``.
        idle_delay: Seconds to back off after an empty round.
        error_delay: Seconds to wait after a transport error.
        sleep: Awaitable sleep, replaceable in tests.
    """

    def __init__(
        self,
        target_count: int,
        max_idle_rounds: int,
        idle_delay: float = 1.0,
        error_delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_idle_rounds < 1:
            raise ValueError(f"max_idle_rounds must be >= 1, got {max_idle_rounds}")
        self.target_count = target_count
        self.max_idle_rounds = max_idle_rounds
        self.idle_delay = idle_delay
        self.error_delay = error_delay
        self._sleep = sleep

        self.state = PollerState.POLLING
        self.collected = 0
        self.rounds = 0
        self.idle_rounds = 0
        self.errors = 0

    def _transition(self, new_state: PollerState) -> None:
        if new_state is not self.state:
            logger.debug("poller %s -> %s (collected=%d/%d, idle=%d/%d)",
                         self.state.value, new_state.value, self.collected,
                         self.target_count, self.idle_rounds, self.max_idle_rounds)
        self.state = new_state

    def record(self, accepted: int) -> PollerState:
        """Account for one finished round and return the resulting state.

        Does not sleep; ``run`` handles backoff.
        """
        self.rounds += 1
        if accepted > 0:
            self.collected += accepted
            self.idle_rounds = 0
            if self.collected >= self.target_count:
                self._transition(PollerState.SATISFIED)
            else:
                self._transition(PollerState.POLLING)
            return self.state

        self.idle_rounds += 1
        if self.idle_rounds >= self.max_idle_rounds:
            logger.info("giving up after %d idle rounds (collected %d/%d)",
                        self.idle_rounds, self.collected, self.target_count)
            self._transition(PollerState.GAVE_UP)
        else:
            self._transition(PollerState.BACKING_OFF)
        return self.state

    def outcome(self) -> PollOutcome:
        return PollOutcome(
            state=self.state,
            collected=self.collected,
            rounds=self.rounds,
            idle_rounds=self.idle_rounds,
            errors=self.errors,
        )

    async def run(self, round_fn: Callable[[], Awaitable[int]]) -> PollOutcome:
        """Run rounds until a terminal state.

        Args:
            round_fn: Coroutine function returning the number of newly
                accepted updates in one round.
        """
        if self.target_count <= 0:
            self._transition(PollerState.SATISFIED)
            return self.outcome()

        while not self.state.terminal:
            self._transition(PollerState.POLLING)
            delay = self.idle_delay
            try:
                accepted = await round_fn()
            except RateLimitedError as e:
                self.errors += 1
                delay = e.wait_seconds if e.wait_seconds is not None else self.error_delay
                logger.warning("receive rate-limited, waiting %.1fs (challenge=%s)",
                               delay, e.challenge or "n/a")
                accepted = 0
            except TransportError as e:
                self.errors += 1
                delay = self.error_delay
                logger.warning("receive failed (%s), retrying in %.1fs", e, delay)
                accepted = 0

            if self.record(accepted) is PollerState.BACKING_OFF:
                await self._sleep(delay)

        return self.outcome()
