"""Update sources: one round of inbound updates, whatever the delivery mode.

``PollingSource`` issues one relay poll per account per round.
``PushSource`` drains what a ``PushListener`` has queued, waiting a bounded
time for the first item. Both return a possibly-empty list, which is what
``IdlePoller`` rounds are built from.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from relaybench.core.update import DecodedUpdate
from relaybench.errors import TransportError
from relaybench.transport.bridge import TransportBridge
from relaybench.transport.listener import PushListener

logger = logging.getLogger(__name__)


class UpdateSource(Protocol):
    async def fetch(self) -> list[DecodedUpdate]:
        """Return the updates that arrived during one round."""
        ...


class PollingSource:
    """Polls the relay for each account in turn.

    Args:
        bridge: Bridge performing the polls.
        accounts: Accounts whose inboxes are polled each round.
        max_messages: Per-poll message cap.
        timeout: Seconds the relay may block waiting for messages.
    """

    def __init__(
        self,
        bridge: TransportBridge,
        accounts: list[str],
        max_messages: int = 1000,
        timeout: float = 0.0,
    ):
        if not accounts:
            raise ValueError("PollingSource needs at least one account")
        self._bridge = bridge
        self._accounts = list(accounts)
        self._max_messages = max_messages
        self._timeout = timeout

    async def fetch(self) -> list[DecodedUpdate]:
        """Poll every account once.

        A failing account does not discard what the other accounts already
        returned, since the relay has removed those messages from its
        inbox. The error is raised only when the round collected nothing.

        Raises:
            TransportError: A poll failed and no account returned updates.
        """
        batch: list[DecodedUpdate] = []
        error: TransportError | None = None
        for account in self._accounts:
            try:
                batch.extend(
                    await self._bridge.receive_batch(account, self._max_messages, self._timeout)
                )
            except TransportError as e:
                logger.warning("receive for %s failed: %s", account, e)
                error = e
        if error is not None and not batch:
            raise error
        return batch


class PushSource:
    """Reads from a running push listener.

    Args:
        listener: Started listener whose queue is drained.
        round_timeout: Seconds to wait for the first item of a round.
    """

    def __init__(self, listener: PushListener, round_timeout: float = 1.0):
        self._listener = listener
        self._round_timeout = round_timeout

    async def fetch(self) -> list[DecodedUpdate]:
        queue = self._listener.queue
        try:
            first = await asyncio.wait_for(queue.get(), self._round_timeout)
        except asyncio.TimeoutError:
            return []
        batch = [first]
        while not queue.empty():
            batch.append(queue.get_nowait())
        return batch
