"""Protocols for the group-messaging relay the benchmark talks through.

A relay is anything that can post a text message to a group on behalf of
an account and hand back the events an account has received. Push-capable
relays also expose a long-lived event stream.

Event records follow the signal-cli JSON shape; only these fields are
read::

    {"envelope": {"source": "+4100000001",
                  "timestamp": 1700000000000,
                  "dataMessage": {"timestamp": 1700000000000,
                                  "message": "<wire message>",
                                  "groupInfo": {"groupId": "..."}}}}
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

RelayEvent = dict[str, Any]


@runtime_checkable
class Relay(Protocol):
    """Request/poll surface of a relay."""

    async def send(self, account: str, group_id: str, message: str) -> None:
        """Post ``message`` to ``group_id`` as ``account``.

        Raises:
            RateLimitedError: The relay throttled the request.
            TransportError: Any other failure.
        """
        ...

    async def receive(
        self, account: str, max_messages: int, timeout: float
    ) -> list[RelayEvent]:
        """One-shot poll of the events queued for ``account``.

        Raises:
            TransportError: The relay could not be reached.
        """
        ...


@runtime_checkable
class PushRelay(Relay, Protocol):
    """A relay that can also push events as they arrive."""

    def events(self) -> AsyncIterator[RelayEvent]:
        """Long-lived stream of received events for every account."""
        ...
