"""TransportBridge: the benchmark's only view of the relay.

Outbound, it frames and wraps updates and posts them to the session's
group. Inbound, it turns raw relay events into ``DecodedUpdate`` records
with one filter shared by the poll and push paths:

1. events without a data message are ignored;
2. the group id must match the session's group;
3. the message timestamp must not predate the session's start;
4. the payload must decode (malformed payloads are logged and dropped);
5. a tagged message must carry the session's run id. Untagged messages
   (bare base64 frames) pass only when ``accept_untagged`` is set.

Rate-limit errors from the relay propagate unchanged; retry policy belongs
to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from relaybench.core.codec import MessageCodec, decode_message, wrap
from relaybench.core.update import DecodedUpdate, Envelope, RunSession, Update, wall_ms
from relaybench.errors import CodecError, TransportError
from relaybench.transport.protocol import PushRelay, Relay, RelayEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BridgeStats:
    """Counters for inbound filtering.

    Attributes:
        accepted: Events that passed every filter.
        dropped_no_data: Events without a data message (receipts, typing...).
        dropped_group: Events for another group.
        dropped_stale: Events older than the session start.
        dropped_run: Events tagged with another run (or untagged, when refused).
        dropped_malformed: Events whose payload failed to decode.
    """

    accepted: int = 0
    dropped_no_data: int = 0
    dropped_group: int = 0
    dropped_stale: int = 0
    dropped_run: int = 0
    dropped_malformed: int = 0

    @property
    def dropped(self) -> int:
        return (
            self.dropped_no_data
            + self.dropped_group
            + self.dropped_stale
            + self.dropped_run
            + self.dropped_malformed
        )


def unwrap_event(event: Any) -> dict | None:
    """Strip a JSON-RPC notification wrapper from a pushed event, if present."""
    if not isinstance(event, dict):
        return None
    if "envelope" in event:
        return event
    params = event.get("params")
    if isinstance(params, dict):
        if isinstance(params.get("result"), dict):
            return params["result"]
        if "envelope" in params:
            return params
    return None


class TransportBridge:
    """Sends and receives updates for one run session.

    Args:
        relay: The relay client.
        session: Group and run identity used for filtering.
        codec: Frame codec.
        accept_untagged: Admit bare base64 messages that carry no run id.
    """

    def __init__(
        self,
        relay: Relay,
        session: RunSession,
        codec: MessageCodec | None = None,
        accept_untagged: bool = True,
    ):
        self._relay = relay
        self._session = session
        self._codec = codec or MessageCodec()
        self._accept_untagged = accept_untagged

        self._accepted = 0
        self._dropped_no_data = 0
        self._dropped_group = 0
        self._dropped_stale = 0
        self._dropped_run = 0
        self._dropped_malformed = 0

    @property
    def session(self) -> RunSession:
        return self._session

    @property
    def supports_push(self) -> bool:
        return isinstance(self._relay, PushRelay)

    @property
    def stats(self) -> BridgeStats:
        """Return a frozen snapshot of filtering counters."""
        return BridgeStats(
            accepted=self._accepted,
            dropped_no_data=self._dropped_no_data,
            dropped_group=self._dropped_group,
            dropped_stale=self._dropped_stale,
            dropped_run=self._dropped_run,
            dropped_malformed=self._dropped_malformed,
        )

    async def send(self, sender_account: str, update: Update) -> None:
        """Post one update to the session's group.

        Raises:
            RateLimitedError: Passed through from the relay.
            TransportError: The relay failed.
        """
        frame = self._codec.encode(update.id, update.payload)
        message = wrap(self._session.run_id, update.id, frame)
        try:
            await self._relay.send(sender_account, self._session.group_id, message)
        except TransportError:
            raise
        except (OSError, asyncio.TimeoutError) as e:
            raise TransportError(f"send of update {update.id} failed: {e}") from e
        logger.debug("sent update #%d (%d bytes) as %s", update.id, update.size, sender_account)

    async def receive_batch(
        self, account: str, max_messages: int = 1000, timeout: float = 0.0
    ) -> list[DecodedUpdate]:
        """Poll the relay once and return the accepted updates."""
        try:
            events = await self._relay.receive(account, max_messages, timeout)
        except TransportError:
            raise
        except (OSError, asyncio.TimeoutError) as e:
            raise TransportError(f"receive for {account} failed: {e}") from e

        received_at = wall_ms()
        accepted = []
        for event in events:
            update = self.accept(event, received_at)
            if update is not None:
                accepted.append(update)
        return accepted

    async def subscribe(self) -> AsyncIterator[DecodedUpdate]:
        """Yield accepted updates from the relay's push stream.

        Raises:
            TransportError: The relay has no push stream, or the stream failed.
        """
        if not isinstance(self._relay, PushRelay):
            raise TransportError(f"{type(self._relay).__name__} does not support push delivery")
        async for event in self._relay.events():
            update = self.accept(event)
            if update is not None:
                yield update

    def accept(self, event: RelayEvent, received_at: int | None = None) -> DecodedUpdate | None:
        """Apply the inbound filter to one raw relay event."""
        event = unwrap_event(event)
        source = event.get("envelope") if event else None
        data_message = source.get("dataMessage") if isinstance(source, dict) else None
        if not isinstance(data_message, dict):
            self._dropped_no_data += 1
            return None

        group_info = data_message.get("groupInfo")
        group_id = group_info.get("groupId") if isinstance(group_info, dict) else None
        if group_id != self._session.group_id:
            self._dropped_group += 1
            return None

        timestamp = data_message.get("timestamp", source.get("timestamp"))
        if not isinstance(timestamp, int) or timestamp < self._session.started_at:
            self._dropped_stale += 1
            return None

        try:
            wire, update_id, raw = decode_message(self._codec, data_message.get("message"))
        except CodecError as e:
            self._dropped_malformed += 1
            logger.warning("dropping malformed message at %s: %s", timestamp, e)
            return None

        envelope = Envelope(
            run_id=wire.run_id,
            group_id=group_id,
            sender_account=source.get("sourceNumber") or source.get("source") or "",
            timestamp=timestamp,
            payload=wire.frame,
        )
        if not self._same_run(envelope):
            self._dropped_run += 1
            logger.debug("dropping update #%d from run %s", update_id, envelope.run_id)
            return None

        self._accepted += 1
        return DecodedUpdate(
            id=update_id,
            raw_update=raw,
            sender_account=envelope.sender_account,
            envelope_timestamp=envelope.timestamp,
            received_at=received_at if received_at is not None else wall_ms(),
        )

    def _same_run(self, envelope: Envelope) -> bool:
        if envelope.run_id is None:
            return self._accept_untagged
        return envelope.run_id == self._session.run_id
