"""Records that flow through one benchmark run.

Updates, envelopes and decoded updates are transient and scoped to a single
in-flight message. They are frozen: once a replica hands an update to the
transport it is copied by value and never mutated again.
"""

from __future__ import annotations

import itertools
import threading
import time
import uuid
from dataclasses import dataclass, field


def wall_ms() -> int:
    """Current wall-clock time in integer milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class Update:
    """A locally produced CRDT update.

    Attributes:
        id: Monotonic per-run identifier.
        payload: Raw engine update bytes.
        produced_at: Wall-clock ms when the update was captured.
    """

    id: int
    payload: bytes
    produced_at: int

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class Envelope:
    """The fields of a relay event the benchmark reads.

    ``run_id`` is None for untagged (raw base64) messages.
    """

    run_id: str | None
    group_id: str
    sender_account: str
    timestamp: int
    payload: bytes


@dataclass(frozen=True)
class DecodedUpdate:
    """An accepted envelope after codec decoding."""

    id: int
    raw_update: bytes
    sender_account: str
    envelope_timestamp: int
    received_at: int


@dataclass(frozen=True)
class ReplicaSnapshot:
    """Encoded replica state, used to seed a freshly loaded replica."""

    encoded_state: bytes
    text_length: int


@dataclass(frozen=True)
class EditOp:
    """One primitive local edit: delete ``delete_count`` chars at ``pos``, then insert."""

    pos: int
    insert: str = ""
    delete_count: int = 0


@dataclass(frozen=True)
class RunSession:
    """Identity of one scenario run on a shared relay channel.

    Every scenario gets a fresh run id and start time so leftover traffic
    from earlier runs on the same group is never admitted.
    """

    group_id: str
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: int = field(default_factory=wall_ms)


class UpdateIds:
    """Monotonic update-id allocator shared by the replicas of one scenario."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()
        self._last = start - 1

    def next(self) -> int:
        with self._lock:
            self._last = next(self._counter)
            return self._last

    @property
    def last(self) -> int:
        """Most recently issued id (``start - 1`` before the first call)."""
        return self._last
