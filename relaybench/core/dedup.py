"""At-most-once admission of received updates.

A relay delivers at least once, so the same update id can arrive several
times, possibly through both a push subscription and a poll. The registry
admits each id once; every later arrival is a ``DUPLICATE`` with no side
effect, even when its bytes differ (first seen wins).
"""

from __future__ import annotations

import threading
from enum import Enum


class Admission(Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"


class DedupRegistry:
    """Tracks observed update ids for one scenario.

    ``admit`` is atomic under a lock, so concurrent receive paths never
    both accept the same id.
    """

    def __init__(self) -> None:
        self._entries: dict[int, bytes] = {}
        self._lock = threading.Lock()
        self._duplicates = 0

    def admit(self, update_id: int, raw: bytes) -> Admission:
        with self._lock:
            if update_id in self._entries:
                self._duplicates += 1
                return Admission.DUPLICATE
            self._entries[update_id] = raw
            return Admission.ACCEPTED

    def get(self, update_id: int) -> bytes | None:
        with self._lock:
            return self._entries.get(update_id)

    def ordered(self) -> list[tuple[int, bytes]]:
        """All admitted ``(id, raw)`` pairs, ascending by id."""
        with self._lock:
            return sorted(self._entries.items())

    @property
    def duplicates(self) -> int:
        """Number of rejected duplicate arrivals."""
        return self._duplicates

    def __contains__(self, update_id: object) -> bool:
        with self._lock:
            return update_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"DedupRegistry(admitted={len(self)}, duplicates={self._duplicates})"
