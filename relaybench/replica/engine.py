"""Protocol for the replicated-text engines under benchmark.

An engine is an opaque CRDT text document. The benchmark never looks at
its internal merge algorithm; it relies only on:

- **Update capture**: every local transaction reports exactly one update
  through the ``on_update`` callback given at construction. Applying a
  remote update must not report one.
- **Idempotency**: applying the same update twice is the same as once.
- **Commutativity**: applying a set of updates in any order converges to
  the same text.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

OnUpdate = Callable[[bytes], None]


@runtime_checkable
class CrdtEngine(Protocol):
    """A single text document replica."""

    def insert_text(self, pos: int, text: str) -> None:
        """Insert ``text`` at character offset ``pos``."""
        ...

    def delete_text(self, pos: int, length: int) -> None:
        """Delete ``length`` characters starting at ``pos``."""
        ...

    def transact(self, fn: Callable[[], None]) -> None:
        """Run ``fn`` as one atomic batch producing a single update."""
        ...

    def apply_update(self, update: bytes) -> None:
        """Merge a remote update."""
        ...

    def get_text(self) -> str:
        ...

    def get_encoded_state(self) -> bytes:
        """Full document state, loadable with ``CrdtFactory.load``."""
        ...


@runtime_checkable
class CrdtFactory(Protocol):
    """Creates engines of one implementation."""

    @property
    def name(self) -> str:
        """Implementation name used in reports."""
        ...

    def create(self, on_update: OnUpdate) -> CrdtEngine:
        """Create an empty document."""
        ...

    def load(self, on_update: OnUpdate, encoded_state: bytes) -> CrdtEngine:
        """Create a document from ``get_encoded_state`` output."""
        ...
