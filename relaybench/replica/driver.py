"""ReplicaDriver: one engine plus the update it produced last.

The driver turns local edits into ``Update`` records (one atomic
transaction, one update, one id) and applies remote update bytes with
timing. It does not check for duplicates; ``DedupRegistry`` does that
upstream, and the engine's merge is idempotent anyway.
"""

from __future__ import annotations

import logging
import time

from relaybench.core.update import EditOp, ReplicaSnapshot, Update, UpdateIds, wall_ms
from relaybench.errors import ReplicaError
from relaybench.replica.engine import CrdtEngine, CrdtFactory

logger = logging.getLogger(__name__)


class ReplicaDriver:
    """Owns one CRDT engine instance.

    Args:
        name: Replica label used in logs and reports.
        factory: Engine implementation.
        ids: Per-scenario id allocator shared with the other replica.
        snapshot: Optional snapshot to load instead of starting empty.
    """

    def __init__(
        self,
        name: str,
        factory: CrdtFactory,
        ids: UpdateIds,
        snapshot: ReplicaSnapshot | None = None,
    ):
        self.name = name
        self._ids = ids
        self._last_update: bytes | None = None
        if snapshot is None:
            self._engine: CrdtEngine = factory.create(self._capture)
        else:
            self._engine = factory.load(self._capture, snapshot.encoded_state)
        self.local_updates = 0
        self.remote_applies = 0

    def _capture(self, update: bytes) -> None:
        self._last_update = update

    @property
    def engine(self) -> CrdtEngine:
        return self._engine

    def seed(self, text: str) -> None:
        """Insert initial content without producing a numbered update."""
        self._engine.insert_text(0, text)
        self._last_update = None

    def apply_local_edit(self, *ops: EditOp) -> Update:
        """Apply ``ops`` as one transaction and return the update it produced.

        Raises:
            ReplicaError: The engine reported no update (e.g. an empty edit).
        """
        if not ops:
            raise ValueError("apply_local_edit needs at least one EditOp")
        self._last_update = None

        def run() -> None:
            for op in ops:
                if op.delete_count > 0:
                    self._engine.delete_text(op.pos, op.delete_count)
                if op.insert:
                    self._engine.insert_text(op.pos, op.insert)

        self._engine.transact(run)
        if self._last_update is None:
            raise ReplicaError(
                f"{self.name}: edit produced no update; check that the engine reports "
                f"local transactions through on_update and that the edit changes the text"
            )
        update = Update(id=self._ids.next(), payload=bytes(self._last_update), produced_at=wall_ms())
        self.local_updates += 1
        logger.debug("%s produced update #%d (%d bytes)", self.name, update.id, update.size)
        return update

    def apply_remote(self, raw: bytes) -> float:
        """Merge a remote update; returns the apply time in milliseconds."""
        start = time.perf_counter()
        self._engine.apply_update(raw)
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        self.remote_applies += 1
        return elapsed_ms

    def snapshot(self) -> ReplicaSnapshot:
        state = self._engine.get_encoded_state()
        return ReplicaSnapshot(encoded_state=state, text_length=len(self._engine.get_text()))

    def text(self) -> str:
        return self._engine.get_text()

    def __repr__(self) -> str:
        return f"ReplicaDriver({self.name!r}, local={self.local_updates}, remote={self.remote_applies})"
