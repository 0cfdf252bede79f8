"""CrdtEngine backed by pycrdt (Python bindings for the Yrs/Yjs CRDT).

The document holds one shared ``Text`` named ``"text"``. Local changes
are reported through ``Doc.observe``; remote applies are muted so that a
replica never re-broadcasts what it received.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from pycrdt import Doc, Text

from relaybench.replica.engine import OnUpdate

if TYPE_CHECKING:
    from pycrdt import TransactionEvent

TEXT_NAME = "text"


class PycrdtEngine:
    """One pycrdt document exposing the CrdtEngine protocol.

    Args:
        on_update: Called with the update bytes of every local transaction.
        encoded_state: Optional full state to start from.
    """

    def __init__(self, on_update: OnUpdate, encoded_state: bytes | None = None):
        self._doc = Doc()
        self._text = self._doc.get(TEXT_NAME, type=Text)
        self._on_update = on_update
        self._remote = False
        self._depth = 0
        if encoded_state:
            self.apply_update(encoded_state)
        self._subscription = self._doc.observe(self._handle_transaction)

    def _handle_transaction(self, event: TransactionEvent) -> None:
        if self._remote:
            return
        self._on_update(bytes(event.update))

    def transact(self, fn: Callable[[], None]) -> None:
        if self._depth:
            fn()
            return
        self._depth += 1
        try:
            with self._doc.transaction():
                fn()
        finally:
            self._depth -= 1

    def insert_text(self, pos: int, text: str) -> None:
        self.transact(lambda: self._text.insert(pos, text))

    def delete_text(self, pos: int, length: int) -> None:
        def delete() -> None:
            del self._text[pos:pos + length]

        self.transact(delete)

    def apply_update(self, update: bytes) -> None:
        self._remote = True
        try:
            self._doc.apply_update(update)
        finally:
            self._remote = False

    def get_text(self) -> str:
        return str(self._text)

    def get_encoded_state(self) -> bytes:
        return self._doc.get_update()

    def __len__(self) -> int:
        return len(self._text)


class PycrdtFactory:
    """Factory for ``PycrdtEngine`` documents."""

    name = "pycrdt"

    def create(self, on_update: OnUpdate) -> PycrdtEngine:
        return PycrdtEngine(on_update)

    def load(self, on_update: OnUpdate, encoded_state: bytes) -> PycrdtEngine:
        return PycrdtEngine(on_update, encoded_state)
