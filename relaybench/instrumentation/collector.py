"""Per-update metrics for one scenario.

A row is created when an update is sent and filled in as its receive and
apply events happen. Rows are never removed, so an update that never
arrived (the poller gave up) still shows up with empty receive/apply
fields.
"""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, fields

import pandas as pd

from relaybench.instrumentation.data import Data


@dataclass
class MetricsRow:
    """Measurements for one logical update.

    Attributes:
        id: Update id.
        sender: Replica or account that produced the update.
        sending_timestamp: Wall-clock ms just before the relay send.
        update_size_bytes: Raw engine update size.
        envelope_timestamp: Relay's message timestamp, in ms.
        receiving_timestamp: Wall-clock ms when the update was admitted.
        apply_time_ms: Time spent applying it to the receiving replica.
    """

    id: int
    sender: str | None = None
    sending_timestamp: int | None = None
    update_size_bytes: int | None = None
    envelope_timestamp: int | None = None
    receiving_timestamp: int | None = None
    apply_time_ms: float | None = None

    @property
    def latency_ms(self) -> int | None:
        if self.sending_timestamp is None or self.receiving_timestamp is None:
            return None
        return self.receiving_timestamp - self.sending_timestamp


COLUMNS = [f.name for f in fields(MetricsRow)]


class MetricsCollector:
    """Upserts metric rows keyed by update id; safe across tasks and threads."""

    def __init__(self) -> None:
        self._rows: dict[int, MetricsRow] = {}
        self._lock = threading.Lock()

    def _row(self, update_id: int) -> MetricsRow:
        row = self._rows.get(update_id)
        if row is None:
            row = self._rows[update_id] = MetricsRow(id=update_id)
        return row

    def record_sent(self, update_id: int, sender: str, size_bytes: int, t: int) -> None:
        with self._lock:
            row = self._row(update_id)
            row.sender = sender
            row.update_size_bytes = size_bytes
            row.sending_timestamp = t

    def record_received(self, update_id: int, t: int, envelope_timestamp: int | None = None) -> None:
        with self._lock:
            row = self._row(update_id)
            row.receiving_timestamp = t
            if envelope_timestamp is not None:
                row.envelope_timestamp = envelope_timestamp

    def record_applied(self, update_id: int, apply_ms: float) -> None:
        with self._lock:
            self._row(update_id).apply_time_ms = apply_ms

    def get(self, update_id: int) -> MetricsRow | None:
        with self._lock:
            return self._rows.get(update_id)

    def export(self) -> list[MetricsRow]:
        """Copies of all rows, ascending by id."""
        with self._lock:
            return [MetricsRow(**asdict(self._rows[k])) for k in sorted(self._rows)]

    def to_dataframe(self) -> pd.DataFrame:
        """Rows as a DataFrame with nullable integer columns (partial rows stay empty)."""
        return metrics_frame(self.export())

    def latencies_ms(self) -> list[int]:
        """Latencies for rows that have both a send and a receive timestamp."""
        return [r.latency_ms for r in self.export() if r.latency_ms is not None]

    def latencies(self, start_ms: int) -> Data:
        """Send-to-receive latency samples (ms), timed from ``start_ms``."""
        data = Data()
        for row in self.export():
            if row.latency_ms is not None:
                data.add_stat(row.latency_ms, (row.receiving_timestamp - start_ms) / 1000.0)
        return data

    def apply_times(self) -> Data:
        data = Data()
        for row in self.export():
            if row.apply_time_ms is not None:
                data.add_stat(row.apply_time_ms, float(row.id))
        return data

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


def metrics_frame(rows: list[MetricsRow]) -> pd.DataFrame:
    frame = pd.DataFrame([asdict(r) for r in rows], columns=COLUMNS)
    for name in ("id", "sending_timestamp", "update_size_bytes",
                 "envelope_timestamp", "receiving_timestamp"):
        frame[name] = frame[name].astype("Int64")
    frame["apply_time_ms"] = frame["apply_time_ms"].astype("Float64")
    return frame
