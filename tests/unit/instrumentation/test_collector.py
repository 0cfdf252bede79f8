"""Tests for MetricsCollector."""

import threading

import pandas as pd

from relaybench.instrumentation.collector import COLUMNS, MetricsCollector, MetricsRow


def _collector() -> MetricsCollector:
    collector = MetricsCollector()
    collector.record_sent(1, "a", 20, t=1_000)
    collector.record_received(1, t=1_040, envelope_timestamp=1_010)
    collector.record_applied(1, 0.5)
    collector.record_sent(2, "a", 25, t=1_100)
    return collector


class TestRows:
    """Upserting rows as events arrive."""

    def test_columns(self):
        assert COLUMNS == [
            "id", "sender", "sending_timestamp", "update_size_bytes",
            "envelope_timestamp", "receiving_timestamp", "apply_time_ms",
        ]

    def test_full_row(self):
        row = _collector().get(1)
        assert row == MetricsRow(
            id=1, sender="a", sending_timestamp=1_000, update_size_bytes=20,
            envelope_timestamp=1_010, receiving_timestamp=1_040, apply_time_ms=0.5,
        )
        assert row.latency_ms == 40

    def test_partial_row_kept(self):
        row = _collector().get(2)
        assert row.receiving_timestamp is None
        assert row.latency_ms is None

    def test_receive_before_send_creates_row(self):
        collector = MetricsCollector()
        collector.record_received(5, t=2_000)
        collector.record_sent(5, "b", 3, t=1_990)
        assert collector.get(5).latency_ms == 10

    def test_export_is_sorted_copy(self):
        collector = MetricsCollector()
        for update_id in (3, 1, 2):
            collector.record_sent(update_id, "a", 1, t=0)
        rows = collector.export()
        assert [r.id for r in rows] == [1, 2, 3]
        rows[0].sender = "changed"
        assert collector.get(1).sender == "a"

    def test_concurrent_upserts(self):
        collector = MetricsCollector()

        def work(offset):
            for i in range(100):
                collector.record_sent(i, "a", 1, t=i)
                collector.record_received(i, t=i + offset)

        threads = [threading.Thread(target=work, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(collector) == 100


class TestViews:
    def test_dataframe_keeps_partial_rows_empty(self):
        frame = _collector().to_dataframe()
        assert list(frame.columns) == COLUMNS
        assert str(frame["receiving_timestamp"].dtype) == "Int64"
        assert str(frame["apply_time_ms"].dtype) == "Float64"
        assert frame.loc[0, "receiving_timestamp"] == 1_040
        assert pd.isna(frame.loc[1, "receiving_timestamp"])
        assert pd.isna(frame.loc[1, "apply_time_ms"])

    def test_empty_dataframe(self):
        frame = MetricsCollector().to_dataframe()
        assert frame.empty
        assert list(frame.columns) == COLUMNS

    def test_latencies_ms(self):
        assert _collector().latencies_ms() == [40]

    def test_latency_samples_timed_from_start(self):
        data = _collector().latencies(start_ms=1_000)
        assert data.values == [(0.04, 40)]

    def test_apply_times(self):
        assert _collector().apply_times().raw_values() == [0.5]
