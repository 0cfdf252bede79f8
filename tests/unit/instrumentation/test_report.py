"""Tests for CSV writing, the results book and latency plots."""

import json

import pytest

from relaybench.instrumentation.collector import MetricsRow
from relaybench.instrumentation.data import Data
from relaybench.instrumentation.report import ResultsBook, plot_latency, rows_to_frame, write_csv


class TestCsv:
    def test_missing_values_are_empty_cells(self, tmp_path):
        rows = [
            MetricsRow(id=1, sender="a", sending_timestamp=10, update_size_bytes=4,
                       envelope_timestamp=11, receiving_timestamp=15, apply_time_ms=0.25),
            MetricsRow(id=2, sender="a", sending_timestamp=20, update_size_bytes=5),
        ]
        path = write_csv(rows_to_frame(rows), tmp_path / "nested" / "s1.csv")
        lines = path.read_text().splitlines()
        assert lines[0] == (
            "id,sender,sending_timestamp,update_size_bytes,"
            "envelope_timestamp,receiving_timestamp,apply_time_ms"
        )
        assert lines[1] == "1,a,10,4,11,15,0.25"
        assert lines[2] == "2,a,20,5,,,"

    def test_dict_rows_keep_column_order(self, tmp_path):
        rows = [{"b": 2, "a": 1}]
        frame = rows_to_frame(rows, columns=["a", "b"])
        path = write_csv(frame, tmp_path / "t.csv")
        assert path.read_text().splitlines() == ["a,b", "1,2"]


class TestResultsBook:
    def test_set_stringifies(self):
        book = ResultsBook()
        book.set("pycrdt", "[s1] sent", 10)
        assert book.get("pycrdt", "[s1] sent") == "10"
        assert book.get("pycrdt", "missing") is None

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "results.json"
        book = ResultsBook(path)
        book.update("pycrdt", {"[s1] sent": 10, "[s1] converged": True})
        book.save()

        loaded = ResultsBook.load(path)
        assert loaded.to_dict() == {"pycrdt": {"[s1] sent": "10", "[s1] converged": "True"}}
        assert json.loads(path.read_text()) == loaded.to_dict()

    def test_load_keeps_other_results(self, tmp_path):
        path = tmp_path / "results.json"
        path.write_text(json.dumps({"pycrdt": {"[s4] x": "1"}, "other": {"y": "2"}}))
        book = ResultsBook.load(path)
        book.set("pycrdt", "[s1] sent", 3)
        book.save()
        saved = json.loads(path.read_text())
        assert saved == {"pycrdt": {"[s4] x": "1", "[s1] sent": "3"}, "other": {"y": "2"}}

    def test_load_missing_file(self, tmp_path):
        book = ResultsBook.load(tmp_path / "none.json")
        assert book.to_dict() == {}

    @pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
    def test_load_invalid_file(self, tmp_path, content):
        path = tmp_path / "results.json"
        path.write_text(content)
        assert ResultsBook.load(path).to_dict() == {}

    def test_save_without_path(self):
        with pytest.raises(ValueError):
            ResultsBook().save()


class TestPlotLatency:
    def test_no_samples_writes_nothing(self, tmp_path):
        path = tmp_path / "plot.png"
        assert plot_latency(Data(), "empty", path) is None
        assert not path.exists()

    def test_writes_png(self, tmp_path):
        data = Data.from_pairs([(i * 0.1, 20.0 + i) for i in range(30)])
        path = plot_latency(data, "latency", tmp_path / "latency.png", window_s=0.5)
        assert path.exists()
        assert path.stat().st_size > 0
