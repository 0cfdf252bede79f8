"""Writing scenario output: CSV tables, the results book and latency plots."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from relaybench.instrumentation.collector import MetricsRow, metrics_frame
from relaybench.instrumentation.data import Data

logger = logging.getLogger(__name__)


def rows_to_frame(rows: list[MetricsRow] | list[dict[str, Any]], columns: list[str] | None = None) -> pd.DataFrame:
    """Build a DataFrame from metric rows or plain dict rows.

    MetricsRow input gets the collector's column order and nullable
    integer dtypes so missing receive/apply values stay empty.
    """
    if rows and isinstance(rows[0], MetricsRow):
        return metrics_frame(rows)
    return pd.DataFrame(rows, columns=columns)


def write_csv(frame: pd.DataFrame, path: Path) -> Path:
    """Write ``frame`` without the index; missing values become empty cells."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path, index=False, na_rep="")
    logger.info("Wrote %d rows to %s", len(frame), path)
    return path


class ResultsBook:
    """Named benchmark results grouped by engine, persisted as JSON.

    Results are plain strings such as ``"12 ms"`` or ``"93 bytes"`` so the
    file reads like a results table. Loading an existing file and setting
    new values keeps results from earlier runs of other scenarios.

    Example::

        book = ResultsBook.load(Path("benchmark_data/results.json"))
        book.set("pycrdt", "[S1] encode (time)", "3 ms")
        book.save()
    """

    def __init__(self, path: Path | None = None, results: dict[str, dict[str, str]] | None = None):
        self.path = Path(path) if path is not None else None
        self._results: dict[str, dict[str, str]] = results or {}

    @classmethod
    def load(cls, path: Path) -> ResultsBook:
        path = Path(path)
        if not path.exists():
            return cls(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable results file %s: %s", path, e)
            return cls(path)
        if not isinstance(data, dict):
            logger.warning("Ignoring results file %s: top level is not an object", path)
            return cls(path)
        return cls(path, {str(k): dict(v) for k, v in data.items() if isinstance(v, dict)})

    def set(self, engine: str, name: str, value: Any) -> None:
        self._results.setdefault(engine, {})[name] = str(value)

    def update(self, engine: str, results: dict[str, Any]) -> None:
        for name, value in results.items():
            self.set(engine, name, value)

    def get(self, engine: str, name: str) -> str | None:
        return self._results.get(engine, {}).get(name)

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {engine: dict(values) for engine, values in self._results.items()}

    def save(self, path: Path | None = None) -> Path:
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("ResultsBook has no path; pass one to save()")
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, sort_keys=True)
        return target


def plot_latency(latencies: Data, title: str, path: Path, window_s: float = 1.0) -> Path | None:
    """Plot per-update latency and windowed mean/p99 to ``path``.

    Returns None (and writes nothing) when there are no samples.
    """
    if not latencies:
        logger.info("No latency samples for %s; skipping plot", title)
        return None

    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    times = [t for (t, _) in latencies.values]
    values = [v for (_, v) in latencies.values]
    buckets = latencies.bucket(window_s)

    fig, axes = plt.subplots(2, 1, figsize=(12, 8), sharex=True)

    ax1 = axes[0]
    ax1.scatter(times, values, s=8, alpha=0.6, label="Update latency")
    ax1.set_ylabel("Latency (ms)")
    ax1.set_title(title)
    ax1.legend(loc="upper right")
    ax1.grid(True, alpha=0.3)

    ax2 = axes[1]
    ax2.plot(buckets.times(), buckets.means(), "b-", linewidth=2, label="Mean")
    ax2.plot(buckets.times(), buckets.p99s(), "r-", linewidth=1.5, label="p99")
    ax2.set_xlabel("Time since start (s)")
    ax2.set_ylabel("Latency (ms)")
    ax2.legend(loc="upper right")
    ax2.grid(True, alpha=0.3)

    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    logger.info("Saved latency plot %s", path)
    return path
