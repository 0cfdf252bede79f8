"""Timestamped samples with summary statistics.

Data collects ``(time_s, value)`` pairs, where ``time_s`` is seconds since
the start of a scenario, and answers mean/percentile questions over them.
BucketedData groups samples into fixed-width time windows for plots.
"""

from __future__ import annotations

import math
import statistics
from collections import defaultdict
from typing import Any


class Data:
    """Container for timestamped metric samples with analysis utilities.

    Samples are stored in append order.
    """

    def __init__(self) -> None:
        self._samples: list[tuple[float, Any]] = []

    @classmethod
    def from_pairs(cls, pairs: list[tuple[float, float]]) -> Data:
        data = cls()
        data._samples = list(pairs)
        return data

    def add_stat(self, value: Any, time_s: float) -> None:
        """Record a data point at ``time_s`` seconds into the scenario."""
        self._samples.append((time_s, value))

    def clear(self) -> None:
        self._samples.clear()

    @property
    def values(self) -> list[tuple[float, Any]]:
        """All recorded samples as (time_seconds, value) tuples."""
        return self._samples

    def raw_values(self) -> list[float]:
        return [v for _, v in self._samples]

    def mean(self) -> float:
        """Mean of sample values. Returns 0.0 if empty."""
        vals = self.raw_values()
        if not vals:
            return 0.0
        return sum(vals) / len(vals)

    def min(self) -> float:
        vals = self.raw_values()
        return float(min(vals)) if vals else 0.0

    def max(self) -> float:
        vals = self.raw_values()
        return float(max(vals)) if vals else 0.0

    def percentile(self, p: float) -> float:
        """Interpolated percentile for ``p`` in [0, 1]; 0.0 if empty."""
        return _percentile_sorted(sorted(self.raw_values()), p)

    def count(self) -> int:
        return len(self._samples)

    def sum(self) -> float:
        return float(sum(self.raw_values()))

    def std(self) -> float:
        """Population standard deviation. Returns 0.0 if fewer than 2 samples."""
        vals = self.raw_values()
        if len(vals) < 2:
            return 0.0
        return statistics.pstdev(vals)

    def bucket(self, window_s: float = 1.0) -> BucketedData:
        """Group samples into fixed-width time windows."""
        buckets: dict[int, list[float]] = defaultdict(list)
        for t, v in self._samples:
            buckets[int(math.floor(t / window_s))].append(float(v))

        result = BucketedData()
        for key in sorted(buckets):
            vals = sorted(buckets[key])
            result._times.append(key * window_s)
            result._means.append(sum(vals) / len(vals))
            result._counts.append(len(vals))
            result._maxes.append(vals[-1])
            result._p50s.append(_percentile_sorted(vals, 0.50))
            result._p99s.append(_percentile_sorted(vals, 0.99))
        return result

    def __len__(self) -> int:
        return len(self._samples)

    def __bool__(self) -> bool:
        return len(self._samples) > 0


def _percentile_sorted(sorted_values: list[float], p: float) -> float:
    """Calculate percentile from pre-sorted values (p in [0, 1])."""
    if not sorted_values:
        return 0.0
    if p <= 0:
        return float(sorted_values[0])
    if p >= 1:
        return float(sorted_values[-1])
    n = len(sorted_values)
    pos = p * (n - 1)
    lo = int(pos)
    hi = min(lo + 1, n - 1)
    frac = pos - lo
    return float(sorted_values[lo] * (1.0 - frac) + sorted_values[hi] * frac)


class BucketedData:
    """Time-windowed aggregation result from Data.bucket()."""

    def __init__(self) -> None:
        self._times: list[float] = []
        self._means: list[float] = []
        self._counts: list[int] = []
        self._maxes: list[float] = []
        self._p50s: list[float] = []
        self._p99s: list[float] = []

    def times(self) -> list[float]:
        return self._times

    def means(self) -> list[float]:
        return self._means

    def counts(self) -> list[int]:
        return self._counts

    def maxes(self) -> list[float]:
        return self._maxes

    def p50s(self) -> list[float]:
        return self._p50s

    def p99s(self) -> list[float]:
        return self._p99s

    def to_dict(self) -> dict[str, list]:
        """Return dict with keys: time_s, mean, p50, p99, max, count."""
        return {
            "time_s": list(self._times),
            "mean": list(self._means),
            "p50": list(self._p50s),
            "p99": list(self._p99s),
            "max": list(self._maxes),
            "count": list(self._counts),
        }
