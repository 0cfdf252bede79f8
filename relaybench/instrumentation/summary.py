"""Summary statistics derived from a scenario's metric rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from relaybench.instrumentation.collector import MetricsRow
from relaybench.instrumentation.data import Data


@dataclass
class MetricSummary:
    """Pre-computed statistics for a named metric."""
    name: str
    count: int
    mean: float
    std: float
    min: float
    max: float
    p50: float
    p95: float
    p99: float

    @classmethod
    def from_data(cls, name: str, data: Data) -> MetricSummary:
        return cls(
            name=name,
            count=data.count(),
            mean=data.mean(),
            std=data.std(),
            min=data.min(),
            max=data.max(),
            p50=data.percentile(0.50),
            p95=data.percentile(0.95),
            p99=data.percentile(0.99),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "count": self.count,
            "mean": round(self.mean, 3),
            "std": round(self.std, 3),
            "min": round(self.min, 3),
            "max": round(self.max, 3),
            "p50": round(self.p50, 3),
            "p95": round(self.p95, 3),
            "p99": round(self.p99, 3),
        }


@dataclass
class ScenarioSummary:
    """Counts and latency/apply statistics for one scenario's rows."""
    sent: int
    received: int
    applied: int
    total_update_bytes: int
    latency_ms: MetricSummary
    apply_ms: MetricSummary
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, rows: list[MetricsRow]) -> ScenarioSummary:
        latency = Data()
        apply = Data()
        for row in rows:
            if row.latency_ms is not None:
                latency.add_stat(row.latency_ms, float(row.id))
            if row.apply_time_ms is not None:
                apply.add_stat(row.apply_time_ms, float(row.id))
        return cls(
            sent=sum(1 for r in rows if r.sending_timestamp is not None),
            received=sum(1 for r in rows if r.receiving_timestamp is not None),
            applied=sum(1 for r in rows if r.apply_time_ms is not None),
            total_update_bytes=sum(r.update_size_bytes or 0 for r in rows),
            latency_ms=MetricSummary.from_data("latency_ms", latency),
            apply_ms=MetricSummary.from_data("apply_ms", apply),
        )

    def __str__(self) -> str:
        lat = self.latency_ms
        return (
            f"sent={self.sent} received={self.received} applied={self.applied} "
            f"bytes={self.total_update_bytes} latency p50={lat.p50:.0f}ms "
            f"p99={lat.p99:.0f}ms apply mean={self.apply_ms.mean:.3f}ms"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sent": self.sent,
            "received": self.received,
            "applied": self.applied,
            "total_update_bytes": self.total_update_bytes,
            "latency_ms": self.latency_ms.to_dict(),
            "apply_ms": self.apply_ms.to_dict(),
            **self.extra,
        }
