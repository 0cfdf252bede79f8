"""Per-scenario state and results.

A ``ScenarioContext`` is built fresh for every scenario run: its own run
session (so traffic from earlier scenarios on the same group is filtered
out), dedup registry, metrics collector and id allocator. Nothing in it
outlives the scenario's report.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from relaybench.benchmarks.sender import SendPool
from relaybench.benchmarks.workload import Workload
from relaybench.config import BenchmarkConfig
from relaybench.core.dedup import Admission, DedupRegistry
from relaybench.core.poller import IdlePoller, PollOutcome
from relaybench.core.update import DecodedUpdate, ReplicaSnapshot, RunSession, UpdateIds
from relaybench.errors import ConvergenceMismatch
from relaybench.instrumentation.collector import MetricsCollector, MetricsRow
from relaybench.instrumentation.summary import ScenarioSummary
from relaybench.replica.driver import ReplicaDriver
from relaybench.replica.engine import CrdtFactory
from relaybench.transport.bridge import BridgeStats, TransportBridge
from relaybench.transport.protocol import Relay

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class ScenarioResult:
    """What one scenario produced.

    Attributes:
        name: Scenario key, e.g. ``"s1-sequential"``.
        ok: Finished without error and converged.
        converged: Final replica texts were equal.
        poll_outcome: Receive loop outcome, for relay scenarios.
        rows: Tabular rows for the scenario's CSV.
        results: Named measurements (times in ms, sizes in bytes).
        error: Description of the exception that ended the scenario.
        elapsed_ms: Wall time of the whole scenario.
        mismatch: Where the replicas diverged, when they did.
        columns: Column order for ``rows`` given as dicts.
        summary: Derived latency/apply statistics.
        bridge: Inbound filter counters.
    """

    name: str
    ok: bool
    converged: bool
    poll_outcome: PollOutcome | None = None
    rows: list[MetricsRow] | list[dict[str, Any]] = field(default_factory=list)
    results: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    elapsed_ms: float = 0.0
    mismatch: ConvergenceMismatch | None = None
    columns: list[str] | None = None
    summary: ScenarioSummary | None = None
    bridge: BridgeStats | None = None

    @classmethod
    def failed(cls, name: str, error: BaseException) -> ScenarioResult:
        return cls(name=name, ok=False, converged=False, error=f"{type(error).__name__}: {error}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ok": self.ok,
            "converged": self.converged,
            "poll_outcome": self.poll_outcome.to_dict() if self.poll_outcome else None,
            "results": dict(self.results),
            "error": self.error,
            "elapsed_ms": round(self.elapsed_ms, 3),
            "mismatch": self.mismatch.to_dict() if self.mismatch else None,
            "summary": self.summary.to_dict() if self.summary else None,
            "rows": len(self.rows),
        }


@dataclass
class ScenarioContext:
    """Everything a scenario needs, scoped to one run."""

    name: str
    config: BenchmarkConfig
    factory: CrdtFactory
    relay: Relay
    session: RunSession
    bridge: TransportBridge
    registry: DedupRegistry = field(default_factory=DedupRegistry)
    collector: MetricsCollector = field(default_factory=MetricsCollector)
    ids: UpdateIds = field(default_factory=UpdateIds)
    workload: Workload = field(default_factory=Workload)
    sleep: Sleep = asyncio.sleep

    def replica(self, label: str, snapshot: ReplicaSnapshot | None = None) -> ReplicaDriver:
        return ReplicaDriver(f"{self.name}/{label}", self.factory, self.ids, snapshot)

    def send_pool(self) -> SendPool:
        return SendPool(
            self.bridge,
            concurrency=self.config.send_concurrency,
            max_attempts=self.config.max_send_attempts,
            retry_delay=self.config.error_delay,
            sleep=self.sleep,
        )

    def poller(self, target_count: int) -> IdlePoller:
        return IdlePoller(
            target_count,
            max_idle_rounds=self.config.max_idle_rounds,
            idle_delay=self.config.idle_delay,
            error_delay=self.config.error_delay,
            sleep=self.sleep,
        )

    def admit(self, update: DecodedUpdate) -> bool:
        """Admit an arrival and stamp its receive time; False for duplicates."""
        if self.registry.admit(update.id, update.raw_update) is Admission.DUPLICATE:
            return False
        self.collector.record_received(update.id, update.received_at, update.envelope_timestamp)
        return True

    def check_convergence(self, left: ReplicaDriver, right: ReplicaDriver) -> ConvergenceMismatch | None:
        left_text, right_text = left.text(), right.text()
        if left_text == right_text:
            return None
        return ConvergenceMismatch.between(self.name, left_text, right_text)

    def _summary(self, rows: list[MetricsRow]) -> ScenarioSummary:
        summary = ScenarioSummary.from_rows(rows)
        summary.extra["duplicates"] = self.registry.duplicates
        return summary

    def finish(
        self,
        mismatch: ConvergenceMismatch | None,
        results: dict[str, Any],
        poll_outcome: PollOutcome | None = None,
    ) -> ScenarioResult:
        """Result for a relay scenario, built from the collector's rows."""
        rows = self.collector.export()
        return ScenarioResult(
            name=self.name,
            ok=mismatch is None,
            converged=mismatch is None,
            poll_outcome=poll_outcome,
            rows=rows,
            results=results,
            mismatch=mismatch,
            summary=self._summary(rows),
            bridge=self.bridge.stats,
        )

    def fail(self, error: BaseException) -> ScenarioResult:
        """Result for a scenario that raised, keeping the metrics recorded so far."""
        rows = self.collector.export()
        result = ScenarioResult.failed(self.name, error)
        result.rows = rows
        result.summary = self._summary(rows)
        result.bridge = self.bridge.stats
        return result


def timed_ms(fn: Callable[[], Any]) -> tuple[Any, float]:
    """Call ``fn`` and return its result with the elapsed milliseconds."""
    start = time.perf_counter()
    value = fn()
    return value, (time.perf_counter() - start) * 1000.0
