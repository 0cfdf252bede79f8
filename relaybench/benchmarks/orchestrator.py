"""BenchmarkOrchestrator: runs the selected scenarios one after another.

Each scenario gets a fresh ``ScenarioContext``. A scenario that raises is
logged with its traceback and recorded as a failed result that keeps the
metrics collected before the error; the next scenario still runs. After
each scenario its report (CSV, results book entry and optionally a latency
plot) is written to the output directory. A report that cannot be written
is logged and skipped.

Example::

    relay = InMemoryRelay([config.account_a, config.account_b])
    orchestrator = BenchmarkOrchestrator(PycrdtFactory(), config, relay)
    results = asyncio.run(orchestrator.run("s1"))
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from pathlib import Path

from relaybench.benchmarks import concurrent, large_edits, sequential
from relaybench.benchmarks.scenario import ScenarioContext, ScenarioResult, Sleep
from relaybench.benchmarks.workload import Workload
from relaybench.config import BenchmarkConfig
from relaybench.core.codec import MessageCodec
from relaybench.core.update import RunSession
from relaybench.instrumentation.report import ResultsBook, plot_latency, rows_to_frame, write_csv
from relaybench.replica.engine import CrdtFactory
from relaybench.transport.bridge import TransportBridge
from relaybench.transport.protocol import Relay

logger = logging.getLogger(__name__)

Scenario = Callable[[ScenarioContext], Awaitable[ScenarioResult]]

SCENARIOS: dict[str, Scenario] = {
    sequential.NAME: sequential.run,
    concurrent.NAME: concurrent.run,
    large_edits.NAME: large_edits.run,
}

RESULTS_FILE = "results.json"


def select_scenarios(suite: str | None, available: list[str] | None = None) -> list[str]:
    """Scenario keys matching ``suite`` exactly or by prefix; all when None.

    Raises:
        ValueError: Nothing matches ``suite``.
    """
    keys = list(SCENARIOS) if available is None else list(available)
    if not suite:
        return keys
    selected = [key for key in keys if key == suite or key.startswith(suite)]
    if not selected:
        raise ValueError(f"unknown suite {suite!r}; choose from: {', '.join(keys)}")
    return selected


class BenchmarkOrchestrator:
    """Runs scenarios against one relay with one CRDT engine.

    Args:
        factory: CRDT engine under test.
        config: Run configuration.
        relay: Relay client shared by all scenarios.
        sleep: Awaitable sleep handed to scenarios, replaceable in tests.
        write_reports: Write CSV and results.json to ``config.output_dir``.
        plots: Also write latency plots (requires ``write_reports``).
        codec: Frame codec; the default framing when None.
    """

    def __init__(
        self,
        factory: CrdtFactory,
        config: BenchmarkConfig,
        relay: Relay,
        *,
        sleep: Sleep = asyncio.sleep,
        write_reports: bool = True,
        plots: bool = False,
        codec: MessageCodec | None = None,
    ):
        self.factory = factory
        self.config = config
        self.relay = relay
        self._sleep = sleep
        self.write_reports = write_reports
        self.plots = plots
        self._codec = codec or MessageCodec()

    def context(self, name: str) -> ScenarioContext:
        """Fresh per-scenario state with a new run id and start time."""
        session = RunSession(group_id=self.config.group_id)
        return ScenarioContext(
            name=name,
            config=self.config,
            factory=self.factory,
            relay=self.relay,
            session=session,
            bridge=TransportBridge(self.relay, session, self._codec),
            workload=Workload(self.config.seed),
            sleep=self._sleep,
        )

    async def run(self, suite: str | None = None) -> list[ScenarioResult]:
        """Run every scenario selected by ``suite``, in registry order."""
        results = []
        for name in select_scenarios(suite):
            results.append(await self.run_scenario(name))
        converged = sum(1 for r in results if r.converged)
        logger.info("finished %d scenarios, %d converged", len(results), converged)
        return results

    async def run_scenario(self, name: str) -> ScenarioResult:
        scenario = SCENARIOS[name]
        ctx = self.context(name)
        logger.info("[%s] starting (engine=%s, run=%s)", name, self.factory.name, ctx.session.run_id)
        start = time.perf_counter()
        try:
            result = await scenario(ctx)
        except Exception as e:
            logger.exception("[%s] failed", name)
            result = ctx.fail(e)
        result.elapsed_ms = (time.perf_counter() - start) * 1000.0

        if result.summary is not None:
            logger.info("[%s] %s", name, result.summary)
        if self.write_reports:
            try:
                self.write_report(result, ctx)
            except Exception:
                logger.exception("[%s] writing report to %s failed", name, self.config.output_dir)
        return result

    def write_report(self, result: ScenarioResult, ctx: ScenarioContext) -> None:
        output = Path(self.config.output_dir)
        if result.rows:
            write_csv(rows_to_frame(result.rows, result.columns), output / f"{result.name}.csv")

        book = ResultsBook.load(output / RESULTS_FILE)
        book.update(self.factory.name, {
            f"[{result.name}] {key}": value for key, value in result.results.items()
        })
        book.set(self.factory.name, f"[{result.name}] converged", result.converged)
        book.set(self.factory.name, f"[{result.name}] elapsed_ms", round(result.elapsed_ms, 3))
        if result.error:
            book.set(self.factory.name, f"[{result.name}] error", result.error)
        book.save()

        if self.plots:
            latencies = ctx.collector.latencies(ctx.session.started_at)
            plot_latency(latencies, f"{result.name} ({self.factory.name})",
                         output / f"{result.name}-latency.png")
