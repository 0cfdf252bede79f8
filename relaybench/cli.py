"""Command-line entry point.

    relaybench                      # every scenario on the in-memory relay
    relaybench s1 --relay rpc       # sequential scenario via the JSON-RPC daemon
    relaybench s2 --relay cli --signal-config ~/.local/share/signal-cli

Exit codes: 0 when every selected scenario converged, 1 for an unknown
suite or invalid configuration, 2 when any scenario failed or diverged.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from relaybench.benchmarks.orchestrator import SCENARIOS, BenchmarkOrchestrator, select_scenarios
from relaybench.benchmarks.scenario import ScenarioResult
from relaybench.config import BenchmarkConfig
from relaybench.logging_config import configure_from_env, enable_console_logging
from relaybench.replica.pycrdt_engine import PycrdtFactory
from relaybench.transport.memory import InMemoryRelay
from relaybench.transport.protocol import Relay
from relaybench.transport.signal_cli import SignalCliRelay
from relaybench.transport.signal_rpc import SignalRpcRelay

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relaybench",
        description="CRDT replication latency benchmarks over a group-messaging relay",
    )
    parser.add_argument(
        "suite", nargs="?", default=None,
        help=f"Scenario key or prefix (default: all of {', '.join(SCENARIOS)})",
    )
    parser.add_argument("--relay", choices=["memory", "rpc", "cli"], default="memory",
                        help="Relay to send through")
    parser.add_argument("--rpc-url", default="http://localhost:8080",
                        help="signal-cli daemon base URL (--relay rpc)")
    parser.add_argument("--signal-cli", default="signal-cli",
                        help="signal-cli executable (--relay cli)")
    parser.add_argument("--signal-config", default=None,
                        help="signal-cli --config directory (--relay cli)")
    parser.add_argument("--updates", type=int, default=None, help="Updates per producer")
    parser.add_argument("--concurrency", type=int, default=None, help="Send workers")
    parser.add_argument("--seed", type=int, default=None, help="Workload random seed")
    parser.add_argument("--output", default=None, help="Output directory")
    parser.add_argument("--no-viz", action="store_true", help="Skip latency plots")
    parser.add_argument("--log-level", default="INFO", help="Console log level")
    return parser


def make_relay(args: argparse.Namespace, config: BenchmarkConfig) -> Relay:
    if args.relay == "rpc":
        return SignalRpcRelay(args.rpc_url)
    if args.relay == "cli":
        return SignalCliRelay(args.signal_cli, args.signal_config)
    return InMemoryRelay([config.account_a, config.account_b], seed=config.seed)


def print_results(results: list[ScenarioResult]) -> None:
    for result in results:
        status = "ok" if result.ok else "FAILED"
        print(f"{result.name:<16} {status:<7} converged={result.converged} "
              f"elapsed={result.elapsed_ms:.0f}ms")
        if result.poll_outcome is not None:
            outcome = result.poll_outcome
            print(f"    poll: {outcome.state.value} collected={outcome.collected} "
                  f"rounds={outcome.rounds}")
        if result.summary is not None:
            print(f"    {result.summary}")
        if result.mismatch is not None:
            print(f"    {result.mismatch}")
        if result.error:
            print(f"    error: {result.error}")


async def run_benchmarks(args: argparse.Namespace, config: BenchmarkConfig) -> list[ScenarioResult]:
    relay = make_relay(args, config)
    logger.info("using %s relay (%s)", args.relay, type(relay).__name__)
    orchestrator = BenchmarkOrchestrator(PycrdtFactory(), config, relay, plots=not args.no_viz)
    try:
        return await orchestrator.run(args.suite)
    finally:
        if isinstance(relay, SignalRpcRelay):
            await relay.aclose()
        elif isinstance(relay, InMemoryRelay):
            relay.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        if os.environ.get("RB_LOGGING") or os.environ.get("RB_LOG_FILE"):
            configure_from_env()
        else:
            enable_console_logging(level=args.log_level.upper())
        select_scenarios(args.suite)
        config = BenchmarkConfig.from_env().replace(
            updates=args.updates,
            send_concurrency=args.concurrency,
            seed=args.seed,
            output_dir=args.output,
        )
    except ValueError as e:
        print(f"relaybench: {e}", file=sys.stderr)
        return EXIT_USAGE

    results = asyncio.run(run_benchmarks(args, config))
    print_results(results)
    return EXIT_OK if results and all(r.converged for r in results) else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
