"""Sequential single-producer scenario.

Replica A is seeded, snapshotted, and then produces N random insertions,
each sent through the send pool. Replica B starts from the snapshot only
after all sends, polls its inbox until N distinct updates arrived (or the
idle budget ran out) and applies them in ascending id order. The measured
latency therefore includes time spent queued at the relay.
"""

from __future__ import annotations

import functools
import logging
import math
import time

from relaybench.benchmarks.scenario import ScenarioContext, ScenarioResult, timed_ms
from relaybench.transport.sources import PollingSource

logger = logging.getLogger(__name__)

NAME = "s1-sequential"


async def run(ctx: ScenarioContext) -> ScenarioResult:
    config = ctx.config
    n = config.updates
    start = time.perf_counter()

    replica_a = ctx.replica("A")
    replica_a.seed(ctx.workload.word(config.init_text_length))
    snapshot = replica_a.snapshot()
    edits = ctx.workload.insertions(n, snapshot.text_length)

    logger.info("[%s] sending %d updates as %s with %d workers",
                ctx.name, n, config.account_a, config.send_concurrency)
    jobs = [functools.partial(replica_a.apply_local_edit, op) for op in edits]
    report = await ctx.send_pool().run(jobs, config.account_a, ctx.collector)
    send_ms = (time.perf_counter() - start) * 1000.0
    logger.info("[%s] sent %d/%d updates (%d bytes, %d failed)",
                ctx.name, report.sent, n, report.total_bytes, report.failed)

    replica_b = ctx.replica("B", snapshot)
    source = PollingSource(ctx.bridge, [config.account_b], config.max_messages, config.poll_timeout)

    async def one_round() -> int:
        accepted = 0
        for update in await source.fetch():
            if ctx.admit(update):
                accepted += 1
        if accepted:
            logger.info("[%s] collected %d/%d", ctx.name, len(ctx.registry), report.sent)
        return accepted

    receive_start = time.perf_counter()
    outcome = await ctx.poller(report.sent).run(one_round)
    receive_ms = (time.perf_counter() - receive_start) * 1000.0
    if not outcome.satisfied:
        logger.warning("[%s] gave up with %d/%d updates after %d idle rounds",
                       ctx.name, outcome.collected, report.sent, outcome.idle_rounds)

    for update_id, raw in ctx.registry.ordered():
        ctx.collector.record_applied(update_id, replica_b.apply_remote(raw))

    mismatch = ctx.check_convergence(replica_a, replica_b)
    if mismatch is None:
        logger.info("[%s] replicas converged (%d chars)", ctx.name, len(replica_b.text()))
    else:
        logger.error("[%s] %s", ctx.name, mismatch)

    final_state, encode_ms = timed_ms(replica_a.snapshot)
    reloaded, parse_ms = timed_ms(lambda: ctx.replica("reload", final_state))

    return ctx.finish(
        mismatch,
        {
            "updates": n,
            "sent": report.sent,
            "send_failures": report.failed,
            "rate_limited": report.rate_limited,
            "total_update_bytes": report.total_bytes,
            "avg_update_bytes": math.floor(report.total_bytes / n + 0.5) if n else 0,
            "send_ms": round(send_ms, 3),
            "receive_ms": round(receive_ms, 3),
            "encode_ms": round(encode_ms, 3),
            "parse_ms": round(parse_ms, 3),
            "doc_size_bytes": len(final_state.encoded_state),
            "reload_matches": reloaded.text() == replica_a.text(),
        },
        poll_outcome=outcome,
    )
