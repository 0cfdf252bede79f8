"""Concurrent dual-producer scenario.

Replicas A and B start from the same seeded text. Both edit at the same
time: A inserts one character at the front every 200-300 ms, B appends one
at the end every 100-400 ms. Every local update is sent through the relay,
and every arrival is applied to the replica that did not produce it. The
receive side is a push listener when the relay offers a push stream, and
otherwise polls both accounts' inboxes.

Each replica has its own ``asyncio.Lock``, taken by its local edits and by
remote applies into it, so an update is never captured while a remote
apply into the same replica is in progress. The two producers never
contend with each other.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import time

from relaybench.benchmarks.scenario import ScenarioContext, ScenarioResult, timed_ms
from relaybench.benchmarks.sender import SendPool
from relaybench.core.update import DecodedUpdate, EditOp
from relaybench.replica.driver import ReplicaDriver
from relaybench.transport.listener import PushListener
from relaybench.transport.sources import PollingSource, PushSource, UpdateSource

logger = logging.getLogger(__name__)

NAME = "s2-concurrent"


async def _produce(
    ctx: ScenarioContext,
    replica: ReplicaDriver,
    account: str,
    delay_range: tuple[float, float],
    at_end: bool,
    lock: asyncio.Lock,
    pool: SendPool,
) -> None:
    for _ in range(ctx.config.updates):
        await ctx.sleep(ctx.workload.delay(delay_range))
        async with lock:
            pos = len(replica.text()) if at_end else 0
            update = replica.apply_local_edit(EditOp(pos=pos, insert=ctx.workload.char()))
            pool.record(account, update, ctx.collector)
        await pool.send(account, update)
    logger.info("[%s] %s finished producing %d updates", ctx.name, replica.name, ctx.config.updates)


async def run(ctx: ScenarioContext) -> ScenarioResult:
    config = ctx.config
    n = config.updates
    start = time.perf_counter()

    replica_a = ctx.replica("A")
    replica_a.seed(ctx.workload.word(config.init_text_length))
    replica_b = ctx.replica("B", replica_a.snapshot())
    targets = {config.account_a: replica_b, config.account_b: replica_a}

    locks = {replica_a.name: asyncio.Lock(), replica_b.name: asyncio.Lock()}
    pool = ctx.send_pool()

    listener: PushListener | None = None
    source: UpdateSource
    if ctx.bridge.supports_push:
        listener = PushListener(ctx.bridge, retry_delay=config.error_delay)
        await listener.start()
        source = PushSource(listener, config.push_round_timeout)
        logger.info("[%s] receiving through push listener", ctx.name)
    else:
        source = PollingSource(
            ctx.bridge, [config.account_a, config.account_b], config.max_messages, config.poll_timeout
        )
        logger.info("[%s] relay has no push stream, polling both accounts", ctx.name)

    async def apply(update: DecodedUpdate) -> None:
        target = targets.get(update.sender_account)
        if target is None:
            logger.warning("[%s] update #%d from unknown sender %r not applied",
                           ctx.name, update.id, update.sender_account)
            return
        async with locks[target.name]:
            ctx.collector.record_applied(update.id, target.apply_remote(update.raw_update))

    async def one_round() -> int:
        accepted = 0
        for update in await source.fetch():
            if ctx.admit(update):
                accepted += 1
                await apply(update)
        return accepted

    receiver = asyncio.create_task(ctx.poller(2 * n).run(one_round))
    try:
        await asyncio.gather(
            _produce(ctx, replica_a, config.account_a, config.delay_range_a, False,
                     locks[replica_a.name], pool),
            _produce(ctx, replica_b, config.account_b, config.delay_range_b, True,
                     locks[replica_b.name], pool),
        )
        outcome = await receiver
    finally:
        if not receiver.done():
            receiver.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await receiver
        if listener is not None:
            await listener.close(config.listener_shutdown_timeout)
    elapsed_ms = (time.perf_counter() - start) * 1000.0

    if not outcome.satisfied:
        logger.warning("[%s] gave up with %d/%d updates", ctx.name, outcome.collected, 2 * n)

    mismatch = ctx.check_convergence(replica_a, replica_b)
    if mismatch is None:
        logger.info("[%s] replicas converged (%d chars)", ctx.name, len(replica_a.text()))
    else:
        logger.error("[%s] %s", ctx.name, mismatch)

    report = pool.report()
    final_state, encode_ms = timed_ms(replica_a.snapshot)
    reloaded, parse_ms = timed_ms(lambda: ctx.replica("reload", final_state))

    return ctx.finish(
        mismatch,
        {
            "updates": 2 * n,
            "sent": report.sent,
            "send_failures": report.failed,
            "rate_limited": report.rate_limited,
            "total_update_bytes": report.total_bytes,
            "avg_update_bytes": math.floor(report.total_bytes / (2 * n) + 0.5) if n else 0,
            "time_ms": round(elapsed_ms, 3),
            "encode_ms": round(encode_ms, 3),
            "parse_ms": round(parse_ms, 3),
            "doc_size_bytes": len(final_state.encoded_state),
            "reload_matches": reloaded.text() == replica_b.text(),
            "push": listener is not None,
        },
        poll_outcome=outcome,
    )
