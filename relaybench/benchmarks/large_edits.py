"""Large single-edit sweep.

For each edit size, one insertion of that many characters is made on a
fresh replica and every update it produced is applied to a second replica,
in process. Records the local operation, remote apply, encode and parse
times, update count/bytes and the encoded document size. Uses no relay.
"""

from __future__ import annotations

import logging
import math
import time

from relaybench.benchmarks.scenario import ScenarioContext, ScenarioResult, timed_ms
from relaybench.core.update import EditOp
from relaybench.errors import ConvergenceMismatch

logger = logging.getLogger(__name__)

NAME = "s4-large-edits"

COLUMNS = [
    "crdt",
    "benchmark",
    "edit_size",
    "local_op_time_ms",
    "remote_apply_time_ms",
    "encode_time_ms",
    "parse_time_ms",
    "update_count",
    "total_update_bytes",
    "avg_update_bytes",
    "doc_size_bytes",
]


def _sweep_one(ctx: ScenarioContext, size: int) -> tuple[dict, ConvergenceMismatch | None]:
    text = ctx.workload.word(size)
    origin = ctx.replica(f"origin-{size}")
    remote = ctx.replica(f"remote-{size}")

    update, local_ms = timed_ms(lambda: origin.apply_local_edit(EditOp(pos=0, insert=text)))
    updates = [update]
    apply_ms = sum(remote.apply_remote(u.payload) for u in updates)
    total_bytes = sum(u.size for u in updates)

    mismatch = ctx.check_convergence(origin, remote)
    if mismatch is None and remote.text() != text:
        mismatch = ConvergenceMismatch.between(ctx.name, text, remote.text())

    snapshot, encode_ms = timed_ms(origin.snapshot)
    reloaded, parse_ms = timed_ms(lambda: ctx.replica(f"reload-{size}", snapshot))
    if mismatch is None and reloaded.text() != remote.text():
        mismatch = ConvergenceMismatch.between(ctx.name, remote.text(), reloaded.text())

    row = {
        "crdt": ctx.factory.name,
        "benchmark": f"Insert string of length {size}",
        "edit_size": size,
        "local_op_time_ms": round(local_ms, 3),
        "remote_apply_time_ms": round(apply_ms, 3),
        "encode_time_ms": round(encode_ms, 3),
        "parse_time_ms": round(parse_ms, 3),
        "update_count": len(updates),
        "total_update_bytes": total_bytes,
        "avg_update_bytes": math.floor(total_bytes / len(updates) + 0.5),
        "doc_size_bytes": len(snapshot.encoded_state),
    }
    return row, mismatch


async def run(ctx: ScenarioContext) -> ScenarioResult:
    start = time.perf_counter()
    rows = []
    results = {}
    first_mismatch: ConvergenceMismatch | None = None

    for size in ctx.config.edit_sizes:
        row, mismatch = _sweep_one(ctx, size)
        rows.append(row)
        results[f"length {size} avg_update_bytes"] = row["avg_update_bytes"]
        results[f"length {size} doc_size_bytes"] = row["doc_size_bytes"]
        logger.info("[%s] size %d: local %.3fms apply %.3fms doc %d bytes",
                    ctx.name, size, row["local_op_time_ms"], row["remote_apply_time_ms"],
                    row["doc_size_bytes"])
        if mismatch is not None:
            logger.error("[%s] %s", ctx.name, mismatch)
            first_mismatch = first_mismatch or mismatch

    results["time_ms"] = round((time.perf_counter() - start) * 1000.0, 3)
    return ScenarioResult(
        name=ctx.name,
        ok=first_mismatch is None,
        converged=first_mismatch is None,
        rows=rows,
        results=results,
        mismatch=first_mismatch,
        columns=COLUMNS,
    )
