"""Transport-independent building blocks: records, framing, dedup, polling."""

from relaybench.core.codec import MessageCodec, WireMessage, decode_message, unwrap, wrap
from relaybench.core.dedup import Admission, DedupRegistry
from relaybench.core.poller import IdlePoller, PollerState, PollOutcome
from relaybench.core.update import (
    DecodedUpdate,
    EditOp,
    Envelope,
    ReplicaSnapshot,
    RunSession,
    Update,
    UpdateIds,
    wall_ms,
)

__all__ = [
    "Admission",
    "DecodedUpdate",
    "DedupRegistry",
    "EditOp",
    "Envelope",
    "IdlePoller",
    "MessageCodec",
    "PollOutcome",
    "PollerState",
    "ReplicaSnapshot",
    "RunSession",
    "Update",
    "UpdateIds",
    "WireMessage",
    "decode_message",
    "unwrap",
    "wall_ms",
    "wrap",
]
