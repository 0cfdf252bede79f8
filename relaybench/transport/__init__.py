"""Relay clients and the bridge that filters and decodes their traffic.

- **TransportBridge**: send/receive for one run session, uniform filtering
- **PushListener**: push subscription in its own task, feeding a queue
- **PollingSource** / **PushSource**: one round of updates in either mode
- **InMemoryRelay**: in-process relay with duplication, jitter, throttling
- **SignalRpcRelay**: signal-cli daemon over JSON-RPC and SSE
- **SignalCliRelay**: signal-cli one-shot subprocess calls
"""

from relaybench.transport.bridge import BridgeStats, TransportBridge, unwrap_event
from relaybench.transport.listener import PushListener
from relaybench.transport.memory import InMemoryRelay, make_event
from relaybench.transport.protocol import PushRelay, Relay, RelayEvent
from relaybench.transport.rate_limit import TokenBucketPolicy
from relaybench.transport.signal_cli import SignalCliRelay
from relaybench.transport.signal_rpc import SignalRpcRelay
from relaybench.transport.sources import PollingSource, PushSource, UpdateSource

__all__ = [
    "BridgeStats",
    "InMemoryRelay",
    "PollingSource",
    "PushListener",
    "PushRelay",
    "PushSource",
    "Relay",
    "RelayEvent",
    "SignalCliRelay",
    "SignalRpcRelay",
    "TokenBucketPolicy",
    "TransportBridge",
    "UpdateSource",
    "make_event",
    "unwrap_event",
]
