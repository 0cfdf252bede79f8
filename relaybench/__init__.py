"""relaybench: CRDT replication latency over a group-messaging relay.

Silent by default; call ``enable_console_logging()`` (or set RB_LOGGING and
call ``configure_from_env()``) to see progress.
"""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

from relaybench.benchmarks import (
    BenchmarkOrchestrator,
    ScenarioContext,
    ScenarioResult,
    SendPool,
    select_scenarios,
)
from relaybench.config import BenchmarkConfig
from relaybench.core import (
    DecodedUpdate,
    DedupRegistry,
    EditOp,
    IdlePoller,
    MessageCodec,
    PollerState,
    PollOutcome,
    ReplicaSnapshot,
    RunSession,
    Update,
)
from relaybench.errors import (
    CodecError,
    ConvergenceMismatch,
    RateLimitedError,
    RelayBenchError,
    ReplicaError,
    TransportError,
)
from relaybench.instrumentation import MetricsCollector, MetricsRow, ScenarioSummary
from relaybench.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_logging,
    set_level,
    set_module_level,
)
from relaybench.replica import PycrdtFactory, ReplicaDriver
from relaybench.transport import (
    InMemoryRelay,
    PushListener,
    SignalCliRelay,
    SignalRpcRelay,
    TransportBridge,
)

__version__ = "0.1.0"

__all__ = [
    # Orchestration
    "BenchmarkConfig",
    "BenchmarkOrchestrator",
    "ScenarioContext",
    "ScenarioResult",
    "SendPool",
    "select_scenarios",
    # Core
    "DecodedUpdate",
    "DedupRegistry",
    "EditOp",
    "IdlePoller",
    "MessageCodec",
    "PollOutcome",
    "PollerState",
    "ReplicaSnapshot",
    "RunSession",
    "Update",
    # Replicas
    "PycrdtFactory",
    "ReplicaDriver",
    # Transport
    "InMemoryRelay",
    "PushListener",
    "SignalCliRelay",
    "SignalRpcRelay",
    "TransportBridge",
    # Metrics
    "MetricsCollector",
    "MetricsRow",
    "ScenarioSummary",
    # Errors
    "CodecError",
    "ConvergenceMismatch",
    "RateLimitedError",
    "RelayBenchError",
    "ReplicaError",
    "TransportError",
    # Logging
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]
