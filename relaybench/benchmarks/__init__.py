"""Benchmark scenarios and the orchestrator that runs them.

- **s1-sequential**: one producer sends everything, then the receiver polls
- **s2-concurrent**: two producers edit at once, each applying the other's updates
- **s4-large-edits**: single insertions of growing size, in process
"""

from relaybench.benchmarks.orchestrator import SCENARIOS, BenchmarkOrchestrator, select_scenarios
from relaybench.benchmarks.scenario import ScenarioContext, ScenarioResult
from relaybench.benchmarks.sender import SendPool, SendReport
from relaybench.benchmarks.workload import Workload

__all__ = [
    "BenchmarkOrchestrator",
    "SCENARIOS",
    "ScenarioContext",
    "ScenarioResult",
    "SendPool",
    "SendReport",
    "Workload",
    "select_scenarios",
]
