"""Benchmark run configuration.

``BenchmarkConfig`` holds every knob a scenario reads. Values come from the
defaults below, optionally overlaid with ``RB_*`` environment variables via
``from_env()`` and then with command-line flags via ``replace()``.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

DEFAULT_GROUP_ID = "wTNY8teX//CGUwj/7wXVQSqnJqVkxmWaessV0HPkSlI="
DEFAULT_ACCOUNT_A = "+41782255248"
DEFAULT_ACCOUNT_B = "+41783227908"
DEFAULT_EDIT_SIZES = (1, 5, 10, 50, 100, 500, 1_000, 5_000, 10_000, 50_000)


@dataclass(frozen=True)
class BenchmarkConfig:
    """Settings shared by all scenarios of one run.

    Attributes:
        updates: Updates produced per producer (N).
        send_concurrency: SendPool worker count.
        max_idle_rounds: Consecutive empty receive rounds before giving up.
        idle_delay: Seconds to wait after an empty round.
        error_delay: Seconds to wait after a failed round without a hint.
        poll_timeout: Seconds a single relay receive call may block.
        push_round_timeout: Seconds a push round waits for its first item.
        max_messages: Upper bound of messages per receive call.
        edit_sizes: Insertion lengths for the large-edit sweep.
        init_text_length: Length of the seeded initial text.
        delay_range_a: (min, max) seconds between producer A edits.
        delay_range_b: (min, max) seconds between producer B edits.
        group_id: Relay group both accounts belong to.
        account_a: Account of replica A.
        account_b: Account of replica B.
        seed: Workload RNG seed; None draws a random one.
        listener_shutdown_timeout: Seconds to wait for the push listener to stop.
        max_send_attempts: Send attempts per update before counting it failed.
        output_dir: Directory for CSV, JSON and plot output.
    """

    updates: int = 100
    send_concurrency: int = 8
    max_idle_rounds: int = 60
    idle_delay: float = 1.0
    error_delay: float = 1.0
    poll_timeout: float = 0.0
    push_round_timeout: float = 1.0
    max_messages: int = 1000
    edit_sizes: tuple[int, ...] = DEFAULT_EDIT_SIZES
    init_text_length: int = 100
    delay_range_a: tuple[float, float] = (0.2, 0.3)
    delay_range_b: tuple[float, float] = (0.1, 0.4)
    group_id: str = DEFAULT_GROUP_ID
    account_a: str = DEFAULT_ACCOUNT_A
    account_b: str = DEFAULT_ACCOUNT_B
    seed: int | None = None
    listener_shutdown_timeout: float = 1.0
    max_send_attempts: int = 5
    output_dir: str = "benchmark_data"

    def __post_init__(self) -> None:
        if self.updates < 0:
            raise ValueError(f"updates must be >= 0, got {self.updates}")
        for name in ("send_concurrency", "max_idle_rounds", "max_messages", "max_send_attempts"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        for name in ("idle_delay", "error_delay", "poll_timeout", "push_round_timeout",
                     "listener_shutdown_timeout"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.init_text_length < 0:
            raise ValueError(f"init_text_length must be >= 0, got {self.init_text_length}")
        if any(size < 1 for size in self.edit_sizes):
            raise ValueError(f"edit_sizes must all be >= 1, got {self.edit_sizes}")
        for name in ("delay_range_a", "delay_range_b"):
            low, high = getattr(self, name)
            if low < 0 or high < low:
                raise ValueError(f"{name} must satisfy 0 <= min <= max, got {(low, high)}")
        if not self.group_id:
            raise ValueError("group_id must not be empty")
        if not self.account_a or not self.account_b:
            raise ValueError("account_a and account_b must not be empty")
        if self.account_a == self.account_b:
            raise ValueError("account_a and account_b must differ")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BenchmarkConfig:
        """Defaults overlaid with ``RB_*`` variables from ``environ`` (os.environ by default)."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for field in dataclasses.fields(cls):
            raw = env.get(f"RB_{field.name.upper()}")
            if raw is None or raw == "":
                continue
            values[field.name] = _parse(field.name, raw, field.default)
        return cls(**values)

    def replace(self, **overrides: Any) -> BenchmarkConfig:
        """Copy with ``overrides`` applied; None values are ignored."""
        return dataclasses.replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _parse(name: str, raw: str, default: Any) -> Any:
    try:
        if name == "seed":
            return int(raw)
        if isinstance(default, tuple):
            items = [item.strip() for item in raw.split(",") if item.strip()]
            if name == "edit_sizes":
                return tuple(int(item) for item in items)
            if len(items) != 2:
                raise ValueError("expected two comma-separated numbers")
            return (float(items[0]), float(items[1]))
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
    except ValueError as e:
        raise ValueError(f"RB_{name.upper()}={raw!r}: {e}") from e
    return raw
