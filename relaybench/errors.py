"""Error taxonomy for relaybench.

- **TransportError**: network or process failure talking to the relay.
  Receive loops retry after a fixed delay; it never fails a scenario on
  its own.
- **RateLimitedError**: the relay refused a request and said when to try
  again. Carries the structured ``challenge``/``options``/``wait_seconds``
  metadata unchanged so the caller can decide on a retry policy.
- **CodecError**: a payload is not a recognized framing. The envelope is
  dropped and logged.
- **ReplicaError**: a local edit produced no update.
- **ConvergenceMismatch**: replicas disagree after all expected updates
  were applied. Scenarios record it in their result instead of raising.

Idle give-up is not an error; see ``relaybench.core.poller.PollerState``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class RelayBenchError(Exception):
    """Base class for all relaybench errors."""


class TransportError(RelayBenchError):
    """The relay could not be reached or returned a failure."""


class RateLimitedError(TransportError):
    """The relay rate-limited a request.

    Args:
        message: Human-readable description.
        challenge: Captcha/challenge token the relay asked to be solved.
        options: Challenge options offered by the relay.
        wait_seconds: How long the relay asked us to wait, if it said.
    """

    def __init__(
        self,
        message: str = "rate limited",
        *,
        challenge: str | None = None,
        options: list[str] | None = None,
        wait_seconds: float | None = None,
    ):
        super().__init__(message)
        self.challenge = challenge
        self.options = list(options) if options else []
        self.wait_seconds = wait_seconds

    def __repr__(self) -> str:
        return (
            f"RateLimitedError(challenge={self.challenge!r}, "
            f"options={self.options!r}, wait_seconds={self.wait_seconds!r})"
        )


class CodecError(RelayBenchError):
    """A payload could not be decoded."""


class ReplicaError(RelayBenchError):
    """A replica operation did not behave as the engine contract requires."""


@dataclass(eq=False)
class ConvergenceMismatch(RelayBenchError):
    """Final replica texts differ.

    Stored in scenario results. Only the two lengths and the offset of the
    first differing character are kept, not the texts themselves.
    """

    scenario: str
    left_length: int
    right_length: int
    first_difference: int

    def __str__(self) -> str:
        return (
            f"{self.scenario}: replicas diverged at offset {self.first_difference} "
            f"(lengths {self.left_length} vs {self.right_length})"
        )

    @classmethod
    def between(cls, scenario: str, left: str, right: str) -> ConvergenceMismatch:
        offset = 0
        for a, b in zip(left, right):
            if a != b:
                break
            offset += 1
        return cls(
            scenario=scenario,
            left_length=len(left),
            right_length=len(right),
            first_difference=offset,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenario": self.scenario,
            "left_length": self.left_length,
            "right_length": self.right_length,
            "first_difference": self.first_difference,
        }
