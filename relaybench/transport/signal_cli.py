"""Relay client that shells out to ``signal-cli`` for every request.

Each poll is a one-shot ``signal-cli receive`` whose JSON output is one
event per line. Stray non-JSON lines (warnings, progress) are skipped.
There is no push stream: use polling with this relay.
"""

from __future__ import annotations

import asyncio
import json
import logging

from relaybench.errors import RateLimitedError, TransportError
from relaybench.transport.challenge import RATE_LIMIT_RE, extract_challenge, wait_hint_from_text
from relaybench.transport.protocol import RelayEvent

logger = logging.getLogger(__name__)


def parse_event_lines(text: str) -> list[RelayEvent]:
    """Parse line-delimited JSON events, skipping anything that is not a JSON object."""
    events = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            logger.warning("non-JSON line from signal-cli: %.120s", line)
            continue
        if isinstance(event, dict):
            events.append(event)
    return events


class SignalCliRelay:
    """Relay backed by the ``signal-cli`` executable.

    Args:
        executable: Path or name of the signal-cli binary.
        config_dir: Value for ``--config`` (multi-account data directory).
        command_timeout: Seconds added to a command's own timeout before
            the process is killed.
    """

    def __init__(
        self,
        executable: str = "signal-cli",
        config_dir: str | None = None,
        command_timeout: float = 60.0,
    ):
        self._executable = executable
        self._config_dir = config_dir
        self._command_timeout = command_timeout

    def _base_args(self) -> list[str]:
        args = ["--output", "json"]
        if self._config_dir:
            args += ["--config", self._config_dir]
        return args

    async def _run(self, args: list[str], timeout: float) -> str:
        argv = [self._executable, *self._base_args(), *args]
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TransportError(f"cannot start {self._executable}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise TransportError(f"signal-cli {' '.join(args[2:3])} timed out after {timeout:.0f}s") from e

        if proc.returncode != 0:
            err = stderr.decode(errors="replace").strip()
            if RATE_LIMIT_RE.search(err):
                raise RateLimitedError(
                    err or "rate limited",
                    challenge=extract_challenge(err),
                    wait_seconds=wait_hint_from_text(err),
                )
            raise TransportError(f"signal-cli exited with {proc.returncode}: {err[:200]}")
        return stdout.decode(errors="replace")

    async def send(self, account: str, group_id: str, message: str) -> None:
        await self._run(
            ["-u", account, "send", "-g", group_id, "-m", message],
            self._command_timeout,
        )

    async def receive(self, account: str, max_messages: int, timeout: float) -> list[RelayEvent]:
        output = await self._run(
            [
                "-u", account, "receive",
                "--timeout", str(timeout),
                "--max-messages", str(max_messages),
            ],
            timeout + self._command_timeout,
        )
        return parse_event_lines(output)
