"""Relay client for a signal-cli daemon in HTTP mode.

Requests go to the daemon's JSON-RPC endpoint (``POST /api/v1/rpc``);
pushed messages come from its server-sent-events endpoint
(``GET /api/v1/events``). A single ``httpx.AsyncClient`` with keep-alive
is shared by both.

Example::

    async with SignalRpcRelay("http://localhost:8080") as relay:
        await relay.send("+4100000001", group_id, message)
        async for event in relay.events():
            ...
"""

from __future__ import annotations

import itertools
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from relaybench.errors import RateLimitedError, TransportError
from relaybench.transport.challenge import RATE_LIMIT_RE, rate_limit_details
from relaybench.transport.protocol import RelayEvent

logger = logging.getLogger(__name__)

RPC_PATH = "/api/v1/rpc"
EVENTS_PATH = "/api/v1/events"


class SignalRpcRelay:
    """JSON-RPC + SSE client for ``signal-cli daemon --http``.

    Args:
        base_url: Daemon address.
        timeout: Request timeout in seconds for JSON-RPC calls.
        client: Pre-built client (tests pass one with a mock transport).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            limits=httpx.Limits(max_keepalive_connections=16),
        )
        self._ids = itertools.count(1)

    async def __aenter__(self) -> SignalRpcRelay:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _rpc(self, method: str, params: dict[str, Any]) -> Any:
        request = {"jsonrpc": "2.0", "method": method, "params": params, "id": next(self._ids)}
        try:
            response = await self._client.post(RPC_PATH, json=request)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise TransportError(f"{method} request failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"{method} returned a non-JSON body") from e

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            raise _rpc_error(method, error)
        return body.get("result")

    async def send(self, account: str, group_id: str, message: str) -> None:
        await self._rpc("send", {"account": account, "groupId": group_id, "message": message})

    async def receive(self, account: str, max_messages: int, timeout: float) -> list[RelayEvent]:
        result = await self._rpc(
            "receive",
            {"account": account, "maxMessages": max_messages, "timeout": timeout},
        )
        if result is None:
            return []
        if not isinstance(result, list):
            raise TransportError(f"receive returned {type(result).__name__}, expected a list")
        return result

    async def events(self, account: str | None = None) -> AsyncIterator[RelayEvent]:
        """Stream ``receive`` events from the daemon's SSE endpoint."""
        params = {"account": account} if account else None
        try:
            async with self._client.stream(
                "GET", EVENTS_PATH, params=params, timeout=httpx.Timeout(None)
            ) as response:
                response.raise_for_status()
                async for event in parse_sse(response.aiter_lines()):
                    yield event
        except httpx.HTTPError as e:
            raise TransportError(f"event stream failed: {e}") from e


async def parse_sse(lines: AsyncIterator[str]) -> AsyncIterator[RelayEvent]:
    """Turn server-sent-event lines into decoded ``receive`` event payloads."""
    event_name = "message"
    data_lines: list[str] = []
    async for line in lines:
        if not line:
            if data_lines and event_name == "receive":
                payload = "\n".join(data_lines)
                try:
                    yield json.loads(payload)
                except json.JSONDecodeError:
                    logger.warning("skipping non-JSON SSE payload: %.80s", payload)
            event_name = "message"
            data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)


def _rpc_error(method: str, error: dict[str, Any]) -> TransportError:
    message = str(error.get("message") or "JSON-RPC error")
    challenge, options, wait = rate_limit_details(error)
    if challenge or wait is not None or RATE_LIMIT_RE.search(message):
        logger.warning(
            "relay rate limit on %s: code=%s challenge=%s options=%s wait=%s",
            method,
            error.get("code", "n/a"),
            challenge or "n/a",
            ",".join(options) or "n/a",
            "n/a" if wait is None else wait,
        )
        return RateLimitedError(message, challenge=challenge, options=options, wait_seconds=wait)
    return TransportError(f"{method}: {message} (code {error.get('code', 'n/a')})")
