"""Tests for SignalRpcRelay against a mocked HTTP transport."""

import asyncio
import json

import httpx
import pytest

from relaybench.errors import RateLimitedError, TransportError
from relaybench.transport.signal_rpc import EVENTS_PATH, RPC_PATH, SignalRpcRelay, parse_sse


def _relay(handler) -> SignalRpcRelay:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://signal.test")
    return SignalRpcRelay(client=client)


def _rpc_result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


class TestRpc:
    """JSON-RPC send and receive."""

    def test_send_posts_jsonrpc_request(self):
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            assert request.url.path == RPC_PATH
            return _rpc_result(request, {"timestamp": 1})

        async def scenario():
            async with _relay(handler) as relay:
                await relay.send("+4100000001", "group==", "hello")
                await relay.send("+4100000001", "group==", "again")

        asyncio.run(scenario())
        assert requests[0]["method"] == "send"
        assert requests[0]["params"] == {
            "account": "+4100000001", "groupId": "group==", "message": "hello",
        }
        assert [r["id"] for r in requests] == [1, 2]

    def test_receive_returns_events(self):
        events = [{"envelope": {"source": "+1"}}]

        def handler(request):
            body = json.loads(request.content)
            assert body["params"] == {"account": "+1", "maxMessages": 5, "timeout": 0.5}
            return _rpc_result(request, events)

        async def scenario():
            async with _relay(handler) as relay:
                return await relay.receive("+1", 5, 0.5)

        assert asyncio.run(scenario()) == events

    def test_receive_null_result_is_empty(self):
        async def scenario():
            async with _relay(lambda request: _rpc_result(request, None)) as relay:
                return await relay.receive("+1", 5, 0)

        assert asyncio.run(scenario()) == []

    def test_receive_rejects_non_list(self):
        async def scenario():
            async with _relay(lambda request: _rpc_result(request, {"oops": 1})) as relay:
                await relay.receive("+1", 5, 0)

        with pytest.raises(TransportError):
            asyncio.run(scenario())


class TestErrorMapping:
    def test_rate_limit_error_carries_challenge(self):
        def handler(request):
            return httpx.Response(200, json={
                "jsonrpc": "2.0",
                "id": 1,
                "error": {
                    "code": -5,
                    "message": "Failed to send message due to rate limiting",
                    "data": {"challenge": "tok-9", "options": ["captcha"], "wait": 30},
                },
            })

        async def scenario():
            async with _relay(handler) as relay:
                await relay.send("+1", "g", "m")

        with pytest.raises(RateLimitedError) as info:
            asyncio.run(scenario())
        assert info.value.challenge == "tok-9"
        assert info.value.options == ["captcha"]
        assert info.value.wait_seconds == 30.0

    def test_rate_limit_recognized_from_message(self):
        def handler(request):
            return httpx.Response(200, json={"error": {"code": -1, "message": "Rate limit exceeded"}})

        async def scenario():
            async with _relay(handler) as relay:
                await relay.send("+1", "g", "m")

        with pytest.raises(RateLimitedError) as info:
            asyncio.run(scenario())
        assert info.value.challenge is None
        assert info.value.wait_seconds is None

    def test_other_rpc_error_is_transport_error(self):
        def handler(request):
            return httpx.Response(200, json={"error": {"code": -32601, "message": "Method not found"}})

        async def scenario():
            async with _relay(handler) as relay:
                await relay.send("+1", "g", "m")

        with pytest.raises(TransportError) as info:
            asyncio.run(scenario())
        assert not isinstance(info.value, RateLimitedError)
        assert "Method not found" in str(info.value)

    @pytest.mark.parametrize("response", [
        httpx.Response(500, text="boom"),
        httpx.Response(200, text="not json"),
    ])
    def test_http_failures_are_transport_errors(self, response):
        async def scenario():
            async with _relay(lambda request: response) as relay:
                await relay.send("+1", "g", "m")

        with pytest.raises(TransportError):
            asyncio.run(scenario())

    def test_connection_error_is_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async def scenario():
            async with _relay(handler) as relay:
                await relay.receive("+1", 1, 0)

        with pytest.raises(TransportError):
            asyncio.run(scenario())


class TestEvents:
    """Server-sent events."""

    def test_events_stream_receive_payloads(self):
        body = (
            ": keep-alive\n\n"
            'event:receive\ndata:{"envelope": {"source": "+1"}}\n\n'
            "event:other\ndata:{}\n\n"
            'event:receive\ndata:{"envelope": {"source": "+2"}}\n\n'
        )

        def handler(request):
            assert request.url.path == EVENTS_PATH
            return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

        async def scenario():
            async with _relay(handler) as relay:
                return [event async for event in relay.events()]

        events = asyncio.run(scenario())
        assert [e["envelope"]["source"] for e in events] == ["+1", "+2"]

    def test_events_http_error(self):
        async def scenario():
            async with _relay(lambda request: httpx.Response(503)) as relay:
                async for _ in relay.events():
                    pass

        with pytest.raises(TransportError):
            asyncio.run(scenario())


class TestParseSse:
    @staticmethod
    def _parse(lines):
        async def source():
            for line in lines:
                yield line

        async def collect():
            return [event async for event in parse_sse(source())]

        return asyncio.run(collect())

    def test_multiline_data_joined(self):
        lines = ["event: receive", 'data: {"a":', "data: 1}", ""]
        assert self._parse(lines) == [{"a": 1}]

    def test_default_event_name_ignored(self):
        assert self._parse(['data: {"a": 1}', ""]) == []

    def test_bad_json_skipped(self):
        lines = ["event: receive", "data: {nope", "", "event: receive", "data: [1]", ""]
        assert self._parse(lines) == [[1]]

    def test_unterminated_event_dropped(self):
        assert self._parse(["event: receive", 'data: {"a": 1}']) == []
