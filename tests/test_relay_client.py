import json

import httpx
import pytest

from client import RelayClient
from errors import AuthError, TransportError, ValidationError

from tests.conftest import sse_response

BASE = "http://relay.test"


async def test_chat_stream_yields_content_until_done(upstream):
    route = upstream.post(f"{BASE}/chat").mock(return_value=sse_response(
        '{"content": "Hi"}', '{"content": " you"}', "[DONE]",
    ))

    async with RelayClient(BASE) as relay:
        parts = [p async for p in relay.chat_stream("hello", conversation_id="c1")]

    assert parts == ["Hi", " you"]
    assert json.loads(route.calls.last.request.content) == {"message": "hello", "conversation_id": "c1"}


async def test_chat_collects_whole_reply(upstream):
    upstream.post(f"{BASE}/chat").mock(return_value=sse_response('{"content": "a"}', '{"content": "b"}', "[DONE]"))

    async with RelayClient(BASE) as relay:
        assert await relay.chat("hello") == "ab"


async def test_error_frame_raises(upstream):
    upstream.post(f"{BASE}/chat").mock(return_value=sse_response('{"content": "a"}', '{"error": "upstream died"}'))

    async with RelayClient(BASE) as relay:
        with pytest.raises(TransportError, match="upstream died"):
            await relay.chat("hello")


async def test_stream_without_done_raises(upstream):
    upstream.post(f"{BASE}/chat").mock(return_value=sse_response('{"content": "a"}'))

    async with RelayClient(BASE) as relay:
        with pytest.raises(TransportError, match="without"):
            await relay.chat("hello")


async def test_blank_message_is_rejected_locally(upstream):
    route = upstream.post(f"{BASE}/chat")

    async with RelayClient(BASE) as relay:
        with pytest.raises(ValidationError):
            await relay.chat("  ")
    assert not route.called


@pytest.mark.parametrize("status,error", [(400, ValidationError), (401, AuthError), (502, TransportError)])
async def test_http_errors_map_to_relay_errors(upstream, status, error):
    upstream.post(f"{BASE}/chat").mock(return_value=httpx.Response(status, json={"error": "nope"}))

    async with RelayClient(BASE) as relay:
        with pytest.raises(error, match="nope"):
            await relay.chat("hello")


async def test_health(upstream):
    upstream.get(f"{BASE}/health").mock(return_value=httpx.Response(200, json={"status": "ok"}))
    upstream.get("http://down.test/health").mock(side_effect=httpx.ConnectError("refused"))

    async with RelayClient(BASE) as relay:
        assert await relay.health() is True
    async with RelayClient("http://down.test") as relay:
        assert await relay.health() is False
