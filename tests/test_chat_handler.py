"""Tests for the completion orchestrator lifecycle."""

import asyncio
import json

import pytest

from conversations import Role
from errors import AuthError, TransportError, ValidationError
from providers import BaseProvider, StreamDelta
from proxy import CompletionOrchestrator
from stream_debug import StreamTracer
from tests.conftest import FullDisk


class ScriptedProvider(BaseProvider):
    """Replays a fixed sequence of deltas, optionally failing or hanging"""

    name = "scripted"

    def __init__(self, deltas=(), error=None, hang=False):
        super().__init__("http://upstream.invalid")
        self.deltas = list(deltas)
        self.error = error
        self.hang = hang
        self.calls = []
        self.closed = asyncio.Event()
        self.started = asyncio.Event()

    def build_payload(self, model, instructions, messages):
        return {}

    def parse_frame(self, data):
        return None

    async def stream_completion(self, access_token, account_id, model, instructions, messages, **kwargs):
        self.calls.append({
            "token": access_token,
            "account_id": account_id,
            "model": model,
            "instructions": instructions,
            "messages": list(messages),
        })
        try:
            for delta in self.deltas:
                yield delta
            self.started.set()
            if self.hang:
                await asyncio.Event().wait()
            if self.error:
                raise self.error
        finally:
            self.closed.set()


class CountingCredentials:
    def __init__(self, error=None):
        self.calls = 0
        self.error = error

    async def access_token(self):
        self.calls += 1
        if self.error:
            raise self.error
        return "tok"

    def account_id(self):
        return "acct"


def make_orchestrator(store, provider, credentials=None, **kwargs):
    return CompletionOrchestrator(
        credentials=credentials or CountingCredentials(),
        conversations=store,
        provider=provider,
        model="gpt-4o",
        system_prompt="be nice",
        default_conversation_id="default",
        **kwargs,
    )


async def run(orchestrator, message, conversation_id=None):
    turn = await orchestrator.prepare(message, conversation_id)
    return [frame async for frame in orchestrator.relay(turn)]


async def test_successful_turn_streams_and_persists_once(conversation_store):
    provider = ScriptedProvider([StreamDelta("Hel"), StreamDelta("lo"), StreamDelta(done=True)])
    orchestrator = make_orchestrator(conversation_store, provider)

    frames = await run(orchestrator, "hi there")

    assert frames == [
        'data: {"content": "Hel"}\n\n',
        'data: {"content": "lo"}\n\n',
        "data: [DONE]\n\n",
    ]
    messages = await conversation_store.messages("default")
    assert [(m.role, m.content) for m in messages] == [(Role.USER, "hi there"), (Role.ASSISTANT, "Hello")]
    assert provider.calls[0]["messages"] == [{"role": "user", "content": "hi there"}]
    assert provider.calls[0]["instructions"] == "be nice"
    assert provider.calls[0]["account_id"] == "acct"


async def test_history_is_sent_on_later_turns(conversation_store):
    first = ScriptedProvider([StreamDelta("one"), StreamDelta(done=True)])
    await run(make_orchestrator(conversation_store, first), "q1", "chat-7")
    second = ScriptedProvider([StreamDelta("two"), StreamDelta(done=True)])

    await run(make_orchestrator(conversation_store, second), "q2", "chat-7")

    assert second.calls[0]["messages"] == [
        {"role": "user", "content": "q1"},
        {"role": "assistant", "content": "one"},
        {"role": "user", "content": "q2"},
    ]


@pytest.mark.parametrize("message", ["", "   ", None])
async def test_blank_message_touches_nothing(conversation_store, message):
    credentials = CountingCredentials()
    provider = ScriptedProvider()
    orchestrator = make_orchestrator(conversation_store, provider, credentials)

    with pytest.raises(ValidationError, match="message is required"):
        await orchestrator.prepare(message)

    assert credentials.calls == 0
    assert provider.calls == []
    assert await conversation_store.messages("default") == []


async def test_auth_failure_writes_nothing(conversation_store):
    orchestrator = make_orchestrator(
        conversation_store, ScriptedProvider(), CountingCredentials(error=AuthError("no credentials"))
    )

    with pytest.raises(AuthError):
        await orchestrator.prepare("hello")
    assert await conversation_store.messages("default") == []


async def test_upstream_error_becomes_error_frame_without_assistant_turn(conversation_store):
    provider = ScriptedProvider([StreamDelta("part")], error=TransportError("reading stream: reset"))
    orchestrator = make_orchestrator(conversation_store, provider)

    frames = await run(orchestrator, "hello")

    assert frames[0] == 'data: {"content": "part"}\n\n'
    assert json.loads(frames[-1][len("data: "):]) == {"error": "reading stream: reset"}
    assert "data: [DONE]\n\n" not in frames
    roles = [m.role for m in await conversation_store.messages("default")]
    assert roles == [Role.USER]


async def test_partial_reply_is_saved_when_enabled(conversation_store):
    provider = ScriptedProvider([StreamDelta("part")], error=TransportError("reset"))
    orchestrator = make_orchestrator(conversation_store, provider, persist_partial_replies=True)

    await run(orchestrator, "hello")

    messages = await conversation_store.messages("default")
    assert [(m.role, m.content) for m in messages] == [(Role.USER, "hello"), (Role.ASSISTANT, "part")]


async def test_empty_reply_is_not_persisted(conversation_store):
    orchestrator = make_orchestrator(conversation_store, ScriptedProvider([StreamDelta(done=True)]))

    frames = await run(orchestrator, "hello")

    assert frames == ["data: [DONE]\n\n"]
    assert len(await conversation_store.messages("default")) == 1


async def test_non_ascii_content_is_sent_unescaped(conversation_store):
    orchestrator = make_orchestrator(conversation_store, ScriptedProvider([StreamDelta("héllo ✓"), StreamDelta(done=True)]))

    frames = await run(orchestrator, "hi")

    assert frames[0] == 'data: {"content": "héllo ✓"}\n\n'


async def test_cancellation_closes_upstream_and_skips_assistant_write(conversation_store):
    provider = ScriptedProvider([StreamDelta("thinking")], hang=True)
    orchestrator = make_orchestrator(conversation_store, provider)
    turn = await orchestrator.prepare("hello", "cancel-me")
    received = []

    async def consume():
        async for frame in orchestrator.relay(turn):
            received.append(frame)

    task = asyncio.create_task(consume())
    await provider.started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert provider.closed.is_set()
    assert received == ['data: {"content": "thinking"}\n\n']
    messages = await conversation_store.messages("cancel-me")
    assert [m.role for m in messages] == [Role.USER]


async def test_blank_conversation_id_uses_default(conversation_store):
    orchestrator = make_orchestrator(conversation_store, ScriptedProvider([StreamDelta(done=True)]))

    turn = await orchestrator.prepare("hi", "  ")

    assert turn.conversation_id == "default"


async def test_stream_trace_records_both_directions(conversation_store, tmp_path, monkeypatch):
    monkeypatch.setattr("settings.STREAM_TRACE_DIR", str(tmp_path / "traces"))
    provider = ScriptedProvider([StreamDelta("traced"), StreamDelta(done=True)])
    orchestrator = make_orchestrator(conversation_store, provider, trace_enabled=True)

    await run(orchestrator, "hi")

    [trace] = list((tmp_path / "traces").iterdir())
    text = trace.read_text()
    assert "[DOWNSTREAM]" in text
    assert '{"content": "traced"}' in text
    assert "stream tracer closed" in text


async def test_trace_write_failure_does_not_break_relay(conversation_store, tmp_path, monkeypatch):
    def failing_tracer(enabled, request_id, route, base_dir, max_bytes):
        tracer = StreamTracer(request_id, route, str(tmp_path), max_bytes)
        tracer._file.close()
        tracer._file = FullDisk()
        return tracer

    monkeypatch.setattr("proxy.handlers.chat_handler.maybe_create_stream_tracer", failing_tracer)
    provider = ScriptedProvider([StreamDelta("still"), StreamDelta(" here"), StreamDelta(done=True)])
    orchestrator = make_orchestrator(conversation_store, provider, trace_enabled=True)

    frames = await run(orchestrator, "hi")

    assert frames == [
        'data: {"content": "still"}\n\n',
        'data: {"content": " here"}\n\n',
        "data: [DONE]\n\n",
    ]
    messages = await conversation_store.messages("default")
    assert messages[-1].content == "still here"
