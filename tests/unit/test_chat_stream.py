"""Tests for the streaming chat client, driven by ``httpx.MockTransport``."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from media_orchestrator.chat.client import ChatStreamClient, complete_chat
from media_orchestrator.errors import RemoteError, TransportError
from media_orchestrator.events import EventBus, chat_stream_channel

ENDPOINT = "https://llm.example.com/v1"
API_KEY = "sk-test-0123456789abcdefghijklmnop"


def _sse(*frames: object) -> bytes:
    lines = []
    for frame in frames:
        data = frame if isinstance(frame, str) else json.dumps(frame)
        lines.append(f"data: {data}\n\n")
    return "".join(lines).encode()


def _chunk(delta: dict, finish_reason: str | None = None) -> dict:
    return {"choices": [{"delta": delta, "finish_reason": finish_reason}]}


async def _run_stream(body: bytes, *, event_id: str = "evt-1") -> tuple[list[dict], ChatStreamClient]:
    bus = EventBus()
    queue = bus.subscribe(chat_stream_channel(event_id))
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=body))
    client = ChatStreamClient(bus, transport=transport)

    await client.start_stream(ENDPOINT, API_KEY, "model", [{"role": "user", "content": "hi"}], event_id=event_id)

    events = []
    while True:
        event = await asyncio.wait_for(queue.get(), timeout=5)
        events.append(event)
        if event["type"] in ("done", "stopped", "error"):
            break
    # Let the consumer task finish and its done callback run.
    await asyncio.sleep(0.05)
    return events, client


def test_done_emits_single_terminal_event_and_clears_registry() -> None:
    body = _sse(
        _chunk({"content": "Hel"}),
        _chunk({"content": "lo"}),
        _chunk({"reasoning": "hmm"}),
        "[DONE]",
    )

    async def scenario() -> None:
        events, client = await _run_stream(body)

        assert [event["type"] for event in events] == ["content", "content", "reasoning", "done"]
        assert [event["content"] for event in events[:2]] == ["Hel", "lo"]
        assert all(event["event_id"] == "evt-1" for event in events)
        assert not client.registry.contains("evt-1")
        with pytest.raises(KeyError):
            await client.stop_stream("evt-1")

    asyncio.run(scenario())


def test_tool_calls_are_reassembled_across_chunks() -> None:
    body = _sse(
        _chunk({"tool_calls": [{"index": 0, "id": "call_1", "type": "function", "function": {"name": "add"}}]}),
        _chunk({"tool_calls": [{"index": 0, "function": {"arguments": '{"a":'}}]}),
        _chunk({"tool_calls": [{"index": 0, "function": {"arguments": "1}"}}]}),
        _chunk({}, finish_reason="tool_calls"),
        "[DONE]",
    )

    async def scenario() -> None:
        events, _ = await _run_stream(body)

        assert [event["type"] for event in events] == ["tool_calls", "done"]
        assert events[0]["tool_calls"] == [
            {"id": "call_1", "type": "function", "function": {"name": "add", "arguments": '{"a":1}'}}
        ]

    asyncio.run(scenario())


def test_finish_reason_stop_ends_stream_without_done_sentinel() -> None:
    body = _sse(_chunk({"content": "ok"}, finish_reason="stop"), _chunk({"content": "ignored"}))

    async def scenario() -> None:
        events, _ = await _run_stream(body)

        assert [event["type"] for event in events] == ["content", "done"]

    asyncio.run(scenario())


def test_malformed_frames_are_skipped_and_eof_still_finishes() -> None:
    body = _sse("{not json", _chunk({"content": "ok"}))

    async def scenario() -> None:
        events, _ = await _run_stream(body)

        assert [event["type"] for event in events] == ["content", "done"]

    asyncio.run(scenario())


def test_error_frame_is_terminal() -> None:
    body = _sse({"error": {"message": "rate limited"}}, _chunk({"content": "never"}))

    async def scenario() -> None:
        events, _ = await _run_stream(body)

        assert events == [{"type": "error", "content": "rate limited", "event_id": "evt-1"}]

    asyncio.run(scenario())


def test_non_2xx_raises_before_any_event() -> None:
    async def scenario() -> None:
        bus = EventBus()
        queue = bus.subscribe(chat_stream_channel("evt-err"))
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text=f"bad key {API_KEY}"))
        client = ChatStreamClient(bus, transport=transport)

        with pytest.raises(RemoteError) as excinfo:
            await client.start_stream(ENDPOINT, API_KEY, "model", [], event_id="evt-err")

        assert excinfo.value.status_code == 401
        assert API_KEY not in str(excinfo.value)
        assert queue.empty()
        assert len(client.registry) == 0

    asyncio.run(scenario())


def test_connection_failure_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario() -> None:
        client = ChatStreamClient(EventBus(), transport=httpx.MockTransport(handler))
        with pytest.raises(TransportError):
            await client.start_stream(ENDPOINT, API_KEY, "model", [])

    asyncio.run(scenario())


def test_request_carries_bearer_and_payload() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=_sse("[DONE]"))

    async def scenario() -> None:
        client = ChatStreamClient(EventBus(), transport=httpx.MockTransport(handler))
        await client.start_stream(ENDPOINT, API_KEY, "model", [{"role": "user", "content": "hi"}], temperature=0.5)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert seen["url"] == "https://llm.example.com/v1/chat/completions"
    assert seen["auth"] == f"Bearer {API_KEY}"
    assert seen["body"]["stream"] is True
    assert seen["body"]["temperature"] == 0.5


class _EndlessStream(httpx.AsyncByteStream):
    async def __aiter__(self):
        yield _sse(_chunk({"content": "first"}))
        while True:
            await asyncio.sleep(0.01)
            yield b": keep-alive\n\n"


def test_stop_interrupts_stream_and_emits_stopped() -> None:
    async def scenario() -> None:
        bus = EventBus()
        queue = bus.subscribe(chat_stream_channel("evt-stop"))
        transport = httpx.MockTransport(lambda request: httpx.Response(200, stream=_EndlessStream()))
        client = ChatStreamClient(bus, transport=transport)

        await client.start_stream(ENDPOINT, API_KEY, "model", [], event_id="evt-stop")
        first = await asyncio.wait_for(queue.get(), timeout=5)
        await client.stop_stream("evt-stop")

        assert first["type"] == "content"
        assert not client.registry.contains("evt-stop")
        stopped = await asyncio.wait_for(queue.get(), timeout=5)
        assert stopped == {"type": "stopped", "event_id": "evt-stop"}
        assert queue.empty()
        with pytest.raises(KeyError):
            await client.stop_stream("evt-stop")

    asyncio.run(scenario())


def test_stop_before_consumer_runs_still_emits_stopped() -> None:
    async def scenario() -> None:
        bus = EventBus()
        queue = bus.subscribe(chat_stream_channel("evt-early"))
        transport = httpx.MockTransport(lambda request: httpx.Response(200, stream=_EndlessStream()))
        client = ChatStreamClient(bus, transport=transport)

        await client.start_stream(ENDPOINT, API_KEY, "model", [], event_id="evt-early")
        await client.stop_stream("evt-early")
        await asyncio.sleep(0.05)

        events = []
        while not queue.empty():
            events.append(queue.get_nowait())
        assert events == [{"type": "stopped", "event_id": "evt-early"}]

    asyncio.run(scenario())


def test_complete_chat_returns_first_choice() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["stream"] is False
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "hello"}}]})

    content = asyncio.run(
        complete_chat(ENDPOINT, API_KEY, "model", [{"role": "user", "content": "hi"}], transport=httpx.MockTransport(handler))
    )

    assert content == "hello"
