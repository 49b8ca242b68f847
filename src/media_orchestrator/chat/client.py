"""Streaming chat-completion client.

``ChatStreamClient.start_stream`` sends the request, checks the status and
returns an event id; the response body is then consumed by a background
task that publishes typed events on ``ai-chat-stream-<event_id>``:

* ``{"type": "content", "content": ...}`` and ``{"type": "reasoning", ...}``
  once per delta, never batched
* ``{"type": "tool_calls", "tool_calls": [...]}`` when the model finishes a
  round of tool calls
* exactly one terminal event: ``done``, ``stopped`` (aborted) or ``error``

Every payload also carries ``event_id``.
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import json
import logging
import uuid
from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx

from ..constants import CHAT_TIMEOUT_S, STOP_WAIT_TIMEOUT_S
from ..errors import RemoteError, TransportError
from ..events import EventSink, chat_stream_channel, safe_emit
from ..policy.redaction import redact_secrets
from ..sse import SSEDecoder
from .accumulator import ToolCallAccumulator
from .models import ChatMessage, ChunkDelta, ToolDefinition
from .registry import StreamRegistry
from .request import build_chat_url, build_payload

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


def get_chat_client(
    api_key: str,
    timeout_s: float = CHAT_TIMEOUT_S,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Return an async httpx client with the bearer credential set.

    Reads are unbounded so slow reasoning models do not trip a timeout
    between tokens.
    """
    return httpx.AsyncClient(
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        },
        timeout=httpx.Timeout(timeout_s, read=None),
        transport=transport,
    )


class ChatStreamClient:
    """Start and stop chat-completion streams."""

    def __init__(
        self,
        sink: EventSink,
        registry: StreamRegistry | None = None,
        *,
        timeout_s: float = CHAT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.sink = sink
        self.registry = registry if registry is not None else StreamRegistry()
        self.timeout_s = timeout_s
        self.transport = transport

    async def start_stream(
        self,
        endpoint: str,
        api_key: str,
        model: str,
        messages: Sequence[ChatMessage | dict[str, Any]],
        tools: Sequence[ToolDefinition | dict[str, Any]] | None = None,
        temperature: float | None = None,
        *,
        system_message: str | None = None,
        event_id: str | None = None,
    ) -> str:
        """Open a streaming completion and return its event id.

        A non-2xx response raises ``RemoteError`` before any event is
        emitted and nothing is registered; connection failures raise
        ``TransportError``.
        """
        event_id = event_id or str(uuid.uuid4())
        url = build_chat_url(endpoint)
        payload = build_payload(
            model,
            messages,
            tools,
            temperature,
            system_message=system_message,
            stream=True,
        )

        client = get_chat_client(api_key, self.timeout_s, self.transport)
        response: httpx.Response | None = None
        try:
            response = await client.send(client.build_request("POST", url, json=payload), stream=True)
            if not response.is_success:
                body = (await response.aread()).decode("utf-8", errors="replace")
                message = redact_secrets(f"Chat API error {response.status_code}: {body}", [api_key])
                logger.error(message)
                raise RemoteError(message, status_code=response.status_code)
        except httpx.HTTPError as exc:
            message = redact_secrets(f"Chat request failed: {exc}", [api_key])
            logger.error(message)
            await self._close(client, response)
            raise TransportError(message) from exc
        except RemoteError:
            await self._close(client, response)
            raise

        task = asyncio.create_task(
            self._consume(event_id, client, response, api_key),
            name=f"chat-stream-{event_id}",
        )
        task.add_done_callback(functools.partial(self._on_done, event_id, client, response))
        self.registry.insert(event_id, task)
        logger.info("Started chat stream %s for model %s", event_id, model)
        return event_id

    async def stop_stream(self, event_id: str) -> None:
        """Abort the stream registered under ``event_id``.

        The registry entry is gone when this returns.  Raises ``KeyError``
        if no such stream is in flight, including one that already finished.
        """
        task = self.registry.remove(event_id)
        if task is None:
            raise KeyError(f"Unknown stream: {event_id}")
        task.cancel()
        await asyncio.wait({task}, timeout=STOP_WAIT_TIMEOUT_S)
        logger.info("Stopped chat stream %s", event_id)

    def _on_done(
        self,
        event_id: str,
        client: httpx.AsyncClient,
        response: httpx.Response,
        task: asyncio.Task[None],
    ) -> None:
        self.registry.discard(event_id, task)
        if task.cancelled() and not response.is_closed:
            # Cancelled before the consumer ever ran.
            self._emit(event_id, {"type": "stopped"})
            asyncio.get_running_loop().create_task(self._close(client, response))

    def _emit(self, event_id: str, payload: dict[str, Any]) -> None:
        payload["event_id"] = event_id
        safe_emit(self.sink, chat_stream_channel(event_id), payload)

    async def _consume(
        self,
        event_id: str,
        client: httpx.AsyncClient,
        response: httpx.Response,
        api_key: str,
    ) -> None:
        accumulator = ToolCallAccumulator()
        try:
            async with contextlib.aclosing(_iter_sse_data(response)) as frames:
                async for data in frames:
                    if self._handle_data(event_id, data, accumulator):
                        break
                else:
                    self._finish(event_id, accumulator)
        except asyncio.CancelledError:
            self._emit(event_id, {"type": "stopped"})
            raise
        except httpx.HTTPError as exc:
            message = redact_secrets(f"Chat stream failed: {exc}", [api_key])
            logger.error("Stream %s: %s", event_id, message)
            self._emit(event_id, {"type": "error", "content": message})
        finally:
            await self._close(client, response)

    def _handle_data(self, event_id: str, data: str, accumulator: ToolCallAccumulator) -> bool:
        """Process one ``data:`` payload; return True once the stream is over."""
        if data == DONE_SENTINEL:
            self._finish(event_id, accumulator)
            return True

        try:
            chunk = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Stream %s: skipping malformed frame %r", event_id, data[:200])
            return False

        if isinstance(chunk, dict) and chunk.get("error"):
            error = chunk["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            self._emit(event_id, {"type": "error", "content": message or "Unknown error"})
            return True

        try:
            delta = ChunkDelta.from_chunk(chunk) if isinstance(chunk, dict) else None
        except (AttributeError, TypeError, KeyError) as exc:
            logger.warning("Stream %s: skipping chunk with unexpected shape: %s", event_id, exc)
            return False
        if delta is None:
            return False

        if delta.content:
            self._emit(event_id, {"type": "content", "content": delta.content})
        if delta.reasoning:
            self._emit(event_id, {"type": "reasoning", "content": delta.reasoning})
        accumulator.apply_all(delta.tool_calls)

        if delta.finish_reason == "tool_calls":
            self._flush_tool_calls(event_id, accumulator)
            return False
        if delta.finish_reason is not None:
            self._finish(event_id, accumulator)
            return True
        return False

    def _flush_tool_calls(self, event_id: str, accumulator: ToolCallAccumulator) -> None:
        if not len(accumulator):
            return
        calls = accumulator.flush()
        self._emit(event_id, {"type": "tool_calls", "tool_calls": [call.to_dict() for call in calls]})

    def _finish(self, event_id: str, accumulator: ToolCallAccumulator) -> None:
        # Some providers end with "stop" even after streaming tool calls.
        self._flush_tool_calls(event_id, accumulator)
        self._emit(event_id, {"type": "done"})
        logger.info("Chat stream %s finished", event_id)

    @staticmethod
    async def _close(client: httpx.AsyncClient, response: httpx.Response | None) -> None:
        if response is not None:
            await response.aclose()
        await client.aclose()


async def _iter_sse_data(response: httpx.Response) -> AsyncIterator[str]:
    decoder = SSEDecoder()
    async for text in response.aiter_text():
        for data in decoder.feed(text):
            yield data
    for data in decoder.flush():
        yield data


async def complete_chat(
    endpoint: str,
    api_key: str,
    model: str,
    messages: Sequence[ChatMessage | dict[str, Any]],
    tools: Sequence[ToolDefinition | dict[str, Any]] | None = None,
    temperature: float | None = None,
    *,
    system_message: str | None = None,
    timeout_s: float = CHAT_TIMEOUT_S,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Run a non-streaming completion and return the first choice's content."""
    url = build_chat_url(endpoint)
    payload = build_payload(
        model,
        messages,
        tools,
        temperature,
        system_message=system_message,
        stream=False,
    )
    try:
        async with get_chat_client(api_key, timeout_s, transport) as client:
            response = await client.post(url, json=payload)
    except httpx.HTTPError as exc:
        raise TransportError(redact_secrets(f"Chat request failed: {exc}", [api_key])) from exc

    if not response.is_success:
        message = redact_secrets(f"Chat API error {response.status_code}: {response.text}", [api_key])
        raise RemoteError(message, status_code=response.status_code)

    try:
        data = response.json()
        message = data["choices"][0]["message"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise RemoteError(f"Malformed chat completion response: {exc}") from exc
    return message.get("content") or ""
