"""Chat completion tools.

``chat_completion`` streams through the shared ``ChatStreamClient`` and
collects the events of its own channel until the terminal one, so the
stream stays stoppable with ``chat_stream_stop`` while it runs.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from ..chat import complete_chat
from ..events import chat_stream_channel
from ..state import CHAT, CONFIG, EVENTS

logger = logging.getLogger(__name__)

TERMINAL_EVENTS = ("done", "stopped", "error")


async def collect_stream(queue: asyncio.Queue[Any], event_id: str) -> dict[str, object]:
    """Fold one stream's events into a single response."""
    content: list[str] = []
    reasoning: list[str] = []
    tool_calls: list[dict[str, Any]] = []
    while True:
        event = await queue.get()
        kind = event.get("type")
        if kind == "content":
            content.append(event["content"])
        elif kind == "reasoning":
            reasoning.append(event["content"])
        elif kind == "tool_calls":
            tool_calls.extend(event["tool_calls"])
        elif kind in TERMINAL_EVENTS:
            return {
                "event_id": event_id,
                "status": kind,
                "content": "".join(content),
                "reasoning": "".join(reasoning),
                "tool_calls": tool_calls,
                "error": event.get("content") if kind == "error" else None,
            }


async def chat_completion(
    endpoint: str,
    api_key: str,
    model: str,
    messages: list[dict[str, Any]],
    tools: list[dict[str, Any]] | None = None,
    temperature: float | None = None,
    system_message: str | None = None,
    event_id: str | None = None,
) -> dict[str, object]:
    """Stream a chat completion and return the collected reply.

    ``status`` is ``done``, ``stopped`` or ``error``.  Pass ``event_id`` to
    be able to stop the stream from another call.
    """
    event_id = event_id or str(uuid.uuid4())
    channel = chat_stream_channel(event_id)
    queue = EVENTS.subscribe(channel)
    try:
        await CHAT.start_stream(
            endpoint,
            api_key,
            model,
            messages,
            tools,
            temperature,
            system_message=system_message,
            event_id=event_id,
        )
        try:
            return await collect_stream(queue, event_id)
        except asyncio.CancelledError:
            if CHAT.registry.contains(event_id):
                await CHAT.stop_stream(event_id)
            raise
    finally:
        EVENTS.unsubscribe(channel, queue)


async def chat_stream_stop(event_id: str) -> dict[str, object]:
    """Abort an in-flight stream.  Unknown or finished streams raise ``KeyError``."""
    await CHAT.stop_stream(event_id)
    return {"event_id": event_id, "stopped": True}


async def chat_complete(
    endpoint: str,
    api_key: str,
    model: str,
    messages: list[dict[str, Any]],
    temperature: float | None = None,
    system_message: str | None = None,
) -> dict[str, object]:
    """Run a non-streaming completion."""
    content = await complete_chat(
        endpoint,
        api_key,
        model,
        messages,
        temperature=temperature,
        system_message=system_message,
        timeout_s=CONFIG.chat_timeout_s,
    )
    return {"content": content}
