"""Request building for chat completions."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from ..mcp_client.models import ToolDescriptor
from .models import ChatMessage, FunctionDefinition, ToolDefinition

EPHEMERAL_CACHE_CONTROL = {"type": "ephemeral"}


def build_chat_url(base_url: str) -> str:
    """Resolve the chat-completions URL for a configured base URL.

    ``https://host`` becomes ``https://host/v1/chat/completions``,
    ``https://host/v1`` becomes ``https://host/v1/chat/completions`` and a
    URL that already names ``/chat/completions`` is kept as is.
    """
    base = base_url.rstrip("/")
    if "/chat/completions" in base:
        return base
    if base.endswith("/v1"):
        return f"{base}/chat/completions"
    return f"{base}/v1/chat/completions"


def apply_cache_control(messages: Iterable[ChatMessage]) -> None:
    """Mark every tool result message as ephemeral for prompt caching.

    Idempotent; messages loaded from history get the marker too.
    """
    for message in messages:
        if message.role == "tool":
            message.cache_control = dict(EPHEMERAL_CACHE_CONTROL)


def mcp_tool_to_openai_tool(tool: ToolDescriptor) -> ToolDefinition:
    """Expose an MCP tool to the model as a function tool."""
    return ToolDefinition(
        function=FunctionDefinition(
            name=tool.name,
            description=tool.description,
            parameters=tool.input_schema,
        )
    )


def _as_message(message: ChatMessage | dict[str, Any]) -> ChatMessage:
    if isinstance(message, ChatMessage):
        return message
    return ChatMessage.from_dict(message)


def _as_tool(tool: ToolDefinition | ToolDescriptor | dict[str, Any]) -> dict[str, Any]:
    if isinstance(tool, ToolDefinition):
        return tool.to_dict()
    if isinstance(tool, ToolDescriptor):
        return mcp_tool_to_openai_tool(tool).to_dict()
    return ToolDefinition.from_dict(tool).to_dict()


def build_payload(
    model: str,
    messages: Sequence[ChatMessage | dict[str, Any]],
    tools: Sequence[ToolDefinition | ToolDescriptor | dict[str, Any]] | None = None,
    temperature: float | None = None,
    *,
    system_message: str | None = None,
    stream: bool = True,
) -> dict[str, Any]:
    """Build the JSON body for ``POST /chat/completions``."""
    chat_messages = [_as_message(message) for message in messages]
    if system_message:
        chat_messages.insert(0, ChatMessage(role="system", content=system_message))
    apply_cache_control(chat_messages)

    payload: dict[str, Any] = {
        "model": model,
        "messages": [message.to_dict() for message in chat_messages],
        "stream": stream,
    }
    if tools:
        payload["tools"] = [_as_tool(tool) for tool in tools]
        payload["tool_choice"] = "auto"
    if temperature is not None:
        payload["temperature"] = temperature
    return payload
