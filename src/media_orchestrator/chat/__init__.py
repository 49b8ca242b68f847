"""Streaming chat-completion client for OpenAI-compatible endpoints."""

from .accumulator import ToolCallAccumulator
from .client import ChatStreamClient, complete_chat
from .models import ChatMessage, ChunkDelta, FunctionCall, ToolCall, ToolCallDelta, ToolDefinition
from .registry import StreamRegistry
from .request import apply_cache_control, build_chat_url, build_payload, mcp_tool_to_openai_tool

__all__ = [
    "ChatStreamClient",
    "complete_chat",
    "StreamRegistry",
    "ToolCallAccumulator",
    "ChatMessage",
    "ChunkDelta",
    "FunctionCall",
    "ToolCall",
    "ToolCallDelta",
    "ToolDefinition",
    "apply_cache_control",
    "build_chat_url",
    "build_payload",
    "mcp_tool_to_openai_tool",
]
