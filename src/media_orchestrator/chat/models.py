"""Wire types for OpenAI-compatible chat completions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class FunctionCall:
    name: str = ""
    arguments: str = ""


@dataclass
class ToolCall:
    """A complete tool call as sent back to the API and to observers."""

    id: str
    call_type: str
    function: FunctionCall

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.call_type,
            "function": {"name": self.function.name, "arguments": self.function.arguments},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCall:
        function = data.get("function") or {}
        return cls(
            id=data.get("id") or "",
            call_type=data.get("type") or "function",
            function=FunctionCall(
                name=function.get("name") or "",
                arguments=function.get("arguments") or "",
            ),
        )


@dataclass
class ChatMessage:
    """One role-tagged message (``system``, ``user``, ``assistant`` or ``tool``)."""

    role: str
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None
    cache_control: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            data["name"] = self.name
        if self.cache_control is not None:
            data["cache_control"] = self.cache_control
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatMessage:
        tool_calls = data.get("tool_calls")
        return cls(
            role=data["role"],
            content=data.get("content"),
            tool_calls=[ToolCall.from_dict(call) for call in tool_calls] if tool_calls else None,
            tool_call_id=data.get("tool_call_id"),
            name=data.get("name"),
            cache_control=data.get("cache_control"),
        )


@dataclass
class FunctionDefinition:
    name: str
    description: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolDefinition:
    """A function tool offered to the model."""

    function: FunctionDefinition
    tool_type: str = "function"

    def to_dict(self) -> dict[str, Any]:
        function: dict[str, Any] = {"name": self.function.name, "parameters": self.function.parameters}
        if self.function.description is not None:
            function["description"] = self.function.description
        return {"type": self.tool_type, "function": function}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolDefinition:
        function = data.get("function") or {}
        return cls(
            function=FunctionDefinition(
                name=function["name"],
                description=function.get("description"),
                parameters=function.get("parameters") or {},
            ),
            tool_type=data.get("type") or "function",
        )


@dataclass
class ToolCallDelta:
    """A fragment of a tool call from one streamed chunk."""

    index: int = 0
    id: str | None = None
    call_type: str | None = None
    name: str | None = None
    arguments: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCallDelta:
        function = data.get("function") or {}
        return cls(
            index=data.get("index") or 0,
            id=data.get("id"),
            call_type=data.get("type"),
            name=function.get("name"),
            arguments=function.get("arguments"),
        )


@dataclass
class ChunkDelta:
    """The parts of ``choices[0]`` in a streamed chunk that matter here."""

    content: str | None = None
    reasoning: str | None = None
    tool_calls: list[ToolCallDelta] = field(default_factory=list)
    finish_reason: str | None = None

    @classmethod
    def from_chunk(cls, chunk: dict[str, Any]) -> ChunkDelta | None:
        """Parse a chat-completion chunk; ``None`` if it has no choices."""
        choices = chunk.get("choices") or []
        if not choices:
            return None
        choice = choices[0]
        delta = choice.get("delta") or {}
        reasoning = delta.get("reasoning")
        if reasoning is None:
            reasoning = delta.get("reasoning_content")
        return cls(
            content=delta.get("content"),
            reasoning=reasoning,
            tool_calls=[ToolCallDelta.from_dict(call) for call in delta.get("tool_calls") or []],
            finish_reason=choice.get("finish_reason"),
        )
