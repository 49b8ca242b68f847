"""Tool descriptors returned by ``tools/list``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from mcp import types
from pydantic import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ToolDescriptor:
    """One tool offered by an MCP server.

    ``input_schema`` is passed through untouched; this layer never
    interprets it.
    """

    name: str
    description: str | None = None
    input_schema: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


def parse_tools(result: Any) -> list[ToolDescriptor]:
    """Build descriptors from a ``tools/list`` result.

    A result without a ``tools`` array yields an empty list.  Entries the
    SDK ``Tool`` model rejects are logged and skipped.
    """
    raw_tools = result.get("tools") if isinstance(result, dict) else None
    if not isinstance(raw_tools, list):
        return []

    tools: list[ToolDescriptor] = []
    for raw in raw_tools:
        try:
            tool = types.Tool.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Skipping invalid tool descriptor %r: %s", raw, exc)
            continue
        tools.append(
            ToolDescriptor(
                name=tool.name,
                description=tool.description,
                input_schema=dict(tool.inputSchema),
            )
        )
    return tools
