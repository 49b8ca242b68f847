"""MCP stdio server entrypoint for the media orchestrator.

The server runs over standard input/output using the Model Context Protocol.
It registers tool functions for supervised transcription and audio
extraction jobs, streaming chat completions, calls into other MCP servers
and one-shot commands.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from mcp.server.fastmcp import FastMCP

from .state import CONFIG
from .telemetry.logger import get_logger
from .tools import chat_tools, command_tools, job_tools, mcp_tools


def build_tools_dispatch() -> dict[str, Callable[..., Any]]:
    """Return a mapping from tool names to callables.

    Each callable accepts keyword arguments and returns a JSON-serializable
    dictionary (or an awaitable of one).
    """
    return {
        # Transcription
        "transcription_start": job_tools.transcription_start,
        "transcription_stop": job_tools.transcription_stop,
        "transcription_status": job_tools.transcription_status,
        "transcription_result": job_tools.transcription_result,
        # Audio extraction
        "extraction_start": job_tools.extraction_start,
        "extraction_stop": job_tools.extraction_stop,
        "extraction_status": job_tools.extraction_status,
        # Chat
        "chat_completion": chat_tools.chat_completion,
        "chat_stream_stop": chat_tools.chat_stream_stop,
        "chat_complete": chat_tools.chat_complete,
        # MCP
        "mcp_list_servers": mcp_tools.mcp_list_servers,
        "mcp_list_tools": mcp_tools.mcp_list_tools,
        "mcp_call_tool": mcp_tools.mcp_call_tool,
        # Commands
        "run_command": command_tools.run_command,
    }


def main() -> None:
    """Entrypoint for the media orchestrator MCP server."""
    # stdout carries the MCP protocol, so logs go to stderr
    get_logger("media_orchestrator", CONFIG.log_level)
    logger = logging.getLogger(__name__)
    logger.info("Starting media orchestrator MCP server")

    mcp = FastMCP("media-orchestrator")

    dispatch = build_tools_dispatch()
    for name, func in dispatch.items():
        mcp.add_tool(func, name=name)

    logger.info("Registered %d tools", len(dispatch))

    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
