"""Integration tests for the stdio MCP transport against a fake server."""

from __future__ import annotations

import asyncio
import sys
import time

import pytest

from media_orchestrator.errors import ProtocolTimeoutError, RemoteError, SpawnError, TransportError
from media_orchestrator.mcp_client import McpClient


def _client(timeout_s: float = 5.0) -> McpClient:
    return McpClient(timeout_s=timeout_s, settle_delay_s=0.01)


def test_list_tools_skips_invalid_descriptors(stdio_server) -> None:
    tools = asyncio.run(_client().list_tools(stdio_server))

    assert [tool.name for tool in tools] == ["echo"]
    assert tools[0].input_schema["type"] == "object"


def test_flat_and_nested_configs_dispatch_identically(stdio_server) -> None:
    nested = {"transport": {"type": "stdio", **stdio_server}}
    client = _client()

    flat_result = asyncio.run(client.call_tool(stdio_server, "echo", {"text": "hi"}))
    nested_result = asyncio.run(client.call_tool(nested, "echo", {"text": "hi"}))

    assert flat_result == nested_result == [{"type": "text", "text": '{"text": "hi"}'}]


def test_tool_error_is_remote_error(stdio_server) -> None:
    with pytest.raises(RemoteError) as excinfo:
        asyncio.run(_client().call_tool(stdio_server, "fail", {}))

    assert excinfo.value.code == -32000
    assert "tool exploded" in str(excinfo.value)


def test_unanswered_tools_list_times_out(stdio_server) -> None:
    config = {**stdio_server, "args": [*stdio_server["args"], "--hang-on-list"]}

    started = time.monotonic()
    with pytest.raises(ProtocolTimeoutError):
        asyncio.run(_client(timeout_s=0.5).list_tools(config))

    assert time.monotonic() - started < 5


def test_banners_and_notifications_are_skipped(stdio_server) -> None:
    config = {**stdio_server, "args": [*stdio_server["args"], "--noisy"]}

    tools = asyncio.run(_client().list_tools(config))

    assert [tool.name for tool in tools] == ["echo"]


def test_server_that_exits_immediately_is_a_transport_error() -> None:
    config = {"command": sys.executable, "args": ["-c", "pass"]}

    with pytest.raises(TransportError):
        asyncio.run(_client().list_tools(config))


def test_missing_command_is_spawn_error() -> None:
    with pytest.raises(SpawnError):
        asyncio.run(_client().list_tools({"command": "/nonexistent/mcp-server"}))
