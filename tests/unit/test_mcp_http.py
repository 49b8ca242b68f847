"""Tests for the HTTP MCP transport using ``httpx.MockTransport``."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from media_orchestrator.errors import ProtocolTimeoutError, RemoteError, TransportError
from media_orchestrator.mcp_client import McpClient

SERVER = {"url": "https://tools.example.com/mcp"}


def _handler(seen: list[dict]):
    def handle(request: httpx.Request) -> httpx.Response:
        message = json.loads(request.content)
        seen.append(message)
        method = message["method"]
        if method == "initialize":
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": message["id"], "result": {"capabilities": {}}})
        if method == "notifications/initialized":
            return httpx.Response(202)
        if method == "tools/list":
            tools = [{"name": "echo", "inputSchema": {"type": "object"}}]
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": message["id"], "result": {"tools": tools}})
        if method == "tools/call":
            content = [{"type": "text", "text": message["params"]["arguments"]["text"]}]
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": message["id"], "result": {"content": content}})
        return httpx.Response(404)

    return handle


def test_list_tools_performs_throwaway_handshake() -> None:
    seen: list[dict] = []
    client = McpClient(http_transport=httpx.MockTransport(_handler(seen)))

    tools = asyncio.run(client.list_tools(SERVER))

    assert [tool.name for tool in tools] == ["echo"]
    assert [message["method"] for message in seen] == ["initialize", "notifications/initialized", "tools/list"]


def test_call_tool_is_single_post() -> None:
    seen: list[dict] = []
    client = McpClient(http_transport=httpx.MockTransport(_handler(seen)))

    result = asyncio.run(client.call_tool({"transport": {"type": "http", **SERVER}}, "echo", {"text": "hi"}))

    assert result == [{"type": "text", "text": "hi"}]
    assert [message["method"] for message in seen] == ["tools/call"]
    assert seen[0]["params"] == {"name": "echo", "arguments": {"text": "hi"}}


def test_event_stream_response_is_decoded() -> None:
    def handle(request: httpx.Request) -> httpx.Response:
        message = json.loads(request.content)
        body = "event: message\ndata: " + json.dumps({"jsonrpc": "2.0", "id": message["id"], "result": {"ok": True}}) + "\n\n"
        return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

    client = McpClient(http_transport=httpx.MockTransport(handle))

    assert asyncio.run(client.call_tool(SERVER, "anything")) == {"ok": True}


def test_non_2xx_raises_remote_error() -> None:
    client = McpClient(http_transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")))

    with pytest.raises(RemoteError) as excinfo:
        asyncio.run(client.call_tool(SERVER, "echo", {}))

    assert excinfo.value.status_code == 500


def test_jsonrpc_error_raises_remote_error() -> None:
    def handle(request: httpx.Request) -> httpx.Response:
        message = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": message["id"], "error": {"code": -32602, "message": "bad args"}})

    client = McpClient(http_transport=httpx.MockTransport(handle))

    with pytest.raises(RemoteError, match="bad args"):
        asyncio.run(client.call_tool(SERVER, "echo", {}))


def test_connection_errors_are_transport_errors() -> None:
    def handle(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = McpClient(http_transport=httpx.MockTransport(handle))

    with pytest.raises(TransportError):
        asyncio.run(client.list_tools(SERVER))


def test_timeouts_are_protocol_timeouts() -> None:
    def handle(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    client = McpClient(http_transport=httpx.MockTransport(handle))

    with pytest.raises(ProtocolTimeoutError):
        asyncio.run(client.call_tool(SERVER, "echo", {}))
