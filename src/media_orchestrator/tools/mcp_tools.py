"""Tools that reach other MCP servers.

A server is named either by its key in the MCP config file or by an
inline config object in either supported shape.
"""

from __future__ import annotations

from typing import Any

from ..mcp_client import HttpServerConfig, ServerConfig, load_mcp_config, normalize_server_config
from ..state import CONFIG, MCP


def _resolve(server: str | dict[str, Any]) -> ServerConfig:
    if isinstance(server, str):
        servers = load_mcp_config(CONFIG.mcp_config_path)
        if server not in servers:
            raise ValueError(f"Unknown MCP server: {server}")
        return servers[server]
    return normalize_server_config(server)


def mcp_list_servers() -> dict[str, object]:
    """List the servers configured in the MCP config file."""
    servers = load_mcp_config(CONFIG.mcp_config_path)
    return {
        "servers": [
            {"name": name, "transport": "http" if isinstance(config, HttpServerConfig) else "stdio"}
            for name, config in servers.items()
        ]
    }


async def mcp_list_tools(server: str | dict[str, Any]) -> dict[str, object]:
    tools = await MCP.list_tools(_resolve(server))
    return {"tools": [tool.to_dict() for tool in tools]}


async def mcp_call_tool(
    server: str | dict[str, Any],
    name: str,
    arguments: dict[str, Any] | None = None,
) -> dict[str, object]:
    """Call tool ``name`` on ``server`` and return its content."""
    result = await MCP.call_tool(_resolve(server), name, arguments or {})
    return {"result": result}
