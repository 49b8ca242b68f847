"""``list_tools`` and ``call_tool`` over either transport."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from ..constants import MCP_READ_TIMEOUT_S, MCP_SETTLE_DELAY_S
from . import jsonrpc
from .config import HttpServerConfig, ServerConfig, as_server_config
from .models import ToolDescriptor, parse_tools
from .transports import HttpTransport, StdioTransport

logger = logging.getLogger(__name__)


class McpClient:
    """Stateless MCP client; every call opens its own transport."""

    def __init__(
        self,
        *,
        timeout_s: float = MCP_READ_TIMEOUT_S,
        settle_delay_s: float = MCP_SETTLE_DELAY_S,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_s = timeout_s
        self.settle_delay_s = settle_delay_s
        self.http_transport = http_transport

    def _transport(self, config: ServerConfig) -> HttpTransport | StdioTransport:
        if isinstance(config, HttpServerConfig):
            return HttpTransport(config, timeout_s=self.timeout_s, transport=self.http_transport)
        return StdioTransport(config, timeout_s=self.timeout_s, settle_delay_s=self.settle_delay_s)

    async def list_tools(self, server_config: ServerConfig | Mapping[str, Any]) -> list[ToolDescriptor]:
        """Return the tools a server offers.

        Over HTTP a throwaway initialize/initialized pair precedes the
        ``tools/list`` request.
        """
        config = as_server_config(server_config)
        message = await self._transport(config).exchange(jsonrpc.TOOLS_LIST, {}, handshake=True)
        tools = parse_tools(jsonrpc.unwrap_result(message, jsonrpc.TOOLS_LIST))
        logger.info("MCP server %s offers %d tools", config.name or "<unnamed>", len(tools))
        return tools

    async def call_tool(self, server_config: ServerConfig | Mapping[str, Any], name: str, arguments: Any = None) -> Any:
        """Invoke tool ``name`` and return its ``content`` (or the whole result)."""
        config = as_server_config(server_config)
        logger.info("Calling MCP tool %s on %s", name, config.name or "<unnamed>")
        message = await self._transport(config).exchange(
            jsonrpc.TOOLS_CALL,
            jsonrpc.call_params(name, arguments),
            handshake=False,
        )
        return jsonrpc.extract_result(message, jsonrpc.TOOLS_CALL)
