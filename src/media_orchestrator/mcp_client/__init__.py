"""Client for MCP tool servers over stdio or HTTP."""

from .client import McpClient
from .config import (
    HttpServerConfig,
    ServerConfig,
    StdioServerConfig,
    load_mcp_config,
    normalize_server_config,
)
from .models import ToolDescriptor, parse_tools

__all__ = [
    "McpClient",
    "HttpServerConfig",
    "ServerConfig",
    "StdioServerConfig",
    "ToolDescriptor",
    "load_mcp_config",
    "normalize_server_config",
    "parse_tools",
]
