"""MCP tool implementations exposed by the server."""
