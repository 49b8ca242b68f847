"""JSON-RPC 2.0 envelopes for the MCP handshake and tool calls."""

from __future__ import annotations

from typing import Any

from ..constants import MCP_CLIENT_NAME, MCP_CLIENT_VERSION, MCP_PROTOCOL_VERSION
from ..errors import RemoteError

INITIALIZE = "initialize"
INITIALIZED = "notifications/initialized"
TOOLS_LIST = "tools/list"
TOOLS_CALL = "tools/call"


def request(request_id: int, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    message: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        message["params"] = params
    return message


def initialize_params() -> dict[str, Any]:
    return {
        "protocolVersion": MCP_PROTOCOL_VERSION,
        "capabilities": {},
        "clientInfo": {"name": MCP_CLIENT_NAME, "version": MCP_CLIENT_VERSION},
    }


def call_params(name: str, arguments: Any) -> dict[str, Any]:
    return {"name": name, "arguments": arguments if arguments is not None else {}}


def _raise_error(error: Any, method: str) -> None:
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message") or "Unknown error"
        raise RemoteError(
            f"MCP {method} failed ({code}): {message}",
            code=code if isinstance(code, int) else None,
        )
    raise RemoteError(f"MCP {method} failed: {error}")


def _error_text(content: Any) -> str:
    if isinstance(content, list):
        texts = [item.get("text", "") for item in content if isinstance(item, dict)]
        return "\n".join(text for text in texts if text)
    return str(content) if content else ""


def extract_result(message: Any, method: str) -> Any:
    """Return the useful part of a JSON-RPC response.

    An ``error`` member on the envelope or on the result, or a tool result
    flagged ``isError``, raises ``RemoteError``.  Otherwise the result's
    ``content`` is preferred, falling back to the whole result.
    """
    if not isinstance(message, dict):
        raise RemoteError(f"MCP {method} returned a non-object response")
    if message.get("error") is not None:
        _raise_error(message["error"], method)

    result = message.get("result")
    if isinstance(result, dict):
        if result.get("error") is not None:
            _raise_error(result["error"], method)
        if result.get("isError"):
            text = _error_text(result.get("content"))
            raise RemoteError(f"MCP {method} failed: {text or 'tool reported an error'}")
        if "content" in result:
            return result["content"]
    return result


def unwrap_result(message: Any, method: str) -> Any:
    """Like ``extract_result`` but keep the whole result object."""
    if not isinstance(message, dict):
        raise RemoteError(f"MCP {method} returned a non-object response")
    if message.get("error") is not None:
        _raise_error(message["error"], method)
    result = message.get("result")
    if isinstance(result, dict) and result.get("error") is not None:
        _raise_error(result["error"], method)
    return result
