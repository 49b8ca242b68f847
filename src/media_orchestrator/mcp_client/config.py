"""MCP server configuration.

Two shapes are accepted for a server entry:

* legacy flat fields: ``{"command": ..., "args": [...], "env": {...}}`` or
  ``{"url": ...}``
* nested transport: ``{"transport": {"type": "stdio", "command": ...}}`` or
  ``{"transport": {"type": "http", "url": ...}}``

Both normalize to ``StdioServerConfig`` or ``HttpServerConfig`` so the
client only ever dispatches on those two types.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StdioServerConfig:
    command: str
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    working_dir: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class HttpServerConfig:
    url: str
    name: str | None = None


ServerConfig = Union[StdioServerConfig, HttpServerConfig]


def _string_list(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(key): item for key, item in value.items() if isinstance(item, str)}


def _stdio(source: Mapping[str, Any], name: str | None) -> StdioServerConfig:
    working_dir = source.get("workingDir") or source.get("working_dir")
    return StdioServerConfig(
        command=source["command"],
        args=_string_list(source.get("args")),
        env=_string_map(source.get("env")),
        working_dir=working_dir if isinstance(working_dir, str) else None,
        name=name,
    )


def normalize_server_config(raw: Mapping[str, Any], name: str | None = None) -> ServerConfig:
    """Resolve either config shape into a canonical server config.

    Raises ``ValueError`` when neither a usable transport nor a legacy
    ``url``/``command`` field is present.
    """
    if not isinstance(raw, Mapping):
        raise ValueError(f"MCP server config must be an object, got {type(raw).__name__}")

    name = name or (raw.get("name") if isinstance(raw.get("name"), str) else None)

    transport = raw.get("transport")
    if isinstance(transport, Mapping):
        kind = transport.get("type")
        if kind == "http" and isinstance(transport.get("url"), str):
            return HttpServerConfig(url=transport["url"], name=name)
        if kind == "stdio" and isinstance(transport.get("command"), str):
            return _stdio(transport, name)

    if isinstance(raw.get("url"), str):
        return HttpServerConfig(url=raw["url"], name=name)
    if isinstance(raw.get("command"), str):
        return _stdio(raw, name)

    raise ValueError("Invalid MCP server config: expected a transport, a url or a command")


def as_server_config(config: ServerConfig | Mapping[str, Any]) -> ServerConfig:
    if isinstance(config, (StdioServerConfig, HttpServerConfig)):
        return config
    return normalize_server_config(config)


def load_mcp_config(path: str | Path) -> dict[str, ServerConfig]:
    """Read server entries from a JSON config file.

    The file is either ``{"mcpServers": {name: entry}}`` or a plain
    ``{name: entry}`` mapping.  A missing file yields ``{}``; entries that
    do not normalize are logged and skipped.
    """
    path = Path(path)
    if not path.exists():
        logger.info("MCP config %s not found, no servers configured", path)
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"MCP config {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"MCP config {path} must contain a JSON object")

    entries = data.get("mcpServers") if isinstance(data.get("mcpServers"), dict) else data

    servers: dict[str, ServerConfig] = {}
    for name, entry in entries.items():
        try:
            servers[name] = normalize_server_config(entry, name)
        except ValueError as exc:
            logger.warning("Skipping MCP server %s: %s", name, exc)
    return servers
