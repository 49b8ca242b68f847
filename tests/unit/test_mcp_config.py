"""Tests for MCP server config normalization and loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from media_orchestrator.mcp_client.config import (
    HttpServerConfig,
    StdioServerConfig,
    load_mcp_config,
    normalize_server_config,
)


def test_legacy_and_nested_stdio_configs_are_identical() -> None:
    legacy = normalize_server_config({"command": "uvx", "args": ["server"], "env": {"A": "1"}})
    nested = normalize_server_config(
        {"transport": {"type": "stdio", "command": "uvx", "args": ["server"], "env": {"A": "1"}}}
    )

    assert legacy == nested
    assert legacy == StdioServerConfig(command="uvx", args=("server",), env={"A": "1"})


def test_legacy_and_nested_http_configs_are_identical() -> None:
    legacy = normalize_server_config({"url": "http://localhost:8000/mcp"})
    nested = normalize_server_config({"transport": {"type": "http", "url": "http://localhost:8000/mcp"}})

    assert legacy == nested == HttpServerConfig(url="http://localhost:8000/mcp")


def test_nested_transport_wins_over_legacy_fields() -> None:
    config = normalize_server_config(
        {"command": "old", "transport": {"type": "http", "url": "http://new"}},
        name="srv",
    )

    assert config == HttpServerConfig(url="http://new", name="srv")


def test_incomplete_nested_transport_falls_back_to_legacy_fields() -> None:
    config = normalize_server_config({"transport": {"type": "http"}, "command": "node"})

    assert isinstance(config, StdioServerConfig)
    assert config.command == "node"


def test_working_dir_spellings_and_non_string_values_dropped() -> None:
    camel = normalize_server_config(
        {"transport": {"type": "stdio", "command": "run", "workingDir": "/srv", "args": ["a", 1, None]}}
    )
    snake = normalize_server_config({"command": "run", "working_dir": "/srv", "env": {"A": "x", "B": 2}})

    assert camel.working_dir == snake.working_dir == "/srv"
    assert camel.args == ("a",)
    assert dict(snake.env) == {"A": "x"}


@pytest.mark.parametrize("raw", [{}, {"transport": {"type": "ws", "url": "ws://x"}}, {"args": ["x"]}, "cmd"])
def test_unusable_configs_raise_value_error(raw) -> None:
    with pytest.raises(ValueError):
        normalize_server_config(raw)


def test_load_mcp_servers_shape(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    path.write_text(
        json.dumps(
            {
                "mcpServers": {
                    "files": {"command": "npx", "args": ["-y", "files"]},
                    "remote": {"url": "https://tools.example.com/mcp"},
                    "bad": {"args": []},
                }
            }
        )
    )

    servers = load_mcp_config(path)

    assert set(servers) == {"files", "remote"}
    assert servers["files"].name == "files"
    assert isinstance(servers["remote"], HttpServerConfig)


def test_load_flat_named_shape(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    path.write_text(
        json.dumps({"weather": {"name": "weather", "transport": {"type": "stdio", "command": "weather-mcp"}}})
    )

    servers = load_mcp_config(path)

    assert servers == {"weather": StdioServerConfig(command="weather-mcp", name="weather")}


def test_missing_config_file_is_empty(tmp_path: Path) -> None:
    assert load_mcp_config(tmp_path / "absent.json") == {}


def test_invalid_json_raises(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    path.write_text("{nope")

    with pytest.raises(ValueError):
        load_mcp_config(path)
