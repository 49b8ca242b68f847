"""Pytest configuration and fixtures for media orchestrator tests.

Child processes are real: they are ``sys.executable`` running small inline
scripts, so no media tools need to be installed.

IMPORTANT: Environment variables must be set BEFORE importing
media_orchestrator.state, which loads configuration at import time.
"""

from __future__ import annotations

import os
import tempfile

# Set environment variables BEFORE any media_orchestrator imports
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="media-orchestrator-test-")
os.environ.setdefault("DATA_DIR", _TEST_DATA_DIR)
os.environ.setdefault("MCP_CONFIG_PATH", os.path.join(_TEST_DATA_DIR, "mcp_configs.json"))
os.environ.setdefault("POLL_INTERVAL_S", "0.02")

import sys
import textwrap
from pathlib import Path
from typing import Any

import pytest

from media_orchestrator.process.supervisor import SpawnSpec
from media_orchestrator.telemetry.job_store import JobStore


class RecordingSink:
    """Event sink that remembers every emitted event in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def emit(self, name: str, payload: Any) -> None:
        self.events.append((name, payload))

    def payloads(self, name: str) -> list[Any]:
        return [payload for channel, payload in self.events if channel == name]


class FailingSink:
    """Event sink whose every emit raises."""

    def __init__(self) -> None:
        self.calls = 0

    def emit(self, name: str, payload: Any) -> None:
        self.calls += 1
        raise ConnectionError("observer went away")


FAKE_MCP_SERVER = textwrap.dedent(
    """
    import json
    import sys
    import time

    HANG_ON_LIST = "--hang-on-list" in sys.argv
    NOISY = "--noisy" in sys.argv

    TOOLS = [
        {
            "name": "echo",
            "description": "Echo the arguments back",
            "inputSchema": {"type": "object", "properties": {"text": {"type": "string"}}},
        },
        {"name": "broken"},
    ]


    def send(message):
        sys.stdout.write(json.dumps(message) + "\\n")
        sys.stdout.flush()


    while True:
        line = sys.stdin.readline()
        if not line:
            break
        message = json.loads(line)
        method = message.get("method")
        if "id" not in message:
            continue
        if NOISY:
            sys.stdout.write("server banner\\n")
            send({"jsonrpc": "2.0", "method": "notifications/message", "params": {"level": "info"}})
        if method == "initialize":
            send({
                "jsonrpc": "2.0",
                "id": message["id"],
                "result": {
                    "protocolVersion": message["params"]["protocolVersion"],
                    "capabilities": {"tools": {}},
                    "serverInfo": {"name": "fake", "version": "1.0"},
                },
            })
        elif method == "tools/list":
            if HANG_ON_LIST:
                time.sleep(60)
            send({"jsonrpc": "2.0", "id": message["id"], "result": {"tools": TOOLS}})
        elif method == "tools/call":
            params = message["params"]
            if params["name"] == "fail":
                send({
                    "jsonrpc": "2.0",
                    "id": message["id"],
                    "error": {"code": -32000, "message": "tool exploded"},
                })
            else:
                send({
                    "jsonrpc": "2.0",
                    "id": message["id"],
                    "result": {"content": [{"type": "text", "text": json.dumps(params["arguments"])}]},
                })
    """
)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_sink() -> FailingSink:
    return FailingSink()


@pytest.fixture
def job_store() -> JobStore:
    return JobStore()


@pytest.fixture
def mcp_server_script(tmp_path: Path) -> Path:
    script = tmp_path / "fake_mcp_server.py"
    script.write_text(FAKE_MCP_SERVER, encoding="utf-8")
    return script


@pytest.fixture
def stdio_server(mcp_server_script: Path) -> dict[str, Any]:
    """Legacy flat config for the fake stdio MCP server."""
    return {"command": sys.executable, "args": [str(mcp_server_script)]}


@pytest.fixture
def python_spec():
    """Factory for a ``SpawnSpec`` running an inline Python script."""

    def make(code: str, **kwargs: Any) -> SpawnSpec:
        return SpawnSpec(program=sys.executable, args=["-c", textwrap.dedent(code)], **kwargs)

    return make
