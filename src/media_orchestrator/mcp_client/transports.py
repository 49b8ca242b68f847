"""The two MCP transports.

Both expose ``exchange(method, params)`` which performs whatever handshake
the transport needs and returns the raw JSON-RPC response envelope for
``method``.  No connection or session state survives a call.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any

import httpx

from ..constants import MCP_READ_TIMEOUT_S, MCP_SETTLE_DELAY_S, STOP_WAIT_TIMEOUT_S
from ..errors import ProtocolTimeoutError, RemoteError, SpawnError, TransportError
from ..process.streams import spawn_stream_reader
from ..sse import SSEDecoder
from . import jsonrpc
from .config import HttpServerConfig, StdioServerConfig

logger = logging.getLogger(__name__)

# tools/list answers from large servers easily exceed asyncio's 64 KiB default.
STDIO_LINE_LIMIT = 16 * 1024 * 1024

INITIALIZE_ID = 1
REQUEST_ID = 2


class HttpTransport:
    """JSON-RPC over independent HTTP POSTs."""

    def __init__(
        self,
        config: HttpServerConfig,
        *,
        timeout_s: float = MCP_READ_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.timeout_s = timeout_s
        self.transport = transport

    async def exchange(self, method: str, params: dict[str, Any] | None, *, handshake: bool = False) -> Any:
        """POST ``method``; with ``handshake`` send initialize/initialized first."""
        async with httpx.AsyncClient(
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json, text/event-stream",
            },
            timeout=self.timeout_s,
            transport=self.transport,
        ) as client:
            if handshake:
                init = await self._post(client, jsonrpc.request(INITIALIZE_ID, jsonrpc.INITIALIZE, jsonrpc.initialize_params()))
                jsonrpc.unwrap_result(init, jsonrpc.INITIALIZE)
                await self._notify(client, jsonrpc.notification(jsonrpc.INITIALIZED))
            return await self._post(client, jsonrpc.request(REQUEST_ID, method, params))

    async def _send(self, client: httpx.AsyncClient, message: dict[str, Any]) -> httpx.Response:
        try:
            return await client.post(self.config.url, json=message)
        except httpx.TimeoutException as exc:
            raise ProtocolTimeoutError(f"MCP {message['method']} timed out after {self.timeout_s}s") from exc
        except httpx.HTTPError as exc:
            logger.error("MCP request to %s failed: %s", self.config.url, exc)
            raise TransportError(f"MCP request failed: {exc}") from exc

    async def _post(self, client: httpx.AsyncClient, message: dict[str, Any]) -> Any:
        method = message["method"]
        resp = await self._send(client, message)
        if not resp.is_success:
            logger.error("MCP server error %s: %s", resp.status_code, resp.text)
            raise RemoteError(f"MCP server error {resp.status_code}: {resp.text}", status_code=resp.status_code)

        if resp.headers.get("content-type", "").startswith("text/event-stream"):
            return _response_from_event_stream(resp.text, message["id"], method)
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteError(f"MCP {method} returned invalid JSON: {exc}") from exc

    async def _notify(self, client: httpx.AsyncClient, message: dict[str, Any]) -> None:
        # No response is expected; a server that rejects it can still serve the request.
        resp = await self._send(client, message)
        if not resp.is_success:
            logger.warning("MCP server rejected %s with %s", message["method"], resp.status_code)


def _response_from_event_stream(text: str, request_id: int, method: str) -> Any:
    decoder = SSEDecoder()
    for data in [*decoder.feed(text), *decoder.flush()]:
        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            continue
        if isinstance(message, dict) and message.get("id") == request_id:
            return message
    raise RemoteError(f"MCP {method} event stream carried no response")


class StdioTransport:
    """Line-delimited JSON-RPC with a freshly spawned server per call.

    Every exchange runs the full handshake, then closes stdin and
    terminates the child whether the call succeeded or not.
    """

    def __init__(
        self,
        config: StdioServerConfig,
        *,
        timeout_s: float = MCP_READ_TIMEOUT_S,
        settle_delay_s: float = MCP_SETTLE_DELAY_S,
    ) -> None:
        self.config = config
        self.timeout_s = timeout_s
        self.settle_delay_s = settle_delay_s

    async def exchange(self, method: str, params: dict[str, Any] | None, *, handshake: bool = True) -> Any:
        process = await self._spawn()
        stderr_task = spawn_stream_reader(process.stderr, self._log_stderr, name=f"mcp-stderr-{process.pid}")
        try:
            await self._write(process, jsonrpc.request(INITIALIZE_ID, jsonrpc.INITIALIZE, jsonrpc.initialize_params()))
            init = await self._read_response(process, INITIALIZE_ID, jsonrpc.INITIALIZE)
            jsonrpc.unwrap_result(init, jsonrpc.INITIALIZE)

            await self._write(process, jsonrpc.notification(jsonrpc.INITIALIZED))
            await asyncio.sleep(self.settle_delay_s)

            await self._write(process, jsonrpc.request(REQUEST_ID, method, params))
            return await self._read_response(process, REQUEST_ID, method)
        finally:
            await self._shutdown(process)
            stderr_task.cancel()
            await asyncio.wait({stderr_task})

    async def _spawn(self) -> asyncio.subprocess.Process:
        env = {**os.environ, **self.config.env}
        try:
            process = await asyncio.create_subprocess_exec(
                self.config.command,
                *self.config.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                cwd=self.config.working_dir,
                limit=STDIO_LINE_LIMIT,
            )
        except OSError as exc:
            message = f"Failed to start MCP server {self.config.command}: {exc}"
            logger.error(message)
            raise SpawnError(message) from exc
        logger.info("Started MCP server %s (pid %s)", self.config.name or self.config.command, process.pid)
        return process

    def _log_stderr(self, line: str) -> None:
        logger.debug("[%s] %s", self.config.name or self.config.command, line)

    async def _write(self, process: asyncio.subprocess.Process, message: dict[str, Any]) -> None:
        line = json.dumps(message) + "\n"
        try:
            process.stdin.write(line.encode("utf-8"))
            await process.stdin.drain()
        except OSError as exc:
            raise TransportError(f"Failed to write {message['method']} to MCP server: {exc}") from exc

    async def _read_response(self, process: asyncio.subprocess.Process, request_id: int, method: str) -> Any:
        """Read lines until the response to ``request_id`` arrives.

        Blank lines, non-JSON output and server notifications are skipped;
        the whole wait is bounded by ``timeout_s``.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout_s
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise ProtocolTimeoutError(f"Timed out waiting for MCP {method} response after {self.timeout_s}s")
            try:
                raw = await asyncio.wait_for(process.stdout.readline(), timeout=remaining)
            except asyncio.TimeoutError as exc:
                raise ProtocolTimeoutError(f"Timed out waiting for MCP {method} response after {self.timeout_s}s") from exc
            except (OSError, ValueError) as exc:
                raise TransportError(f"Failed to read MCP {method} response: {exc}") from exc

            if not raw:
                raise TransportError(f"MCP server closed its output before answering {method}")
            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            try:
                message = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Ignoring non-JSON output from MCP server: %s", line[:200])
                continue
            if isinstance(message, dict) and message.get("id") == request_id:
                return message
            logger.debug("Ignoring MCP message while waiting for %s: %s", method, line[:200])

    async def _shutdown(self, process: asyncio.subprocess.Process) -> None:
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=STOP_WAIT_TIMEOUT_S)
        except asyncio.TimeoutError:
            logger.warning("MCP server %s ignored terminate, killing it", process.pid)
            try:
                process.kill()
            except ProcessLookupError:
                pass
