"""Line streaming for child process pipes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from ..events import EventSink, safe_emit

logger = logging.getLogger(__name__)

LineSink = Callable[[str], None]

_CHUNK_SIZE = 64 * 1024


async def read_lines(stream: asyncio.StreamReader, sink: LineSink) -> str:
    """Read ``stream`` to EOF, calling ``sink`` once per line.

    Lines are split on ``\\n`` (a trailing ``\\r`` is dropped) and decoded as
    UTF-8 with replacement.  A final line without a newline is still
    delivered.  Returns every line followed by ``\\n``, so the whole
    transcript is recoverable even if nobody listened live.

    Sink failures are logged and ignored; reading continues.
    """
    output: list[str] = []
    pending = b""

    def deliver(raw: bytes) -> None:
        line = raw.decode("utf-8", errors="replace")
        if line.endswith("\r"):
            line = line[:-1]
        output.append(line + "\n")
        try:
            sink(line)
        except Exception as exc:
            logger.warning("Line sink failed: %s", exc)

    while True:
        try:
            chunk = await stream.read(_CHUNK_SIZE)
        except OSError as exc:
            logger.warning("Stopped reading pipe after error: %s", exc)
            break
        if not chunk:
            break
        pending += chunk
        *lines, pending = pending.split(b"\n")
        for raw in lines:
            deliver(raw)

    if pending:
        deliver(pending)
    return "".join(output)


def channel_sink(sink: EventSink, channel: str) -> LineSink:
    """Return a line sink that publishes each line on ``channel``."""

    def emit_line(line: str) -> None:
        safe_emit(sink, channel, line)

    return emit_line


def spawn_stream_reader(stream: asyncio.StreamReader, line_sink: LineSink, *, name: str | None = None) -> asyncio.Task[str]:
    """Start ``read_lines`` as a background task and return it."""
    return asyncio.create_task(read_lines(stream, line_sink), name=name)
