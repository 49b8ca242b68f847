"""One-shot command execution with live output.

Unlike ``JobSupervisor`` this does not register the process anywhere: the
command cannot be stopped by key, it simply runs to completion while both
pipes are published on ``cmd-stdout-<id>`` and ``cmd-stderr-<id>``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..errors import SpawnError
from ..events import EventSink, command_stderr_channel, command_stdout_channel
from .streams import channel_sink, spawn_stream_reader

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    exit_code: int | None
    stdout: str
    stderr: str
    success: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "success": self.success,
        }


async def run_command(
    program: str,
    args: Sequence[str],
    event_id: str,
    sink: EventSink,
    cwd: str | None = None,
) -> CommandResult:
    """Run ``program`` with ``args`` and return its exit code and output.

    Raises ``SpawnError`` if the program cannot be started.  A non-zero
    exit is not an error; check ``success``.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            program,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
    except OSError as exc:
        raise SpawnError(f"Failed to run command {program}: {exc}") from exc

    stdout_task = spawn_stream_reader(process.stdout, channel_sink(sink, command_stdout_channel(event_id)))
    stderr_task = spawn_stream_reader(process.stderr, channel_sink(sink, command_stderr_channel(event_id)))

    exit_code = await process.wait()
    stdout, stderr = await asyncio.gather(stdout_task, stderr_task)
    logger.debug("Command %s exited with code %s", program, exit_code)

    return CommandResult(exit_code=exit_code, stdout=stdout, stderr=stderr, success=exit_code == 0)
