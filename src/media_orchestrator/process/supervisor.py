"""Job supervision for long-running media tools.

A job is addressed by a caller-chosen key (a task id or a resource id).
``JobSupervisor.start_job`` spawns the child, registers it, streams both
pipes to observers and polls for exit; ``JobSupervisor.stop_job`` kills it.
The registry, not the job store, is the source of truth for whether a
process actually exists for a key.

Exit is detected by polling ``returncode`` at a fixed interval instead of
awaiting ``wait()``, so the handle lock stays available to a concurrent
stop request between polls.
"""

from __future__ import annotations

import asyncio
import glob
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from ..constants import INTERRUPTED_EXIT_CODE, POLL_INTERVAL_S, STOP_WAIT_TIMEOUT_S
from ..errors import JobFailedError, JobInterruptedError, JobStateError, SpawnError
from ..events import EventSink, safe_emit
from ..telemetry.job_store import FailureReason, JobStatus, JobStatusStore
from .progress import ProgressLineSink
from .registry import ProcessHandle, ProcessRegistry
from .streams import LineSink, channel_sink, spawn_stream_reader

logger = logging.getLogger(__name__)


@dataclass
class SpawnSpec:
    """How to launch one external tool.

    ``env`` is merged over the parent environment.  ``output_path`` is the
    artifact a successful run must leave behind.  ``artifact_glob``, when
    set, lets a non-zero exit count as success if any file matches it.
    """

    program: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] | None = None
    cwd: str | None = None
    output_path: Path | None = None
    artifact_glob: str | None = None

    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def environment(self) -> dict[str, str] | None:
        if not self.env:
            return None
        return {**os.environ, **self.env}


@dataclass
class JobOutcome:
    """Result of a ``start_job`` call."""

    key: str
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    log: str = ""
    output_path: str | None = None
    already_running: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "key": self.key,
            "exit_code": self.exit_code,
            "log": self.log,
            "output_path": self.output_path,
            "already_running": self.already_running,
        }


def combine_log(stdout: str, stderr: str) -> str:
    """Join both transcripts into one log with section headers."""
    log = ""
    if stdout:
        log += "=== STDOUT ===\n" + stdout
    if stderr:
        if log:
            log += "\n"
        log += "=== STDERR ===\n" + stderr
    return log


def _failure_message(program: str, exit_code: int, stdout: str, stderr: str) -> str:
    if stderr.strip():
        return stderr.strip()
    if stdout.strip():
        return stdout.strip()
    return f"{program} exited with code {exit_code}"


def _find_artifact(spec: SpawnSpec) -> Path | None:
    if spec.output_path is not None and spec.output_path.exists():
        return spec.output_path
    if spec.artifact_glob:
        base = Path(spec.cwd or ".")
        matches = sorted(glob.glob(spec.artifact_glob, root_dir=spec.cwd))
        for match in matches:
            path = base / match
            if path.is_file():
                return path
    return None


class JobSupervisor:
    """Run external tools as supervised, stoppable jobs.

    One supervisor wraps one ``ProcessRegistry``; transcription and audio
    extraction each get their own so their keys never collide.
    """

    def __init__(
        self,
        registry: ProcessRegistry,
        store: JobStatusStore,
        sink: EventSink,
        *,
        stdout_channel: Callable[[str], str],
        stderr_channel: Callable[[str], str],
        poll_interval_s: float = POLL_INTERVAL_S,
        stop_wait_timeout_s: float = STOP_WAIT_TIMEOUT_S,
        interrupted_exit_code: int = INTERRUPTED_EXIT_CODE,
    ) -> None:
        self.registry = registry
        self.store = store
        self.sink = sink
        self.stdout_channel = stdout_channel
        self.stderr_channel = stderr_channel
        self.poll_interval_s = poll_interval_s
        self.stop_wait_timeout_s = stop_wait_timeout_s
        self.interrupted_exit_code = interrupted_exit_code
        # Keys between the "already running?" check and registry insert.
        self._starting: set[str] = set()
        self._cancelled_starts: set[str] = set()

    def line_sinks(self, key: str) -> tuple[LineSink, LineSink]:
        """Return the (stdout, stderr) line sinks for ``key``."""
        return (
            channel_sink(self.sink, self.stdout_channel(key)),
            channel_sink(self.sink, self.stderr_channel(key)),
        )

    def on_success(self, key: str, outcome: JobOutcome) -> None:
        """Hook called after a job completed successfully."""

    def is_running(self, key: str) -> bool:
        return key in self._starting or self.registry.contains(key)

    async def start_job(self, key: str, spec: SpawnSpec) -> JobOutcome:
        """Start ``spec`` under ``key`` and wait for it to finish.

        If a process is already registered for ``key`` nothing is spawned:
        the job store is brought back to ``running`` if it drifted and an
        outcome with ``already_running=True`` is returned.

        Raises ``SpawnError`` if the executable cannot be started,
        ``JobInterruptedError`` if the job was stopped meanwhile and
        ``JobFailedError`` for a failed run or a missing artifact.
        """
        if self.is_running(key):
            record = self.store.get(key)
            if record is None or record.status != JobStatus.RUNNING:
                self.store.mark_running(key)
            logger.info("Job %s is already running in %s, not starting it again", key, self.registry.name)
            return JobOutcome(key=key, already_running=True)

        self._starting.add(key)
        try:
            self.store.mark_running(key)
            try:
                process = await asyncio.create_subprocess_exec(
                    *spec.argv(),
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=spec.environment(),
                    cwd=spec.cwd,
                )
            except OSError as exc:
                message = f"Failed to start {spec.program}: {exc}"
                logger.error(message)
                # A stop that arrived during the spawn keeps its stopped_by_user record.
                if key not in self._cancelled_starts:
                    self.store.mark_failed(key, message, FailureReason.SPAWN_FAILED)
                raise SpawnError(message) from exc

            handle = self.registry.insert(key, process)
            cancelled = key in self._cancelled_starts
        finally:
            self._starting.discard(key)
            self._cancelled_starts.discard(key)

        logger.info("Started %s for job %s (pid %s)", spec.program, key, handle.pid)

        stdout_sink, stderr_sink = self.line_sinks(key)
        stdout_task = spawn_stream_reader(process.stdout, stdout_sink, name=f"{key}-stdout")
        stderr_task = spawn_stream_reader(process.stderr, stderr_sink, name=f"{key}-stderr")

        if cancelled:
            await self._kill(key, handle)
            self.registry.remove(key)

        try:
            exit_code, interrupted = await self._poll_until_exit(key)
        except asyncio.CancelledError:
            orphan = self.registry.remove(key)
            if orphan is not None:
                await self._kill(key, orphan)
            stdout_task.cancel()
            stderr_task.cancel()
            self.store.mark_failed(key, "Job was cancelled", FailureReason.STOPPED_BY_USER)
            raise

        stdout, stderr = await asyncio.gather(stdout_task, stderr_task)
        log = combine_log(stdout, stderr)
        logger.info("Job %s exited with code %s", key, exit_code)

        if interrupted:
            raise JobInterruptedError(f"Job {key} was stopped", exit_code=exit_code, log=log)

        record = self.store.get(key)
        if record is not None and record.failure_reason == FailureReason.STOPPED_BY_USER:
            # Stopped after the process exited but before its result was recorded.
            logger.info("Job %s exited with code %s after a stop request", key, exit_code)
            raise JobInterruptedError(f"Job {key} was stopped", exit_code=self.interrupted_exit_code, log=log)

        outcome = JobOutcome(key=key, exit_code=exit_code, stdout=stdout, stderr=stderr, log=log)

        if exit_code != 0:
            artifact = _find_artifact(spec) if spec.artifact_glob else None
            if artifact is None:
                message = _failure_message(spec.program, exit_code, stdout, stderr)
                logger.error("Job %s failed: %s", key, message)
                self.store.mark_failed(key, message, FailureReason.PROCESS_FAILED, log=log)
                raise JobFailedError(message, exit_code=exit_code, log=log)
            # TODO: a partially written artifact passes this check; compare
            # its size against the tool's reported output before accepting.
            logger.warning(
                "Job %s exited with code %s but produced %s; treating it as success",
                key,
                exit_code,
                artifact,
            )
        else:
            artifact = _find_artifact(spec)
            if spec.output_path is not None and artifact is None:
                message = f"Process finished but did not produce output file: {spec.output_path}"
                logger.error("Job %s failed: %s", key, message)
                self.store.mark_failed(key, message, FailureReason.MISSING_OUTPUT, log=log)
                raise JobFailedError(message, exit_code=exit_code, log=log)

        outcome.output_path = str(artifact) if artifact is not None else None
        self.store.mark_completed(key, result=outcome.output_path, log=log)
        self.on_success(key, outcome)
        return outcome

    async def _poll_until_exit(self, key: str) -> tuple[int, bool]:
        while True:
            handle = self.registry.get(key)
            if handle is None:
                return self.interrupted_exit_code, True
            async with handle.lock:
                returncode = handle.try_wait()
                if returncode is not None:
                    self.registry.remove(key)
                    if handle.stop_requested:
                        return self.interrupted_exit_code, True
                    return returncode, False
            await asyncio.sleep(self.poll_interval_s)

    async def _kill(self, key: str, handle: ProcessHandle) -> None:
        async with handle.lock:
            handle.stop_requested = True
            try:
                handle.kill()
            except ProcessLookupError:
                logger.info("Process for job %s had already exited", key)
            except OSError as exc:
                logger.warning("Failed to kill process for job %s: %s", key, exc)
            try:
                await asyncio.wait_for(handle.wait(), timeout=self.stop_wait_timeout_s)
            except asyncio.TimeoutError:
                logger.warning("Process for job %s did not exit after kill", key)

    async def stop_job(self, key: str) -> None:
        """Stop the job running under ``key``.

        The job store must report ``running``; anything else is a
        ``JobStateError``.  A job marked running without a registered
        process (crash, restart) is still stopped successfully.  The job
        always ends ``failed`` with reason ``stopped_by_user`` and is absent
        from the registry afterwards.
        """
        record = self.store.get(key)
        if record is None:
            raise JobStateError(f"Job {key} does not exist")
        if record.status != JobStatus.RUNNING:
            raise JobStateError(f"Job {key} is not running (current status: {record.status})")

        handle = self.registry.get(key)
        if handle is not None:
            await self._kill(key, handle)
            self.registry.remove(key)
            logger.info("Stopped job %s", key)
        elif key in self._starting:
            self._cancelled_starts.add(key)
            logger.info("Job %s is still starting; it will be killed once spawned", key)
        else:
            logger.warning("Job %s is marked running but has no process; marking it stopped", key)

        self.store.mark_failed(key, "Job stopped by user", FailureReason.STOPPED_BY_USER)


class ExtractionSupervisor(JobSupervisor):
    """Supervisor for ffmpeg audio extraction.

    Both pipes go to one log channel and stderr is additionally parsed for
    progress, which ends with a final ``100.0`` on success.
    """

    def __init__(
        self,
        registry: ProcessRegistry,
        store: JobStatusStore,
        sink: EventSink,
        *,
        log_channel: Callable[[str], str],
        progress_channel: Callable[[str], str],
        **kwargs: float | int,
    ) -> None:
        super().__init__(
            registry,
            store,
            sink,
            stdout_channel=log_channel,
            stderr_channel=log_channel,
            **kwargs,
        )
        self.progress_channel = progress_channel
        self._durations: dict[str, float] = {}

    async def start_extraction(self, key: str, spec: SpawnSpec, total_duration: float | None = None) -> JobOutcome:
        """Like ``start_job``; ``total_duration`` turns progress into percentages."""
        if self.is_running(key):
            return await self.start_job(key, spec)
        if total_duration:
            self._durations[key] = total_duration
        try:
            return await self.start_job(key, spec)
        finally:
            self._durations.pop(key, None)

    def line_sinks(self, key: str) -> tuple[LineSink, LineSink]:
        log_channel = self.stdout_channel(key)
        return (
            channel_sink(self.sink, log_channel),
            ProgressLineSink(self.sink, log_channel, self.progress_channel(key), self._durations.get(key)),
        )

    def on_success(self, key: str, outcome: JobOutcome) -> None:
        safe_emit(self.sink, self.progress_channel(key), 100.0)
