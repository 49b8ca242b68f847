"""Shared state module for the media orchestrator.

This module provides the single shared configuration, event bus, job stores
and registries used across all tool modules.  A stop issued through one tool
call must find the process started by another, so every tool module imports
these objects from here instead of creating its own.
"""

from __future__ import annotations

from .chat import ChatStreamClient, StreamRegistry
from .config import Config
from .events import (
    EventBus,
    extraction_log_channel,
    extraction_progress_channel,
    transcription_stderr_channel,
    transcription_stdout_channel,
)
from .mcp_client import McpClient
from .process import ExtractionSupervisor, JobSupervisor, ProcessRegistry
from .telemetry.job_store import JobStore

# Single shared configuration loaded once at import time
CONFIG: Config = Config.load_from_env()

# Every live event goes through this bus
EVENTS: EventBus = EventBus()

# Job status, one store per job kind so task ids and resource ids never collide
TRANSCRIPTION_JOBS: JobStore = JobStore()
EXTRACTION_JOBS: JobStore = JobStore()

_SUPERVISOR_TIMING = {
    "poll_interval_s": CONFIG.poll_interval_s,
    "stop_wait_timeout_s": CONFIG.stop_wait_timeout_s,
}

TRANSCRIPTIONS: JobSupervisor = JobSupervisor(
    ProcessRegistry("transcriptions"),
    TRANSCRIPTION_JOBS,
    EVENTS,
    stdout_channel=transcription_stdout_channel,
    stderr_channel=transcription_stderr_channel,
    **_SUPERVISOR_TIMING,
)

EXTRACTIONS: ExtractionSupervisor = ExtractionSupervisor(
    ProcessRegistry("extractions"),
    EXTRACTION_JOBS,
    EVENTS,
    log_channel=extraction_log_channel,
    progress_channel=extraction_progress_channel,
    **_SUPERVISOR_TIMING,
)

STREAMS: StreamRegistry = StreamRegistry()

CHAT: ChatStreamClient = ChatStreamClient(EVENTS, STREAMS, timeout_s=CONFIG.chat_timeout_s)

MCP: McpClient = McpClient(
    timeout_s=CONFIG.mcp_read_timeout_s,
    settle_delay_s=CONFIG.mcp_settle_delay_s,
)
