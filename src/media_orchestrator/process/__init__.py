"""Supervised child processes.

``ProcessRegistry`` tracks live handles by job key, ``JobSupervisor`` runs
the start/poll/stop protocol on top of it and ``read_lines`` turns a pipe
into per-line events plus a full transcript.
"""

from .commands import extract_audio_spec, whisper_spec
from .registry import ProcessHandle, ProcessRegistry
from .runner import CommandResult, run_command
from .streams import read_lines, spawn_stream_reader
from .supervisor import ExtractionSupervisor, JobOutcome, JobSupervisor, SpawnSpec, combine_log

__all__ = [
    "ProcessHandle",
    "ProcessRegistry",
    "JobSupervisor",
    "ExtractionSupervisor",
    "JobOutcome",
    "SpawnSpec",
    "combine_log",
    "CommandResult",
    "run_command",
    "read_lines",
    "spawn_stream_reader",
    "whisper_spec",
    "extract_audio_spec",
]
