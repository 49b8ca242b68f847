"""Transcription and audio extraction job tools.

Start calls wait for the job to finish, so a stop has to arrive as a
separate, concurrent tool call carrying the same key.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from ..errors import JobStateError
from ..process import extract_audio_spec, whisper_spec
from ..state import CONFIG, EXTRACTION_JOBS, EXTRACTIONS, TRANSCRIPTION_JOBS, TRANSCRIPTIONS
from ..telemetry.job_store import JobStatus, JobStore

logger = logging.getLogger(__name__)


def _existing_file(path: str, what: str) -> Path:
    resolved = Path(path).expanduser()
    if not resolved.is_file():
        raise FileNotFoundError(f"{what} not found: {resolved}")
    return resolved


def _status(store: JobStore, key: str) -> dict[str, object]:
    record = store.get(key)
    if record is None:
        return {"key": key, "missing": True}
    return record.to_dict()


async def transcription_start(
    task_id: str,
    audio_path: str,
    model_path: str,
    language: str = "zh",
    translate: bool = False,
) -> dict[str, object]:
    """Run whisper-cli on ``audio_path`` and wait for the JSON transcript.

    Calling this again for a task that is still running does not start a
    second process; the result then has ``already_running`` set.
    """
    model = _existing_file(model_path, "Model file")
    audio = _existing_file(audio_path, "Audio file")
    output_dir = CONFIG.transcription_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    spec = whisper_spec(
        CONFIG.whisper_cli_path,
        task_id=task_id,
        model_path=model,
        audio_path=audio,
        output_dir=output_dir,
        language=language,
        translate=translate,
    )
    TRANSCRIPTION_JOBS.create(task_id)
    outcome = await TRANSCRIPTIONS.start_job(task_id, spec)
    return outcome.to_dict()


async def transcription_stop(task_id: str) -> dict[str, object]:
    """Stop a running transcription."""
    await TRANSCRIPTIONS.stop_job(task_id)
    return {"task_id": task_id, "stopped": True}


def transcription_status(task_id: str) -> dict[str, object]:
    return _status(TRANSCRIPTION_JOBS, task_id)


def transcription_result(task_id: str) -> dict[str, object]:
    """Return the parsed whisper JSON of a completed transcription."""
    record = TRANSCRIPTION_JOBS.get(task_id)
    if record is None or record.status != JobStatus.COMPLETED or not record.result:
        raise JobStateError(f"Transcription {task_id} has no result yet")
    result_path = Path(record.result)
    if not result_path.exists():
        raise FileNotFoundError(f"Result file not found: {result_path}")
    return json.loads(result_path.read_text(encoding="utf-8"))


async def extraction_start(
    resource_id: str,
    video_path: str,
    total_duration: float | None = None,
) -> dict[str, object]:
    """Extract 16 kHz mono WAV audio from ``video_path`` with ffmpeg.

    ``total_duration`` (seconds) makes progress events percentages instead
    of elapsed seconds.
    """
    video = _existing_file(video_path, "Video file")
    output_dir = CONFIG.extraction_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    spec = extract_audio_spec(
        CONFIG.ffmpeg_path,
        resource_id=resource_id,
        video_path=video,
        output_dir=output_dir,
    )
    EXTRACTION_JOBS.create(resource_id)
    outcome = await EXTRACTIONS.start_extraction(resource_id, spec, total_duration)
    return outcome.to_dict()


async def extraction_stop(resource_id: str) -> dict[str, object]:
    """Stop a running audio extraction."""
    await EXTRACTIONS.stop_job(resource_id)
    return {"resource_id": resource_id, "stopped": True}


def extraction_status(resource_id: str) -> dict[str, object]:
    return _status(EXTRACTION_JOBS, resource_id)
