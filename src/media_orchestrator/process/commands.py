"""Spawn specifications for the supported media tools.

Only the flags needed to supervise the tools are encoded here; locating the
binaries is left to configuration.
"""

from __future__ import annotations

from pathlib import Path

from .supervisor import SpawnSpec


def whisper_spec(
    whisper_cli: str,
    *,
    task_id: str,
    model_path: Path,
    audio_path: Path,
    output_dir: Path,
    language: str = "zh",
    translate: bool = False,
) -> SpawnSpec:
    """Build the whisper-cli invocation for one transcription task.

    whisper-cli writes ``<output_dir>/<task_id>.json`` because of ``-oj``
    and the extension-less ``-of`` prefix.
    """
    output_stem = output_dir / task_id
    args = [
        "-m", str(model_path),
        "-l", language,
        "-f", str(audio_path),
        "-oj",
        "-of", str(output_stem),
    ]
    if translate:
        args.append("-tr")
    return SpawnSpec(
        program=whisper_cli,
        args=args,
        output_path=output_dir / f"{task_id}.json",
    )


def extract_audio_spec(
    ffmpeg: str,
    *,
    resource_id: str,
    video_path: Path,
    output_dir: Path,
) -> SpawnSpec:
    """Build the ffmpeg invocation that extracts 16 kHz mono PCM audio."""
    output_path = output_dir / f"{resource_id}.wav"
    args = [
        "-i", str(video_path),
        "-vn",
        "-acodec", "pcm_s16le",
        "-ar", "16000",
        "-ac", "1",
        "-y",
        str(output_path),
    ]
    return SpawnSpec(program=ffmpeg, args=args, output_path=output_path)
