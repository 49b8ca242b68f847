"""ffmpeg progress parsing.

ffmpeg reports progress on stderr in lines such as::

    frame=  123 fps= 25 q=28.0 size=    1024kB time=00:00:05.00 bitrate=1677.7kbits/s speed=1.0x
"""

from __future__ import annotations

import re

from ..events import EventSink, safe_emit

_TIME_RE = re.compile(r"time=(\S+)")


def parse_time_to_seconds(value: str) -> float:
    """Parse ``HH:MM:SS.mmm`` or ``MM:SS.mmm`` into seconds.

    Raises ``ValueError`` for any other shape.
    """
    parts = value.split(":")
    if len(parts) == 3:
        hours, minutes, seconds = (float(part) for part in parts)
        return hours * 3600 + minutes * 60 + seconds
    if len(parts) == 2:
        minutes, seconds = (float(part) for part in parts)
        return minutes * 60 + seconds
    raise ValueError(f"Unsupported time format: {value!r}")


def parse_progress(line: str, total_duration: float | None = None) -> float | None:
    """Return the progress carried by ``line``, or ``None``.

    With a known ``total_duration`` the result is a percentage capped at
    100; otherwise it is the elapsed media time in seconds.
    """
    match = _TIME_RE.search(line)
    if match is None:
        return None
    try:
        elapsed = parse_time_to_seconds(match.group(1))
    except ValueError:
        return None
    if total_duration:
        return min(elapsed / total_duration * 100.0, 100.0)
    return elapsed


class ProgressLineSink:
    """Line sink that forwards each line as a log event and emits progress."""

    def __init__(
        self,
        sink: EventSink,
        log_channel: str,
        progress_channel: str,
        total_duration: float | None = None,
    ) -> None:
        self.sink = sink
        self.log_channel = log_channel
        self.progress_channel = progress_channel
        self.total_duration = total_duration

    def __call__(self, line: str) -> None:
        safe_emit(self.sink, self.log_channel, line)
        progress = parse_progress(line, self.total_duration)
        if progress is not None:
            safe_emit(self.sink, self.progress_channel, progress)
