"""Event emission for live observers.

Supervised processes and chat streams publish their incremental output as
named events.  The core only depends on the ``EventSink`` protocol; the
``EventBus`` below is the in-process implementation used by the server and
by callers that want to observe a job from the same event loop.

Emission is fire-and-forget: a channel nobody listens to simply drops the
event.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import defaultdict
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Anything that can publish ``payload`` on channel ``name``."""

    def emit(self, name: str, payload: Any) -> None:
        ...


class EventBus:
    """Fan events out to per-channel subscriber queues.

    Each subscriber gets its own unbounded ``asyncio.Queue`` so a slow
    observer never blocks the producer or other observers.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[asyncio.Queue[Any]]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, name: str) -> asyncio.Queue[Any]:
        queue: asyncio.Queue[Any] = asyncio.Queue()
        with self._lock:
            self._subscribers[name].append(queue)
        return queue

    def unsubscribe(self, name: str, queue: asyncio.Queue[Any]) -> None:
        with self._lock:
            queues = self._subscribers.get(name)
            if not queues:
                return
            if queue in queues:
                queues.remove(queue)
            if not queues:
                del self._subscribers[name]

    def subscriber_count(self, name: str) -> int:
        with self._lock:
            return len(self._subscribers.get(name, ()))

    def emit(self, name: str, payload: Any) -> None:
        with self._lock:
            queues = list(self._subscribers.get(name, ()))
        for queue in queues:
            queue.put_nowait(payload)


def safe_emit(sink: EventSink, name: str, payload: Any) -> None:
    """Emit and swallow sink failures.

    One broken observer must not abort data collection, so failures are
    logged at WARNING and otherwise ignored.
    """
    try:
        sink.emit(name, payload)
    except Exception as exc:
        logger.warning("Failed to emit event on %s: %s", name, exc)


# Channel names.  Every job, command or stream gets its own channel so
# concurrent observers never cross-talk.

def transcription_stdout_channel(task_id: str) -> str:
    return f"transcription-stdout-{task_id}"


def transcription_stderr_channel(task_id: str) -> str:
    return f"transcription-stderr-{task_id}"


def extraction_log_channel(resource_id: str) -> str:
    return f"extraction-log-{resource_id}"


def extraction_progress_channel(resource_id: str) -> str:
    return f"extraction-progress-{resource_id}"


def command_stdout_channel(event_id: str) -> str:
    return f"cmd-stdout-{event_id}"


def command_stderr_channel(event_id: str) -> str:
    return f"cmd-stderr-{event_id}"


def chat_stream_channel(event_id: str) -> str:
    return f"ai-chat-stream-{event_id}"
