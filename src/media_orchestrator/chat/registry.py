"""Registry of in-flight chat streams."""

from __future__ import annotations

import asyncio
import threading


class StreamRegistry:
    """Map an event id to the task consuming that stream.

    Inserting an id that is already present replaces the previous task
    without cancelling it.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._lock = threading.Lock()

    def insert(self, event_id: str, task: asyncio.Task[None]) -> None:
        with self._lock:
            self._tasks[event_id] = task

    def remove(self, event_id: str) -> asyncio.Task[None] | None:
        with self._lock:
            return self._tasks.pop(event_id, None)

    def discard(self, event_id: str, task: asyncio.Task[None] | None) -> bool:
        """Remove ``event_id`` only if it still maps to ``task``."""
        with self._lock:
            if task is not None and self._tasks.get(event_id) is task:
                del self._tasks[event_id]
                return True
            return False

    def contains(self, event_id: str) -> bool:
        with self._lock:
            return event_id in self._tasks

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)
