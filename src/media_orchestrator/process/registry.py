"""Registry of live child processes keyed by job key."""

from __future__ import annotations

import asyncio
import threading
from asyncio.subprocess import Process


class ProcessHandle:
    """A live child process plus the lock that serializes access to it.

    Only the holder of ``lock`` may wait on, poll or kill the process.  The
    registry lock is never held while this lock is awaited.
    """

    def __init__(self, process: Process) -> None:
        self.process = process
        self.lock = asyncio.Lock()
        # Set by a stop request before the kill so the poll loop can tell a
        # requested stop from a crash.
        self.stop_requested = False

    @property
    def pid(self) -> int:
        return self.process.pid

    def try_wait(self) -> int | None:
        """Return the exit code if the process has exited, else ``None``."""
        return self.process.returncode

    def kill(self) -> None:
        self.process.kill()

    async def wait(self) -> int:
        return await self.process.wait()


class ProcessRegistry:
    """Thread-safe mapping of job key to ``ProcessHandle``.

    The map is only reachable through ``insert``, ``remove``, ``get`` and
    ``contains``.  Each call holds the registry lock for a dictionary
    operation only.
    """

    def __init__(self, name: str = "processes") -> None:
        self.name = name
        self._handles: dict[str, ProcessHandle] = {}
        self._lock = threading.Lock()

    def insert(self, key: str, process: Process) -> ProcessHandle:
        handle = ProcessHandle(process)
        with self._lock:
            self._handles[key] = handle
        return handle

    def remove(self, key: str) -> ProcessHandle | None:
        with self._lock:
            return self._handles.pop(key, None)

    def get(self, key: str) -> ProcessHandle | None:
        with self._lock:
            return self._handles.get(key)

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._handles

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._handles)

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
