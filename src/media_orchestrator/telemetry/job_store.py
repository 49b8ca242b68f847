"""In-memory job status store.

The supervisor never owns persistence.  It reads and writes job status
through the ``JobStatusStore`` protocol; ``JobStore`` is the default
implementation and is not persisted between server restarts.  A database
backed store only has to provide the same five methods.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Protocol


class JobStatus:
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureReason:
    STOPPED_BY_USER = "stopped_by_user"
    PROCESS_FAILED = "process_failed"
    MISSING_OUTPUT = "missing_output"
    SPAWN_FAILED = "spawn_failed"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class JobRecord:
    """Externally visible status of one job."""

    key: str
    status: str = JobStatus.PENDING
    error: str | None = None
    failure_reason: str | None = None
    log: str | None = None
    result: str | None = None
    created_at: str = ""
    updated_at: str = ""
    completed_at: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "key": self.key,
            "status": self.status,
            "error": self.error,
            "failure_reason": self.failure_reason,
            "log": self.log,
            "result": self.result,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "completed_at": self.completed_at,
        }


class JobStatusStore(Protocol):
    """Interface for the caller-owned status record of a job."""

    def get(self, key: str) -> JobRecord | None:
        ...

    def create(self, key: str) -> JobRecord:
        ...

    def mark_running(self, key: str) -> JobRecord:
        ...

    def mark_completed(self, key: str, *, result: str | None = None, log: str | None = None) -> JobRecord:
        ...

    def mark_failed(self, key: str, error: str, reason: str, *, log: str | None = None) -> JobRecord:
        ...


class JobStore:
    """Simple in-memory store for job records.

    Records are copied on the way out so callers cannot mutate stored state
    without going through the ``mark_*`` methods.
    """

    def __init__(self) -> None:
        self._records: dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> JobRecord | None:
        with self._lock:
            record = self._records.get(key)
            return replace(record) if record is not None else None

    def create(self, key: str) -> JobRecord:
        """Create a pending record, or return the existing one unchanged."""
        with self._lock:
            record = self._records.get(key)
            if record is None:
                now = _now()
                record = JobRecord(key=key, created_at=now, updated_at=now)
                self._records[key] = record
            return replace(record)

    def mark_running(self, key: str) -> JobRecord:
        return self._update(
            key,
            status=JobStatus.RUNNING,
            error=None,
            failure_reason=None,
            completed_at=None,
        )

    def mark_completed(self, key: str, *, result: str | None = None, log: str | None = None) -> JobRecord:
        return self._update(
            key,
            status=JobStatus.COMPLETED,
            result=result,
            log=log,
            error=None,
            failure_reason=None,
            completed_at=_now(),
        )

    def mark_failed(self, key: str, error: str, reason: str, *, log: str | None = None) -> JobRecord:
        changes: dict[str, object] = {
            "status": JobStatus.FAILED,
            "error": error,
            "failure_reason": reason,
            "completed_at": _now(),
        }
        if log is not None:
            changes["log"] = log
        return self._update(key, **changes)

    def _update(self, key: str, **changes: object) -> JobRecord:
        with self._lock:
            record = self._records.get(key)
            if record is None:
                now = _now()
                record = JobRecord(key=key, created_at=now, updated_at=now)
            record = replace(record, updated_at=_now(), **changes)
            self._records[key] = record
            return replace(record)
