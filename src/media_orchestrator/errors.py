"""Error taxonomy for the media orchestrator.

Every failure surfaced by the core is an ``OrchestratorError``.  Callers can
catch the base class or branch on the subclasses below; none of them is
retried internally.
"""

from __future__ import annotations


class OrchestratorError(RuntimeError):
    """Base class for all errors raised by this package."""


class SpawnError(OrchestratorError):
    """An external executable could not be started."""


class ProtocolTimeoutError(OrchestratorError):
    """A handshake or response read exceeded its deadline."""


class TransportError(OrchestratorError):
    """Network or pipe failure while talking to a remote peer."""


class RemoteError(OrchestratorError):
    """The remote side answered with an error.

    ``status_code`` is set for non-2xx HTTP responses and ``code`` for
    JSON-RPC error objects.
    """

    def __init__(self, message: str, *, status_code: int | None = None, code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class JobStateError(OrchestratorError):
    """The requested transition is not valid for the job's current state."""


class JobFailedError(OrchestratorError):
    """A supervised process finished without producing a usable result."""

    def __init__(self, message: str, *, exit_code: int | None = None, log: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.log = log


class JobInterruptedError(JobFailedError):
    """The process was stopped while its start call was still waiting."""
