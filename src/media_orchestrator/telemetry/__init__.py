"""Telemetry, logging and job status utilities."""

from .job_store import FailureReason, JobRecord, JobStatus, JobStatusStore, JobStore
from .logger import get_logger

__all__ = ["get_logger", "JobStore", "JobStatusStore", "JobRecord", "JobStatus", "FailureReason"]
