"""Policy utilities for the media orchestrator."""

from .redaction import redact_secrets

__all__ = ["redact_secrets"]
