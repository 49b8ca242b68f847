"""Tests for secret redaction."""

from __future__ import annotations

from media_orchestrator.policy.redaction import redact_secrets


def test_explicit_secret_is_redacted() -> None:
    assert redact_secrets("key=hunter2 failed", ["hunter2"]) == "key=<REDACTED> failed"


def test_openai_style_key_is_redacted() -> None:
    text = "Incorrect API key provided: sk-proj-abcdefghijklmnopqrstuvwxyz"

    assert "sk-proj" not in redact_secrets(text)


def test_bearer_header_is_redacted() -> None:
    assert redact_secrets("Authorization: Bearer abc.def-ghi") == "Authorization: <REDACTED>"


def test_empty_and_none_secrets_are_ignored() -> None:
    assert redact_secrets("plain text", [None, ""]) == "plain text"
