"""Secret redaction utilities.

Chat endpoints are called with an API credential and MCP servers are
started with caller-provided environments.  Error messages and log lines
built from those calls pass through ``redact_secrets`` so the credential
never leaks into a job record or a log file.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

_TOKEN_PATTERNS = [
    # OpenAI style keys (sk-..., sk-proj-..., sk-or-v1-...)
    re.compile(r"sk-[A-Za-z0-9_\-]{20,}"),
    # Bearer tokens in echoed headers
    re.compile(r"Bearer\s+[A-Za-z0-9\-\._~\+/]+=*", re.IGNORECASE),
    # Google API keys
    re.compile(r"AIza[0-9A-Za-z_\-]{35}"),
]


def redact_secrets(text: str, secrets: Iterable[str | None] = ()) -> str:
    """Return ``text`` with secrets and common token patterns replaced.

    Explicit ``secrets`` are replaced first, then any match of the known
    credential patterns.  Both are substituted with ``<REDACTED>``.
    """
    redacted = text or ""
    for secret in secrets:
        if secret:
            redacted = redacted.replace(secret, "<REDACTED>")
    for pattern in _TOKEN_PATTERNS:
        redacted = pattern.sub("<REDACTED>", redacted)
    return redacted
