"""One-shot command tool."""

from __future__ import annotations

import uuid

from ..process import run_command as run_process
from ..state import EVENTS


async def run_command(
    program: str,
    args: list[str] | None = None,
    cwd: str | None = None,
    event_id: str | None = None,
) -> dict[str, object]:
    """Run ``program`` to completion.

    Output is published live on ``cmd-stdout-<event_id>`` and
    ``cmd-stderr-<event_id>``.  A non-zero exit is reported through
    ``success``, not raised.
    """
    event_id = event_id or str(uuid.uuid4())
    result = await run_process(program, args or [], event_id, EVENTS, cwd=cwd)
    return {"event_id": event_id, **result.to_dict()}
