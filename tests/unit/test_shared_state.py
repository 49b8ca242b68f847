"""Unit tests for shared state.

These tests verify that a job started through one tool module can be seen
and stopped through another.
"""

from __future__ import annotations

import asyncio


def test_tool_modules_share_state_objects() -> None:
    from media_orchestrator import state
    from media_orchestrator.tools import chat_tools, command_tools, job_tools, mcp_tools

    assert job_tools.TRANSCRIPTIONS is state.TRANSCRIPTIONS
    assert job_tools.EXTRACTION_JOBS is state.EXTRACTION_JOBS
    assert chat_tools.CHAT is state.CHAT
    assert chat_tools.EVENTS is command_tools.EVENTS is state.EVENTS
    assert mcp_tools.MCP is state.MCP
    assert state.CHAT.registry is state.STREAMS


def test_supervisors_use_their_own_stores() -> None:
    from media_orchestrator import state

    assert state.TRANSCRIPTIONS.store is state.TRANSCRIPTION_JOBS
    assert state.EXTRACTIONS.store is state.EXTRACTION_JOBS
    assert state.TRANSCRIPTIONS.registry is not state.EXTRACTIONS.registry


def test_status_written_by_supervisor_is_visible_to_tools() -> None:
    from media_orchestrator import state
    from media_orchestrator.tools import job_tools

    state.TRANSCRIPTION_JOBS.mark_running("shared-ghost")
    asyncio.run(job_tools.transcription_stop("shared-ghost"))

    status = job_tools.transcription_status("shared-ghost")
    assert status["status"] == "failed"
    assert status["failure_reason"] == "stopped_by_user"
