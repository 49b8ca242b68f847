"""Reassembly of streamed tool calls.

The API streams a tool call as fragments keyed by ``index``: the first
fragment usually carries ``id``, ``type`` and the function name, and the
JSON arguments arrive in arbitrary slices across later fragments.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import FunctionCall, ToolCall, ToolCallDelta


@dataclass
class _PartialToolCall:
    id: str | None = None
    call_type: str | None = None
    name: str | None = None
    arguments: str = ""


class ToolCallAccumulator:
    """Merge ``ToolCallDelta`` fragments into complete ``ToolCall`` records.

    ``id``, ``type`` and ``name`` are overwritten when a fragment carries
    them; ``arguments`` is always appended, never replaced.
    """

    def __init__(self) -> None:
        self._calls: dict[int, _PartialToolCall] = {}

    def __len__(self) -> int:
        return len(self._calls)

    def apply(self, delta: ToolCallDelta) -> None:
        call = self._calls.setdefault(delta.index, _PartialToolCall())
        if delta.id is not None:
            call.id = delta.id
        if delta.call_type is not None:
            call.call_type = delta.call_type
        if delta.name is not None:
            call.name = delta.name
        if delta.arguments is not None:
            call.arguments += delta.arguments

    def apply_all(self, deltas: list[ToolCallDelta]) -> None:
        for delta in deltas:
            self.apply(delta)

    def flush(self) -> list[ToolCall]:
        """Return the reconstructed calls ordered by index and clear state.

        Fields that never arrived default to the empty string.
        """
        calls = [
            ToolCall(
                id=partial.id or "",
                call_type=partial.call_type or "",
                function=FunctionCall(name=partial.name or "", arguments=partial.arguments),
            )
            for _, partial in sorted(self._calls.items())
        ]
        self._calls.clear()
        return calls
