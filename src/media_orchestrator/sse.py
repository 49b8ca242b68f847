"""Server-sent event framing shared by the chat and MCP HTTP clients.

Only ``data:`` lines matter here.  Comment lines (``:``),
``event:``/``id:`` fields and blank separators are ignored.
"""

from __future__ import annotations


class SSEDecoder:
    """Incrementally split a text stream into ``data:`` payloads.

    Chunks may end in the middle of a line; the unfinished tail is kept
    until the next ``feed`` or ``flush``.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, text: str) -> list[str]:
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return [data for data in map(self._parse_line, lines) if data]

    def flush(self) -> list[str]:
        """Return the payload of a final line that had no newline."""
        line, self._buffer = self._buffer, ""
        data = self._parse_line(line)
        return [data] if data else []

    @staticmethod
    def _parse_line(line: str) -> str | None:
        line = line.rstrip("\r")
        if not line.startswith("data:"):
            return None
        data = line[len("data:"):]
        if data.startswith(" "):
            data = data[1:]
        return data.strip()
