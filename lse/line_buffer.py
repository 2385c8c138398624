"""
Line framing for streamed process output.

Pipe reads are not line aligned: a status line can arrive split across two
chunks, and a multi-byte glyph such as "✓" can be split across the byte
boundary. LineBuffer holds the partial tail until the rest arrives and
hands back only complete lines.
"""

from __future__ import annotations

import codecs
from typing import Union


class LineBuffer:
    """Accumulates chunks and yields complete lines.

    ``\\n``, ``\\r\\n`` and a bare ``\\r`` (spinner redraw) all end a line.
    """

    def __init__(self, max_line_chars: int = 4096, encoding: str = "utf-8"):
        self._max_line_chars = max_line_chars
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buf = ""

    @property
    def pending(self) -> str:
        """Buffered partial line (not yet terminated)."""
        return self._buf

    def feed(self, data: Union[bytes, str]) -> list[str]:
        """Add a chunk. Returns the lines it completed."""
        if isinstance(data, bytes):
            text = self._decoder.decode(data)
        else:
            text = data
        self._buf += text

        # A trailing "\r" may be the first half of "\r\n"; wait for the next chunk.
        hold_cr = self._buf.endswith("\r")
        if hold_cr:
            self._buf = self._buf[:-1]

        self._buf = self._buf.replace("\r\n", "\n").replace("\r", "\n")

        lines: list[str] = []
        while "\n" in self._buf:
            line, self._buf = self._buf.split("\n", 1)
            lines.extend(self._cut(line))

        # Over-long partial line: emit whole pieces, keep the remainder.
        # Pieces start at multiples of max_line_chars from the line start,
        # so the cut points do not depend on how the chunks were split.
        while len(self._buf) > self._max_line_chars:
            lines.append(self._buf[: self._max_line_chars])
            self._buf = self._buf[self._max_line_chars:]

        if hold_cr:
            self._buf += "\r"
        return lines

    def flush(self) -> list[str]:
        """Emit whatever is buffered as a final, possibly incomplete, line."""
        tail = self._buf + self._decoder.decode(b"", final=True)
        self._buf = ""
        tail = tail.replace("\r\n", "\n").replace("\r", "\n")
        parts = tail.split("\n")
        if parts and parts[-1] == "":
            parts.pop()
        lines: list[str] = []
        for part in parts:
            lines.extend(self._cut(part))
        return lines

    def _cut(self, line: str) -> list[str]:
        """Split a line into pieces of at most max_line_chars."""
        size = self._max_line_chars
        if len(line) <= size:
            return [line]
        return [line[i:i + size] for i in range(0, len(line), size)]

    def clear(self) -> None:
        """Drop buffered data without emitting it."""
        self._buf = ""
        self._decoder.reset()
