"""Line framing over a rolling text buffer."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

DEFAULT_BUFFER_CAP = 1000

# \r\n must be tried before its parts so a CRLF pair yields one separator.
_LINE_SPLIT = re.compile(r"\r\n|\n|\r")


@dataclass(slots=True)
class FramedChunk:
    lines: list[str] = field(default_factory=list)
    dropped: int = 0


class LineFramer:
    def __init__(self, cap: int = DEFAULT_BUFFER_CAP):
        if int(cap) <= 0:
            raise ValueError("buffer cap must be > 0")
        self.cap = int(cap)
        self._buffer = ""
        self.dropped_total = 0

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, chunk: str) -> FramedChunk:
        """Append `chunk`; return complete lines, keep the unterminated tail."""
        buffer = self._buffer + (chunk or "")
        dropped = 0
        if len(buffer) > self.cap:
            dropped = len(buffer) - self.cap
            buffer = buffer[-self.cap :]
            self.dropped_total += dropped
        parts = _LINE_SPLIT.split(buffer)
        self._buffer = parts.pop()
        return FramedChunk(lines=parts, dropped=dropped)

    def take_remainder(self) -> str:
        rest = self._buffer
        self._buffer = ""
        return rest

    def reset(self):
        self._buffer = ""


__all__ = ["DEFAULT_BUFFER_CAP", "FramedChunk", "LineFramer"]
