"""
Bounded extraction of console output captured for a test attempt.

Output arrives as chunks that need not align with line boundaries and may be
raw bytes. Only the most recent lines are retained while reading, so memory
stays proportional to the window size rather than to the volume of output.
"""

import codecs
from typing import Callable, Iterable, Optional

from .models import Chunk

TRUNCATION_MARKER = "[...truncated]"

# The buffer is compacted once it holds this many windows' worth of lines
COMPACTION_FACTOR = 2


class LineWindow:
    """Keeps the last `capacity` lines pushed into it.

    Lines are appended to a plain list and the oldest ones are discarded in a
    single slice once the list reaches COMPACTION_FACTOR * capacity, so each
    push costs amortized O(1). capacity=None keeps everything.
    """

    def __init__(self, capacity: Optional[int]):
        self.capacity = capacity
        self._lines: list[str] = []

    def push(self, line: str):
        if self.capacity == 0:
            return
        self._lines.append(line)
        if self.capacity is not None and len(self._lines) >= COMPACTION_FACTOR * self.capacity:
            del self._lines[:-self.capacity]

    def lines(self) -> list[str]:
        if self.capacity is None:
            return list(self._lines)
        if self.capacity == 0:
            return []
        return self._lines[-self.capacity:]


def _stream_lines(chunks: Iterable[Chunk]):
    """Yield the lines of one output stream, independent of chunking."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    partial: list[str] = []
    for chunk in chunks:
        if isinstance(chunk, (bytes, bytearray)):
            text = decoder.decode(chunk)
        else:
            # bytes left incomplete by an earlier chunk precede this text
            text = decoder.decode(b"", final=True) + chunk
            decoder.reset()
        if "\n" not in text:
            partial.append(text)
            continue
        first, *rest = text.split("\n")
        partial.append(first)
        yield "".join(partial)
        *complete, tail = rest
        yield from complete
        partial = [tail]
    partial.append(decoder.decode(b"", final=True))
    tail = "".join(partial)
    if tail:
        yield tail


def extract_lines(stdout: Iterable[Chunk], stderr: Iterable[Chunk],
                  max_lines: Optional[int] = None,
                  predicate: Optional[Callable[[str], bool]] = None) -> list[str]:
    """Return the last max_lines non-blank lines, stdout lines before stderr lines.

    If predicate is given, only lines it accepts are kept.
    """
    window = LineWindow(max_lines)
    if max_lines == 0:
        return []
    for stream in (stdout, stderr):
        for line in _stream_lines(stream):
            line = line.rstrip("\r")
            if line.strip() and (predicate is None or predicate(line)):
                window.push(line)
    return window.lines()


def render_window(lines: list[str], max_lines: Optional[int] = None,
                  max_chars: Optional[int] = None) -> str:
    """Join the last max_lines of `lines`, capped at max_chars plus a truncation marker.

    Used to derive the bounded view from an already extracted full view.
    """
    if max_lines == 0:
        return ""
    if max_lines is not None:
        lines = lines[-max_lines:]
    output = "\n".join(lines)
    if max_chars is not None and len(output) > max_chars:
        output = output[:max_chars] + "\n" + TRUNCATION_MARKER
    return output


def extract(stdout: Iterable[Chunk], stderr: Iterable[Chunk],
            max_lines: Optional[int] = None, max_chars: Optional[int] = None) -> str:
    """Extract a bounded, human-readable window of the captured output."""
    return render_window(extract_lines(stdout, stderr, max_lines), max_lines, max_chars)
