"""Incremental word-wrapping for streamed model output.

Streamed text arrives in arbitrary fragments: half a word, several
lines, or a single character. StreamWordWrapper re-flows those fragments
into width-bounded terminal lines and hands each finished line to a sink
as soon as it is known, keeping only the unfinished tail buffered.

Wrapping is ANSI-aware: escape sequences are zero-width and are never
split. Widths are terminal cell widths, so wide CJK characters count
double.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from rich.cells import cell_len

# Terminal geometry
DEFAULT_COLUMNS = 80
MARGIN = 4
MAX_WIDTH = 100
MIN_WIDTH = 20

# CSI sequences (colors, cursor moves) and OSC sequences (hyperlinks, titles)
_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")
# An escape sequence cut off at the end of a fragment
_PARTIAL_ANSI_RE = re.compile(r"\x1b(?:\[[0-9;?]*[ -/]*|\][^\x07\x1b]*\x1b?)?\Z")
_TOKEN_RE = re.compile(r"\s+|\S+")
# An escape sequence or a single character
_SEGMENT_RE = re.compile(_ANSI_RE.pattern + r"|.", re.DOTALL)

LineSink = Callable[[str], None]


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return _ANSI_RE.sub("", text)


def visible_width(text: str) -> int:
    """Terminal cell width of text, ignoring ANSI escape sequences."""
    return cell_len(strip_ansi(text))


def wrap_width(columns: int | None = None) -> int:
    """Target wrap width for a terminal with the given column count.

    Leaves a margin on narrow terminals and caps the width on very wide
    ones so long lines stay readable. Unknown width means 80 columns.
    """
    if not columns or columns <= 0:
        columns = DEFAULT_COLUMNS
    return max(MIN_WIDTH, min(columns - MARGIN, MAX_WIDTH))


def _hard_split(word: str, width: int) -> list[str]:
    """Split a word wider than the line into width-sized pieces."""
    pieces: list[str] = []
    piece = ""
    piece_width = 0
    for segment in _SEGMENT_RE.findall(word):
        w = visible_width(segment)
        if w and piece_width and piece_width + w > width:
            pieces.append(piece)
            piece, piece_width = "", 0
        piece += segment
        piece_width += w
    pieces.append(piece)
    return pieces


def wrap_line(line: str, width: int) -> list[str]:
    """Wrap one logical line (no newlines) into physical lines.

    Breaks at whitespace. A whitespace run at a break fills the earlier
    line up to the width and the rest starts the next line. Words wider
    than the width are hard-split. No characters are added or dropped, so
    ``"".join(wrap_line(s, w)) == s``. An empty line yields ``[""]``.
    Every line fits the width except a lone wide character on a width-1
    line.
    """
    if width < 1:
        raise ValueError(f"width must be positive, got {width}")

    lines: list[str] = []
    current = ""
    used = 0

    for token in _TOKEN_RE.findall(line):
        w = visible_width(token)

        if token.isspace():
            if used + w <= width:
                current += token
                used += w
                continue
            for char in token:
                cw = visible_width(char)
                if current and used + cw > width:
                    lines.append(current)
                    current, used = "", 0
                current += char
                used += cw
            continue

        if used + w <= width:
            current += token
            used += w
            continue

        if current:
            # Either the line is full or indentation alone leaves no room
            lines.append(current)
            current, used = "", 0

        if w <= width:
            current = token
            used = w
        else:
            pieces = _hard_split(token, width)
            current = pieces[0]
            for piece in pieces[1:]:
                lines.append(current)
                current = piece
            used = visible_width(current)

    lines.append(current)
    return lines


class StreamWordWrapper:
    """Stateful wrapper turning text fragments into wrapped lines.

    Lines are passed to ``sink`` without a trailing newline, in order.
    ``write`` may be called any number of times; ``flush`` exactly once,
    after the last fragment, and only when the stream completed.
    """

    def __init__(self, sink: LineSink, width: int | None = None) -> None:
        self._sink = sink
        self._width = width if width is not None else wrap_width()
        if self._width < 1:
            raise ValueError(f"width must be positive, got {self._width}")
        self._buffer = ""
        self._flushed = False

    @property
    def width(self) -> int:
        return self._width

    @property
    def pending(self) -> str:
        """Text received but not yet emitted."""
        return self._buffer

    def write(self, fragment: str) -> None:
        """Accept a fragment and emit every line it completes."""
        if self._flushed:
            raise RuntimeError("write() called after flush()")
        if not fragment:
            return

        self._buffer += fragment
        *complete, self._buffer = self._buffer.split("\n")
        for line in complete:
            self._emit(wrap_line(line, self._width))

        if _PARTIAL_ANSI_RE.search(self._buffer):
            return
        # A long unbroken tail: emit what is already settled
        if visible_width(self._buffer) > self._width:
            *settled, self._buffer = wrap_line(self._buffer, self._width)
            self._emit(settled)

    def flush(self) -> None:
        """Emit the buffered tail as the final line(s) and clear it."""
        if self._flushed:
            raise RuntimeError("flush() called twice")
        self._flushed = True
        tail, self._buffer = self._buffer, ""
        self._emit(wrap_line(tail, self._width))

    def _emit(self, lines: Iterable[str]) -> None:
        for line in lines:
            self._sink(line)
