"""Append-only store of display lines fed by raw debugger output."""

from __future__ import annotations

from typing import Callable

from dview.attrs import AttributedLine

TAB_SIZE = 8
_BACKSPACE = frozenset("\b\x7f")


def normalize(
    orig: str, chunk: str, pos: int, tab_size: int = TAB_SIZE
) -> tuple[str, int]:
    """Apply *chunk* (no newlines) to the open line *orig* at insertion column *pos*.

    Returns the new line text and the new insertion column.  Backspace only
    moves the insertion column; carriage return rewinds it to 0; tabs write
    spaces up to the next tab stop; other non-printable characters are dropped.
    Trailing whitespace beyond the insertion column is trimmed.
    """
    buf = list(orig)
    i = min(pos, len(buf))

    def put(ch: str) -> None:
        nonlocal i
        if i < len(buf):
            buf[i] = ch
        else:
            buf.append(ch)
        i += 1

    for ch in chunk:
        if ch in _BACKSPACE:
            if i > 0:
                i -= 1
        elif ch == "\t":
            put(" ")
            while i % tab_size:
                put(" ")
        elif ch == "\r":
            i = 0
        elif ch.isprintable():
            put(ch)

    j = len(buf) - 1
    while j > i and buf[j].isspace():
        j -= 1
    return "".join(buf[: j + 1]), i


class LineStore:
    """Ordered display lines plus the viewport and insertion cursors.

    The last line is open: raw text keeps overwriting it until a newline
    closes it.  ``row``/``col`` is the viewport position (``col`` is a
    multiple of ``width`` into a wrapped line); ``pos`` is the insertion
    column inside the open line, counted in visible characters.
    """

    def __init__(
        self,
        width: int = 80,
        *,
        classify: Callable[[str], AttributedLine] | None = None,
        tab_size: int = TAB_SIZE,
    ) -> None:
        if width < 1:
            raise ValueError(f"viewport width must be positive, got {width}")
        self.width: int = width
        self.tab_size: int = tab_size
        self._classify = classify
        self._lines: list[AttributedLine] = [AttributedLine()]
        self.row: int = 0
        self.col: int = 0
        self.pos: int = 0

    # -- Content -----------------------------------------------------------

    def _install(self, row: int, text: str) -> None:
        if self._classify is not None:
            self._lines[row] = self._classify(text)
        else:
            self._lines[row] = AttributedLine.plain(text)

    def append_raw(self, data: str | bytes) -> range:
        """Normalise and append raw output; returns the rows that changed."""
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")
        first = len(self._lines) - 1
        head, *rest = data.split("\n")

        if head:
            text, self.pos = normalize(
                self._lines[-1].text, head, self.pos, self.tab_size
            )
            self._install(len(self._lines) - 1, text)

        for piece in rest:
            self._lines.append(AttributedLine())
            text, self.pos = normalize("", piece, 0, self.tab_size)
            self._install(len(self._lines) - 1, text)

        self.end()
        return range(first, len(self._lines))

    def replace_line(self, row: int, line: AttributedLine) -> None:
        if not 0 <= row < len(self._lines):
            raise IndexError(f"row {row} out of range")
        self._lines[row] = line

    def line_count(self) -> int:
        return len(self._lines)

    def line_at(self, row: int) -> AttributedLine:
        return self._lines[row]

    def visible_length(self, row: int) -> int:
        return len(self._lines[row].text)

    def lines(self) -> list[AttributedLine]:
        return list(self._lines)

    def text(self) -> str:
        return "\n".join(line.text for line in self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    # -- Viewport ----------------------------------------------------------

    def at_end(self) -> bool:
        """True while the viewport is following the newest output."""
        last = len(self._lines) - 1
        return self.row == last and self.col == (
            self.visible_length(last) // self.width
        ) * self.width

    def resize(self, width: int) -> None:
        if width < 1:
            raise ValueError(f"viewport width must be positive, got {width}")
        following = self.at_end()
        self.width = width
        if following:
            self.end()
        else:
            self._snap()

    def _snap(self) -> None:
        if self.col > 0 and self.col % self.width:
            self.col = (self.col // self.width) * self.width

    def up(self, nlines: int = 1) -> None:
        width = self.width
        self._snap()
        for _ in range(nlines):
            if self.col > 0:
                self.col -= width
            elif self.row > 0:
                self.row -= 1
                length = self.visible_length(self.row)
                if length > width:
                    self.col = ((length - 1) // width) * width
            else:
                break

    def down(self, nlines: int = 1) -> None:
        width = self.width
        self._snap()
        for _ in range(nlines):
            length = self.visible_length(self.row)
            if self.col < length - width:
                self.col += width
            elif self.row < len(self._lines) - 1:
                self.row += 1
                self.col = 0
            else:
                break

    def home(self) -> None:
        self.row = 0
        self.col = 0

    def end(self) -> None:
        self.row = len(self._lines) - 1
        self.col = (self.visible_length(self.row) // self.width) * self.width

    def scroll_to(self, row: int) -> None:
        """Put the first wrapped row of *row* at the bottom of the viewport."""
        self.row = max(0, min(row, len(self._lines) - 1))
        self.col = 0

    def viewport(self, height: int) -> list[tuple[int, int] | None]:
        """Return *height* rows top-to-bottom as ``(row, column_offset)``.

        The cursor position is the bottom row; ``None`` marks rows above the
        first line.
        """
        width = self.width
        self._snap()
        r, c = self.row, self.col
        rows: list[tuple[int, int] | None] = []
        for _ in range(height):
            rows.append((r, c) if r >= 0 else None)
            if c >= width:
                c -= width
            else:
                r -= 1
                c = 0
                if r >= 0:
                    length = self.visible_length(r)
                    if length > width:
                        c = ((length - 1) // width) * width
        rows.reverse()
        return rows

    def cursor_position(self, height: int) -> tuple[int, int] | None:
        """Screen ``(y, x)`` of the insertion cursor, or None when hidden."""
        remaining = self.visible_length(self.row) - self.col
        if self.row == len(self._lines) - 1 and remaining <= self.width:
            return height - 1, self.pos % self.width
        return None
