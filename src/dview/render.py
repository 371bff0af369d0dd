"""Paint attributed lines as rows of styled terminal cells."""

from __future__ import annotations

import logging
import unicodedata
from typing import Iterator, Mapping

from rich.text import Text

from dview.attrs import AttributedLine, HLGroup

logger = logging.getLogger(__name__)

DEFAULT_TABSTOP = 8

DEFAULT_STYLES: dict[HLGroup, str] = {
    HLGroup.TEXT: "",
    HLGroup.KEYWORD: "bold blue",
    HLGroup.TYPE: "bold green",
    HLGroup.LITERAL: "bold red",
    HLGroup.COMMENT: "yellow",
    HLGroup.DIRECTIVE: "bold cyan",
    HLGroup.PATH: "cyan",
    HLGroup.BACKTRACE_FRAME: "bold magenta",
    HLGroup.HEX: "bright_yellow",
    HLGroup.SEARCH: "black on yellow",
}


_char_width_cache: dict[str, int] = {}


def char_width(ch: str) -> int:
    """Return display width of a character (2 for fullwidth/wide)."""
    if ch < "\u0100":
        return 1
    w = _char_width_cache.get(ch)
    if w is None:
        w = 2 if unicodedata.east_asian_width(ch) in ("W", "F") else 1
        _char_width_cache[ch] = w
    return w


class StyleLookupError(LookupError):
    """No display style is configured for a highlight group."""


class StyleTable:
    """Maps highlight groups to rich style strings."""

    def __init__(self, styles: Mapping[HLGroup, str] | None = None) -> None:
        self._styles: dict[HLGroup, str] = dict(
            DEFAULT_STYLES if styles is None else styles
        )

    def attribute_for(self, group: HLGroup) -> str:
        try:
            return self._styles[group]
        except KeyError:
            logger.error("no style for highlight group %r", group)
            raise StyleLookupError(f"no style for highlight group {group!r}") from None

    def set_style(self, group: HLGroup, style: str) -> None:
        self._styles[group] = style


def iter_cells(
    line: AttributedLine,
    width: int | None = None,
    offset: int = 0,
    tabstop: int = DEFAULT_TABSTOP,
) -> Iterator[tuple[str, HLGroup]]:
    """Yield ``(char, group)`` for each printed cell.

    With a *width*, exactly *width* cells are produced starting at visible
    column *offset*: a tab straddling the offset leaves blank padding, and
    short lines are padded in the line's final group.  Without a width the
    whole line is produced from column 0 with no padding.

    A wide character takes two cells: the character itself followed by an
    empty continuation cell.  One cut by the offset or by the right edge is
    replaced by blank padding.
    """
    text = line.text
    marks = line.marks
    n = len(text)
    nmarks = len(marks)
    mi = 0
    group = HLGroup.TEXT
    i = 0
    col = 0

    # Skip to the offset, keeping the active group current.
    while i < n and col < offset:
        while mi < nmarks and marks[mi].offset <= i:
            group = marks[mi].group
            mi += 1
        if text[i] == "\t":
            col += tabstop - col % tabstop
        else:
            col += char_width(text[i])
        i += 1

    p = 0
    pad = col - offset
    while p < pad and (width is None or p < width):
        yield " ", group
        p += 1

    while i < n and (width is None or p < width):
        while mi < nmarks and marks[mi].offset <= i:
            group = marks[mi].group
            mi += 1
        ch = text[i]
        if ch == "\t":
            while True:
                yield " ", group
                p += 1
                if (p + offset) % tabstop == 0 or (width is not None and p >= width):
                    break
        elif char_width(ch) == 2:
            if width is not None and p + 2 > width:
                break
            yield ch, group
            yield "", group
            p += 2
        else:
            yield ch, group
            p += 1
        i += 1

    if width is None:
        return
    if i >= n:
        while mi < nmarks:
            group = marks[mi].group
            mi += 1
    while p < width:
        yield " ", group
        p += 1


def _to_text(cells: Iterator[tuple[str, HLGroup]], styles: StyleTable) -> Text:
    result = Text(end="", no_wrap=True)
    chars: list[str] = []
    current: HLGroup | None = None
    for ch, group in cells:
        if group is not current and chars:
            result.append("".join(chars), style=styles.attribute_for(current))
            chars = []
        current = group
        chars.append(ch)
    if chars:
        result.append("".join(chars), style=styles.attribute_for(current))
    return result


def render(
    line: AttributedLine,
    width: int,
    offset: int = 0,
    styles: StyleTable | None = None,
    tabstop: int = DEFAULT_TABSTOP,
) -> Text:
    """Render exactly *width* cells of *line* starting at column *offset*."""
    return _to_text(iter_cells(line, width, offset, tabstop), styles or StyleTable())


def render_line(
    line: AttributedLine,
    styles: StyleTable | None = None,
    tabstop: int = DEFAULT_TABSTOP,
) -> Text:
    """Render the whole line with no clipping and no padding."""
    return _to_text(iter_cells(line, None, 0, tabstop), styles or StyleTable())
