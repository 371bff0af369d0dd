"""Incremental and permanent regex search over attributed lines."""

from __future__ import annotations

import logging
import re
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum, auto
from typing import Sequence

from dview.attrs import AttributedLine, HLGroup, Mark, PatternCompileError, as_line
from dview.session import SessionFlags

logger = logging.getLogger(__name__)


class InvalidRangeError(ValueError):
    """A segment range lies outside the line or is inverted."""


class Direction(Enum):
    FORWARD = auto()
    REVERSE = auto()


class SearchMode(Enum):
    INCREMENTAL = auto()  # show the match, keep the anchor
    PERMANENT = auto()  # commit the match as the new anchor


class SearchStatus(Enum):
    FOUND = auto()
    NOT_FOUND = auto()
    RESET = auto()  # empty pattern: back to the committed row


@dataclass
class SearchState:
    """The last committed match; every search starts from here."""

    row: int = 0
    col_begin: int = 0
    col_end: int = 0
    direction: Direction = Direction.FORWARD
    ignorecase: bool = False


@dataclass(frozen=True)
class SearchResult:
    status: SearchStatus
    selected_row: int
    match: tuple[int, int, int] | None = None  # (row, start, end)
    line: AttributedLine | None = None  # transient highlight (incremental only)

    @property
    def found(self) -> bool:
        return self.status is SearchStatus.FOUND


def compile_pattern(pattern: str, ignorecase: bool = False) -> re.Pattern[str]:
    try:
        return re.compile(pattern, re.IGNORECASE if ignorecase else 0)
    except re.error as exc:
        raise PatternCompileError(str(exc)) from exc


def highlight_segment(line: AttributedLine, start: int, end: int) -> AttributedLine:
    """Return *line* with ``[start, end)`` overlaid by the search group.

    Directives inside the segment are absorbed; the group they leave in
    effect is restored at *end*.
    """
    length = len(line.text)
    if start < 0 or end < 0 or start > end or end > length:
        raise InvalidRangeError(
            f"segment [{start}, {end}) invalid for line of length {length}"
        )
    restore = line.group_at(end)
    marks = [m for m in line.marks if m.offset <= start]
    marks.append(Mark(start, HLGroup.SEARCH))
    marks.append(Mark(end, restore))
    marks.extend(m for m in line.marks if m.offset > end)
    return AttributedLine(line.text, tuple(marks))


def _forward(
    regex: re.Pattern[str], texts: list[str], anchor: int, col: int, wrapscan: bool
) -> tuple[int, int, int] | None:
    for row in range(anchor, len(texts)):
        text = texts[row]
        start = 0
        if row == anchor:
            if col >= len(text):
                continue
            start = col
        m = regex.search(text, start)
        if m:
            return row, m.start(), m.end()

    if not wrapscan:
        return None
    for row in range(0, anchor + 1):
        m = regex.search(texts[row])
        if m:
            return row, m.start(), m.end()
    return None


def _rightmost(
    regex: re.Pattern[str], text: str, limit: int
) -> re.Match[str] | None:
    """Match with the greatest start column ``<= limit`` (and inside the text)."""
    limit = min(limit, len(text) - 1)
    if limit < 0:
        return None
    matches: list[re.Match[str]] = []
    pos = 0
    while pos <= limit:
        m = regex.search(text, pos)
        if m is None or m.start() > limit:
            break
        matches.append(m)
        pos = m.start() + 1
    idx = bisect_right([m.start() for m in matches], limit)
    return matches[idx - 1] if idx else None


def _reverse(
    regex: re.Pattern[str], texts: list[str], anchor: int, col: int, wrapscan: bool
) -> tuple[int, int, int] | None:
    for row in range(anchor, -1, -1):
        text = texts[row]
        limit = col - 1 if row == anchor else len(text) - 1
        m = _rightmost(regex, text, limit)
        if m:
            return row, m.start(), m.end()

    if not wrapscan:
        return None
    for row in range(len(texts) - 1, anchor - 1, -1):
        text = texts[row]
        m = _rightmost(regex, text, len(text) - 1)
        if m:
            return row, m.start(), m.end()
    return None


def search(
    pattern: str,
    lines: Sequence[AttributedLine | str],
    state: SearchState,
    direction: Direction | None = None,
    mode: SearchMode = SearchMode.INCREMENTAL,
    ignorecase: bool | None = None,
    *,
    wrapscan: bool = True,
    flags: SessionFlags | None = None,
) -> SearchResult:
    """Find the next match of *pattern* relative to the committed *state*.

    Forward searches resume at ``state.col_end`` on the anchor row; reverse
    searches take the rightmost match starting before ``state.col_begin``.
    With *wrapscan* the scan continues from the opposite end of the buffer,
    finishing on the anchor row itself.

    Only a PERMANENT match updates *state*.  An INCREMENTAL match returns a
    transient copy of the matched line with the match highlighted.

    Raises PatternCompileError for malformed patterns (state untouched).
    """
    if direction is None:
        direction = state.direction
    if ignorecase is None:
        ignorecase = state.ignorecase

    if not pattern or (flags is not None and flags.suppress_highlighting):
        return SearchResult(SearchStatus.RESET, state.row)

    try:
        regex = compile_pattern(pattern, ignorecase)
    except PatternCompileError as exc:
        logger.debug("invalid search pattern %r: %s", pattern, exc)
        raise

    attributed = [as_line(line) for line in lines]
    texts = [line.text for line in attributed]
    if not texts:
        return SearchResult(SearchStatus.NOT_FOUND, state.row)

    anchor = max(0, min(state.row, len(texts) - 1))
    if direction is Direction.FORWARD:
        found = _forward(regex, texts, anchor, state.col_end, wrapscan)
    else:
        found = _reverse(regex, texts, anchor, state.col_begin, wrapscan)

    if found is None:
        return SearchResult(SearchStatus.NOT_FOUND, state.row)

    row, start, end = found
    if mode is SearchMode.PERMANENT:
        state.row = row
        state.col_begin = start
        state.col_end = end
        state.direction = direction
        state.ignorecase = ignorecase
        return SearchResult(SearchStatus.FOUND, row, found)

    return SearchResult(
        SearchStatus.FOUND, row, found, highlight_segment(attributed[row], start, end)
    )
