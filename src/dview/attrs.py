"""Attributed text: visible characters tagged with highlight-group directives.

A line is held as its visible text plus an ordered tuple of :class:`Mark`
directives in logical coordinates.  A mark switches the active group from its
offset onward; several marks at one offset are legal and the last one wins.
Every line implicitly starts in :attr:`HLGroup.TEXT`.

The same information can be serialised into the directive stream consumed by
older front ends: a sentinel character followed by one group-id character,
interleaved with the visible text.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Iterator


class HLGroup(Enum):
    TEXT = auto()
    KEYWORD = auto()
    TYPE = auto()
    LITERAL = auto()
    COMMENT = auto()
    DIRECTIVE = auto()
    PATH = auto()
    BACKTRACE_FRAME = auto()
    HEX = auto()
    SEARCH = auto()


SENTINEL = "\x7f"

_GROUP_BY_ID = {chr(group.value): group for group in HLGroup}


class AttributeEncodingError(ValueError):
    """Malformed directive stream, unknown group id or unencodable text."""


class PatternCompileError(ValueError):
    """A search or classification pattern could not be compiled."""


def encode_directive(group: HLGroup) -> str:
    """Return the two-character directive that switches to *group*."""
    if not isinstance(group, HLGroup):
        raise AttributeEncodingError(f"not a highlight group: {group!r}")
    return SENTINEL + chr(group.value)


def _group_for_id(gid: str) -> HLGroup:
    group = _GROUP_BY_ID.get(gid)
    if group is None:
        raise AttributeEncodingError(f"unknown highlight group id {ord(gid)}")
    return group


def _scan(stream: str) -> Iterator[tuple[str, HLGroup | None]]:
    """Yield ``(run, None)`` for visible runs and ``("", group)`` for directives."""
    i = 0
    n = len(stream)
    while i < n:
        j = stream.find(SENTINEL, i)
        if j == -1:
            yield stream[i:], None
            return
        if j > i:
            yield stream[i:j], None
        if j + 1 >= n:
            raise AttributeEncodingError("dangling directive sentinel at end of stream")
        yield "", _group_for_id(stream[j + 1])
        i = j + 2


def decode(stream: str) -> Iterator[tuple[str, HLGroup]]:
    """Decode a directive stream into ``(visible_run, active_group)`` pairs.

    Consecutive directives only update the active group; no empty runs are
    produced.
    """
    group = HLGroup.TEXT
    for run, directive in _scan(stream):
        if directive is not None:
            group = directive
        else:
            yield run, group


def strip(stream: str) -> str:
    """Return the visible text of a directive stream."""
    return "".join(run for run, _group in decode(stream))


@dataclass(frozen=True)
class Mark:
    offset: int  # logical offset, 0..len(text)
    group: HLGroup


@dataclass(frozen=True)
class Span:
    start: int
    end: int  # exclusive
    group: HLGroup


@dataclass(frozen=True)
class AttributedLine:
    """Visible text plus group directives in logical coordinates."""

    text: str = ""
    marks: tuple[Mark, ...] = ()
    _offsets: tuple[int, ...] = field(
        default=(), init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        marks = tuple(self.marks)
        last = 0
        length = len(self.text)
        for mark in marks:
            if not isinstance(mark.group, HLGroup):
                raise AttributeEncodingError(
                    f"not a highlight group: {mark.group!r}"
                )
            if mark.offset < last or mark.offset > length:
                raise AttributeEncodingError(
                    f"mark offset {mark.offset} out of order or beyond {length}"
                )
            last = mark.offset
        object.__setattr__(self, "marks", marks)
        object.__setattr__(self, "_offsets", tuple(m.offset for m in marks))

    # -- Construction ------------------------------------------------------

    @classmethod
    def plain(cls, text: str) -> AttributedLine:
        return cls(text)

    @classmethod
    def from_runs(cls, runs: Iterable[tuple[str, HLGroup]]) -> AttributedLine:
        """Build a line from ``(run, group)`` pairs; empty runs keep their mark."""
        parts: list[str] = []
        marks: list[Mark] = []
        offset = 0
        for run, group in runs:
            marks.append(Mark(offset, group))
            parts.append(run)
            offset += len(run)
        return cls("".join(parts), tuple(marks))

    @classmethod
    def decode_stream(cls, stream: str) -> AttributedLine:
        """Parse a sentinel-encoded directive stream."""
        parts: list[str] = []
        marks: list[Mark] = []
        offset = 0
        for run, directive in _scan(stream):
            if directive is not None:
                marks.append(Mark(offset, directive))
            else:
                parts.append(run)
                offset += len(run)
        return cls("".join(parts), tuple(marks))

    def encode(self) -> str:
        """Serialise into the sentinel directive stream."""
        if SENTINEL in self.text:
            raise AttributeEncodingError(
                "visible text contains the directive sentinel"
            )
        out: list[str] = []
        pos = 0
        for mark in self.marks:
            out.append(self.text[pos : mark.offset])
            out.append(encode_directive(mark.group))
            pos = mark.offset
        out.append(self.text[pos:])
        return "".join(out)

    # -- Queries -----------------------------------------------------------

    def __len__(self) -> int:
        return len(self.text)

    def __str__(self) -> str:
        return self.text

    def group_at(self, offset: int) -> HLGroup:
        """Group in effect for the character at *offset*."""
        idx = bisect_right(self._offsets, offset)
        return self.marks[idx - 1].group if idx else HLGroup.TEXT

    @property
    def final_group(self) -> HLGroup:
        return self.marks[-1].group if self.marks else HLGroup.TEXT

    def spans(self) -> list[Span]:
        """Contiguous non-empty runs covering the whole text."""
        result: list[Span] = []
        group = HLGroup.TEXT
        start = 0
        for mark in self.marks:
            if mark.offset > start:
                result.append(Span(start, mark.offset, group))
                start = mark.offset
            group = mark.group
        if start < len(self.text):
            result.append(Span(start, len(self.text), group))
        return result

    def runs(self) -> Iterator[tuple[str, HLGroup]]:
        for span in self.spans():
            yield self.text[span.start : span.end], span.group


def as_line(line: AttributedLine | str) -> AttributedLine:
    return line if isinstance(line, AttributedLine) else AttributedLine.plain(line)
