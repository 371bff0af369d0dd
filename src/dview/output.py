"""Regex classification of debugger output (paths, frame numbers, hex)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from dview.attrs import AttributedLine, HLGroup, PatternCompileError
from dview.session import SessionFlags

# Order is precedence: the first alternative that matches at a position wins.
GDB_PATTERNS: tuple[tuple[str, str, HLGroup], ...] = (
    ("path", r"[^\s()\[\]{}<>\"',;]*/[^\s()\[\]{}<>\"',;:]*(?::\d+)?", HLGroup.PATH),
    ("frame", r"#\d+", HLGroup.BACKTRACE_FRAME),
    ("hex", r"0[xX][0-9A-Fa-f]+", HLGroup.HEX),
)


def merge_patterns(patterns: tuple[tuple[str, str, HLGroup], ...]) -> str:
    return "|".join(f"(?P<{name}>{regex})" for name, regex, _group in patterns)


@dataclass(frozen=True)
class ClassificationSpan:
    group: HLGroup
    start: int
    end: int  # exclusive


class GdbHighlighter:
    """Colours one chunk of debugger output at a time.

    The merged pattern is compiled once per instance and reused for every
    chunk.
    """

    def __init__(
        self, patterns: tuple[tuple[str, str, HLGroup], ...] = GDB_PATTERNS
    ) -> None:
        self._groups: dict[str, HLGroup] = {name: group for name, _, group in patterns}
        self.merged_regex: str = merge_patterns(patterns)
        try:
            self._re = re.compile(self.merged_regex)
        except re.error as exc:
            raise PatternCompileError(str(exc)) from exc

    def _group_for(self, match: re.Match[str]) -> HLGroup:
        for name, value in match.groupdict().items():
            if value:
                return self._groups[name]
        return HLGroup.TEXT

    def classify(self, text: str) -> list[ClassificationSpan]:
        """Split *text* into ordered, non-overlapping, non-empty spans."""
        spans: list[ClassificationSpan] = []
        emitted = 0
        cursor = 0
        n = len(text)
        while cursor <= n:
            m = self._re.search(text, cursor)
            if m is None:
                break
            start, end = m.span()
            if end == start:
                cursor = start + 1
                continue
            if start > emitted:
                spans.append(ClassificationSpan(HLGroup.TEXT, emitted, start))
            spans.append(ClassificationSpan(self._group_for(m), start, end))
            emitted = cursor = end
        if emitted < n:
            spans.append(ClassificationSpan(HLGroup.TEXT, emitted, n))
        return spans

    def highlight(
        self, text: str, flags: SessionFlags | None = None
    ) -> AttributedLine:
        if not text or (flags is not None and flags.suppress_highlighting):
            return AttributedLine.plain(text)
        runs = [(text[s.start : s.end], s.group) for s in self.classify(text)]
        if runs[-1][1] is not HLGroup.TEXT:
            runs.append(("", HLGroup.TEXT))
        return AttributedLine.from_runs(runs)
