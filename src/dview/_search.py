"""Search mixin for the source and output viewers."""

from __future__ import annotations

from dview.attrs import AttributedLine
from dview.search import (
    Direction,
    PatternCompileError,
    SearchMode,
    SearchStatus,
    highlight_segment,
    search,
)


class SearchMixin:
    """Search-related methods shared by SourceViewer and ScrollerView.

    The host provides ``config``, ``flags``, ``status_msg``, ``_search_state``
    and implements ``_display_lines`` / ``_show_row`` / ``_leave_search`` /
    ``_anchor_row``.
    """

    def _init_search(self) -> None:
        self._search_buffer: str = ""
        self._search_pattern: str = ""
        self._search_forward: bool = True  # True for /, False for ?
        self._search_highlight: tuple[int, AttributedLine] | None = None
        self._search_history: list[str] = []
        self._search_history_idx: int = -1
        self._search_history_max: int = 50

    def _sync_search_anchor(self) -> None:
        """Restart from the shown row if the view moved off the last match."""
        state = self._search_state
        row = self._anchor_row()
        if state.row != row:
            state.row = row
            state.col_begin = state.col_end = 0

    def _begin_search(self, forward: bool) -> None:
        self._sync_search_anchor()
        self._search_forward = forward
        self._search_buffer = ""
        self._search_history_idx = -1
        self.status_msg = ""

    def _handle_search(self, event) -> None:
        key = event.key
        char = event.character

        if key == "escape":
            self._search_buffer = ""
            self._search_history_idx = -1
            self._search_highlight = None
            self._show_row(self._search_state.row)
            self.status_msg = ""
            self._leave_search()
            return

        if key == "enter":
            self._search_highlight = None
            if self._search_buffer:
                self._add_to_search_history(self._search_buffer)
                self._search_pattern = self._search_buffer
                self._run_search(self._search_pattern, SearchMode.PERMANENT)
            self._search_history_idx = -1
            self._leave_search()
            return

        if key == "backspace":
            if self._search_buffer:
                self._search_buffer = self._search_buffer[:-1]
                self._search_history_idx = -1
                self._run_search(self._search_buffer, SearchMode.INCREMENTAL)
            else:
                self._search_highlight = None
                self._leave_search()
                self._search_history_idx = -1
            return

        if key == "up":
            self._search_history_prev()
            self._run_search(self._search_buffer, SearchMode.INCREMENTAL)
            return
        if key == "down":
            self._search_history_next()
            self._run_search(self._search_buffer, SearchMode.INCREMENTAL)
            return

        if char and char.isprintable():
            self._search_buffer += char
            self._search_history_idx = -1
            self._run_search(self._search_buffer, SearchMode.INCREMENTAL)

    def _add_to_search_history(self, pattern: str) -> None:
        """Move *pattern* to the front of the history."""
        if not pattern:
            return
        if pattern in self._search_history:
            self._search_history.remove(pattern)
        self._search_history.insert(0, pattern)
        if len(self._search_history) > self._search_history_max:
            self._search_history.pop()

    def _search_history_prev(self) -> None:
        """Recall an older pattern into the prompt."""
        if not self._search_history:
            return
        if self._search_history_idx < len(self._search_history) - 1:
            self._search_history_idx += 1
            self._search_buffer = self._search_history[self._search_history_idx]

    def _search_history_next(self) -> None:
        """Recall a newer pattern, or clear the prompt past the newest."""
        if self._search_history_idx > 0:
            self._search_history_idx -= 1
            self._search_buffer = self._search_history[self._search_history_idx]
        elif self._search_history_idx == 0:
            self._search_history_idx = -1
            self._search_buffer = ""

    def _run_search(
        self, pattern: str, mode: SearchMode, forward: bool | None = None
    ) -> bool:
        """Run one search from the committed state and update the view."""
        if forward is None:
            forward = self._search_forward
        direction = Direction.FORWARD if forward else Direction.REVERSE
        state = self._search_state
        try:
            result = search(
                pattern,
                self._display_lines(),
                state,
                direction,
                mode,
                self.config.ignorecase,
                wrapscan=self.config.wrapscan,
                flags=self.flags,
            )
        except PatternCompileError as e:
            self.status_msg = f"Invalid pattern: {e}"
            self._search_highlight = None
            self._show_row(state.row)
            return False

        self._show_row(result.selected_row)
        if result.line is not None:
            self._search_highlight = (result.selected_row, result.line)
        else:
            self._search_highlight = None

        if result.status is SearchStatus.NOT_FOUND:
            self.status_msg = f"Pattern not found: {pattern}"
            return False
        if result.status is SearchStatus.RESET:
            self.status_msg = ""
            return False
        prefix = "/" if forward else "?"
        self.status_msg = f"{prefix}{pattern}"
        return True

    def _goto_next_match(self, reverse: bool = False) -> None:
        """Repeat the last search (``n``), or in the other direction (``N``)."""
        if not self._search_pattern:
            self.status_msg = "No previous search"
            return
        self._sync_search_anchor()
        forward = self._search_forward != reverse
        self._run_search(self._search_pattern, SearchMode.PERMANENT, forward)

    def _line_for_display(self, row: int, line: AttributedLine) -> AttributedLine:
        """Apply the transient or committed search highlight to *line*."""
        if self._search_highlight is not None and self._search_highlight[0] == row:
            return self._search_highlight[1]
        state = self._search_state
        if (
            self.config.hlsearch
            and self._search_pattern
            and row == state.row
            and state.col_end <= len(line.text)
        ):
            return highlight_segment(line, state.col_begin, state.col_end)
        return line
