"""Tests for the SourceViewer and ScrollerView widgets."""

from types import SimpleNamespace

from dview.attrs import HLGroup
from dview.config import ViewerConfig
from dview.scroller import ScrollerView
from dview.session import SessionFlags
from dview.source import SourceHighlighter
from dview.source_view import SourceViewer, ViewerMode

C_SAMPLE = """#include <stdio.h>
int main(void) {
    return 0; /* done */
}
"""

ENTER = SimpleNamespace(key="enter", character="\r")
ESCAPE = SimpleNamespace(key="escape", character="\x1b")
BACKSPACE = SimpleNamespace(key="backspace", character="\x08")


def _key(char, key=None):
    return SimpleNamespace(key=key or char, character=char)


def _viewer(text=C_SAMPLE, **kwargs):
    source = SourceHighlighter().highlight("demo.c", text)
    return SourceViewer(source, **kwargs)


def _numbered(n):
    return "".join(f"line {i}\n" for i in range(n))


def _type(widget, text):
    for ch in text:
        widget._handle_search(_key(ch))


class TestSourceViewerBasic:
    def test_init_empty(self):
        viewer = SourceViewer()
        assert len(viewer.lines) == 1
        assert viewer.lines[0].text == ""
        assert viewer.source is None

    def test_init_with_source(self):
        viewer = _viewer()
        assert [line.text for line in viewer.lines] == C_SAMPLE.splitlines()
        assert viewer.cursor_row == 0
        assert viewer.lines[1].group_at(0) is HLGroup.TYPE

    def test_open_file(self, tmp_path):
        path = tmp_path / "x.c"
        path.write_text("int x;\n", encoding="utf-8")
        viewer = SourceViewer()
        assert viewer.open_file(path) is True
        assert viewer.lines[0].text == "int x;"
        assert viewer.status_msg == '"x.c" 1L'

    def test_open_missing_file(self, tmp_path):
        """A failed open reports on the status line and keeps the current file."""
        viewer = _viewer()
        assert viewer.open_file(tmp_path / "nope.c") is False
        assert viewer.status_msg.startswith("Cannot open")
        assert viewer.lines[0].text == "#include <stdio.h>"


class TestSourceViewerMovement:
    def test_down_up(self):
        viewer = _viewer()
        viewer._handle_normal(_key("j"))
        viewer._handle_normal(_key("j"))
        assert viewer.cursor_row == 2
        viewer._handle_normal(_key(None, "up"))
        assert viewer.cursor_row == 1

    def test_clamped(self):
        """The cursor never moves past the last line."""
        viewer = _viewer()
        for _ in range(10):
            viewer._handle_normal(_key("j"))
        viewer._clamp_cursor()
        assert viewer.cursor_row == 3

    def test_G_and_gg(self):
        viewer = _viewer(_numbered(100))
        viewer._handle_normal(_key("G"))
        assert viewer.cursor_row == 99
        viewer._handle_normal(_key("g"))
        assert viewer.pending == "g"
        viewer._handle_normal(_key("g"))
        assert viewer.cursor_row == 0
        assert viewer.pending == ""

    def test_page_down(self):
        """Page keys move a whole window; ctrl+u moves half of one."""
        viewer = _viewer(_numbered(100))
        viewer._visible_height = lambda: 10
        viewer._handle_normal(_key(None, "ctrl+f"))
        assert viewer.cursor_row == 10
        viewer._handle_normal(_key(None, "ctrl+u"))
        assert viewer.cursor_row == 5

    def test_horizontal_scroll(self):
        viewer = _viewer()
        viewer._handle_normal(_key("l"))
        viewer._handle_normal(_key("l"))
        assert viewer.col_offset == 2
        viewer._handle_normal(_key("h"))
        assert viewer.col_offset == 1
        viewer._handle_normal(_key("0"))
        assert viewer.col_offset == 0

    def test_horizontal_scroll_clamped(self):
        """The column offset stops at the widest line."""
        viewer = _viewer("ab\n")
        for _ in range(5):
            viewer._handle_normal(_key("l"))
        viewer._clamp_cursor()
        assert viewer.col_offset == 2


class TestSourceViewerCommands:
    """Ex commands typed after a colon."""

    def test_enter_command_mode(self):
        viewer = _viewer()
        viewer._handle_normal(_key(":"))
        assert viewer._mode == ViewerMode.COMMAND
        for ch in "set ic":
            viewer._handle_command(_key(ch))
        viewer._handle_command(ENTER)
        assert viewer._mode == ViewerMode.NORMAL
        assert viewer.config.ignorecase is True

    def test_escape_cancels(self):
        viewer = _viewer()
        viewer._handle_normal(_key(":"))
        viewer._handle_command(_key("q"))
        viewer._handle_command(ESCAPE)
        assert viewer._mode == ViewerMode.NORMAL
        assert viewer.command_buffer == ""

    def test_backspace_on_empty_leaves(self):
        viewer = _viewer()
        viewer._handle_normal(_key(":"))
        viewer._handle_command(BACKSPACE)
        assert viewer._mode == ViewerMode.NORMAL

    def test_line_jump(self):
        """A :N jump puts the line a third of the way down the window."""
        viewer = _viewer(_numbered(100))
        viewer._visible_height = lambda: 30
        viewer._exec_command("50")
        assert viewer.cursor_row == 49
        assert viewer._scroll_top == 49 - int(30 * 0.33)

    def test_line_jump_past_end(self):
        viewer = _viewer()
        viewer._exec_command("999")
        assert viewer.cursor_row == 3

    def test_dollar(self):
        viewer = _viewer(_numbered(20))
        viewer._exec_command("$")
        assert viewer.cursor_row == 19

    def test_set_several(self):
        config = ViewerConfig()
        viewer = _viewer(config=config)
        viewer._exec_command("set ts=4 hls nows")
        assert (config.tabstop, config.hlsearch, config.wrapscan) == (4, True, False)

    def test_set_error(self):
        viewer = _viewer()
        viewer._exec_command("set bogus")
        assert viewer.status_msg == "Unknown option: bogus"

    def test_edit(self, tmp_path):
        path = tmp_path / "b.py"
        path.write_text("pass\n", encoding="utf-8")
        viewer = _viewer()
        viewer._exec_command(f"e {path}")
        assert viewer.lines[0].text == "pass"

    def test_unknown_command(self):
        viewer = _viewer()
        viewer._exec_command("frobnicate")
        assert viewer.status_msg == "Not an editor command: frobnicate"


class TestSourceViewerSearch:
    """/ ? n N in the source window."""

    def test_incremental_then_commit(self):
        """Typing moves to each match; Enter commits it and records history."""
        viewer = _viewer()
        viewer._handle_normal(_key("/"))
        assert viewer._mode == ViewerMode.SEARCH
        _type(viewer, "ret")
        assert viewer.cursor_row == 2
        assert viewer._search_state.row == 0
        row, line = viewer._search_highlight
        assert row == 2
        assert line.group_at(4) is HLGroup.SEARCH

        viewer._handle_search(ENTER)
        assert viewer._mode == ViewerMode.NORMAL
        assert viewer._search_highlight is None
        assert (viewer._search_state.row, viewer._search_state.col_begin) == (2, 4)
        assert viewer._search_history == ["ret"]
        assert viewer.status_msg == "/ret"

    def test_escape_reverts(self):
        """Escape drops the transient match and returns to the committed row."""
        viewer = _viewer()
        viewer._handle_normal(_key("/"))
        _type(viewer, "}")
        assert viewer.cursor_row == 3
        viewer._handle_search(ESCAPE)
        assert viewer.cursor_row == 0
        assert viewer._search_highlight is None
        assert viewer._mode == ViewerMode.NORMAL

    def test_backspace_reruns(self):
        """Backspace shortens the pattern and searches again."""
        viewer = _viewer()
        viewer._handle_normal(_key("/"))
        _type(viewer, "mx")
        assert viewer.status_msg == "Pattern not found: mx"
        viewer._handle_search(BACKSPACE)
        assert viewer._search_buffer == "m"
        assert viewer.cursor_row == 1

    def test_invalid_pattern(self):
        viewer = _viewer()
        viewer._handle_normal(_key("/"))
        _type(viewer, "(")
        assert viewer.status_msg.startswith("Invalid pattern:")
        assert viewer.cursor_row == 0

    def test_reverse_search(self):
        viewer = _viewer()
        viewer.cursor_row = 3
        viewer._search_state.row = 3
        viewer._handle_normal(_key("?"))
        _type(viewer, "in")
        viewer._handle_search(ENTER)
        assert viewer.cursor_row == 1
        assert viewer.status_msg == "?in"

    def test_next_and_previous(self):
        viewer = _viewer(_numbered(5))
        viewer._handle_normal(_key("/"))
        _type(viewer, "line")
        viewer._handle_search(ENTER)
        assert viewer.cursor_row == 0
        viewer._handle_normal(_key("n"))
        assert viewer.cursor_row == 1
        viewer._handle_normal(_key("n"))
        assert viewer.cursor_row == 2
        viewer._handle_normal(_key("N"))
        assert viewer.cursor_row == 1

    def test_next_wraps(self):
        """n from the last match wraps to the top."""
        viewer = _viewer(_numbered(3))
        viewer._exec_command("3")
        viewer._search_state.row = 2
        viewer._search_pattern = "line"
        viewer._handle_normal(_key("n"))
        assert viewer.cursor_row == 2
        viewer._handle_normal(_key("n"))
        assert viewer.cursor_row == 0

    def test_search_starts_from_cursor(self):
        """A new search starts at the selected line; escape returns to it."""
        lines = ["needle" if i in (30, 61) else f"line {i}" for i in range(62)]
        viewer = _viewer("\n".join(lines) + "\n")
        for _ in range(40):
            viewer._handle_normal(_key("j"))
        viewer._handle_normal(_key("/"))
        _type(viewer, "needle")
        assert viewer.cursor_row == 61
        viewer._handle_search(ESCAPE)
        assert viewer.cursor_row == 40

    def test_next_after_moving_cursor(self):
        viewer = _viewer(_numbered(10))
        viewer._handle_normal(_key("/"))
        _type(viewer, "line [13]")
        viewer._handle_search(ENTER)
        assert viewer.cursor_row == 1
        viewer._exec_command("6")
        viewer._handle_normal(_key("n"))
        assert viewer.cursor_row == 1
        viewer._exec_command("2")
        viewer._handle_normal(_key("n"))
        assert viewer.cursor_row == 3

    def test_next_without_pattern(self):
        viewer = _viewer()
        viewer._handle_normal(_key("n"))
        assert viewer.status_msg == "No previous search"

    def test_ignorecase_option(self):
        viewer = _viewer()
        viewer.config.ignorecase = True
        viewer._handle_normal(_key("/"))
        _type(viewer, "RETURN")
        assert viewer.cursor_row == 2

    def test_suppressed_search(self):
        """Search does nothing while the debugger prompt is active."""
        viewer = _viewer(session_flags=SessionFlags(misc_prompt=True))
        viewer._handle_normal(_key("/"))
        _type(viewer, "ret")
        assert viewer.cursor_row == 0
        assert viewer.status_msg == ""

    def test_history_navigation(self):
        """Up and down walk the history and search as they go."""
        viewer = _viewer()
        viewer._search_history = ["main", "ret"]
        viewer._handle_normal(_key("/"))
        viewer._handle_search(_key(None, "up"))
        assert viewer._search_buffer == "main"
        assert viewer.cursor_row == 1
        viewer._handle_search(_key(None, "up"))
        assert viewer._search_buffer == "ret"
        viewer._handle_search(_key(None, "down"))
        assert viewer._search_buffer == "main"
        viewer._handle_search(_key(None, "down"))
        assert viewer._search_buffer == ""

    def test_history_bounded(self):
        viewer = _viewer()
        for i in range(60):
            viewer._add_to_search_history(f"p{i}")
        viewer._add_to_search_history("p59")
        assert len(viewer._search_history) == 50
        assert viewer._search_history[0] == "p59"
        assert viewer._search_history.count("p59") == 1

    def test_hlsearch_keeps_match_highlighted(self):
        """With hlsearch only the committed match stays highlighted."""
        viewer = _viewer()
        viewer.config.hlsearch = True
        viewer._handle_normal(_key("/"))
        _type(viewer, "main")
        viewer._handle_search(ENTER)
        line = viewer._line_for_display(1, viewer.lines[1])
        assert line.group_at(4) is HLGroup.SEARCH
        assert viewer._line_for_display(0, viewer.lines[0]) is viewer.lines[0]


class TestSourceViewerRender:
    def test_rows(self):
        viewer = _viewer()
        text = viewer._render_rows(40, 8)
        rows = text.plain.split("\n")
        assert rows[0].startswith("  1> #include <stdio.h>")
        assert rows[1].startswith("  2  int main(void) {")
        assert rows[4].strip() == "~"
        assert "NORMAL" in rows[6]
        assert "demo.c" in rows[6]

    def test_rows_fill_width(self):
        """Every source row is padded to the full width."""
        viewer = _viewer()
        rows = viewer._render_rows(40, 8).plain.split("\n")
        assert all(len(row) == 40 for row in rows[:4])

    def test_search_prompt(self):
        viewer = _viewer()
        viewer._handle_normal(_key("?"))
        _type(viewer, "in")
        rows = viewer._render_rows(40, 8).plain.split("\n")
        assert rows[-1].startswith("?in")

    def test_too_small(self):
        assert _viewer()._render_rows(5, 2).plain == "(too small)"

    def test_cursor_kept_visible(self):
        viewer = _viewer(_numbered(100))
        viewer.cursor_row = 50
        viewer._render_rows(40, 12)
        assert viewer._scroll_top <= 50 < viewer._scroll_top + 10


class TestScrollerView:
    """The debugger output window."""

    def test_feed(self):
        view = ScrollerView()
        view.feed("one\ntwo\n")
        assert [line.text for line in view.store.lines()] == ["one", "two", ""]

    def test_feed_highlights(self):
        view = ScrollerView()
        view.feed(b"#0  0x0000555555555149 in main () at demo/main.c:5\n")
        line = view.store.line_at(0)
        assert line.group_at(0) is HLGroup.BACKTRACE_FRAME
        assert line.group_at(line.text.index("demo/")) is HLGroup.PATH

    def test_feed_suppressed(self):
        """Output arriving while sources are listed is left uncoloured."""
        view = ScrollerView(session_flags=SessionFlags(listing_sources=True))
        view.feed("/usr/src/a.c, /usr/src/b.c\n")
        assert view.store.line_at(0).marks == ()

    def test_output_tabs_ignore_tabstop(self):
        """Raw output always expands tabs to 8 columns, whatever ts is set to."""
        config = ViewerConfig()
        view = ScrollerView(config=config)
        config.set_option("ts=4")
        view.feed("a\tb\n")
        assert view.store.line_at(0).text == "a" + " " * 7 + "b"

    def test_render_rows(self):
        view = ScrollerView()
        view.feed("one\ntwo\n")
        rows = view._render_rows(10, 4).plain.split("\n")
        assert rows[:3] == ["one       ", "two       ", " " * 10]
        assert "NORMAL" in rows[3]

    def test_render_rows_marks_insertion_point(self):
        """The insertion point after a prompt is drawn in reverse video."""
        view = ScrollerView()
        view.feed("(gdb) ")
        text = view._render_rows(10, 2)
        assert any(
            str(span.style) == "reverse" and (span.start, span.end) == (6, 7)
            for span in text.spans
        )

    def test_render_rows_wraps(self):
        """A long output line wraps over several rows."""
        view = ScrollerView()
        view.feed("abcdefghij")
        rows = view._render_rows(4, 4).plain.split("\n")
        assert rows[:3] == ["abcd", "efgh", "ij  "]

    def test_scroll_keys(self):
        view = ScrollerView()
        view.feed("a\nb\nc")
        view._handle_normal(_key("k"))
        assert view.store.row == 1
        view._handle_normal(_key(None, "home"))
        assert view.store.row == 0
        view._handle_normal(_key("G"))
        assert view.store.row == 2

    def test_search_and_escape(self):
        """Escape returns to the bottom row the search started from."""
        view = ScrollerView()
        view.feed("one\ntwo\n")
        view._handle_normal(_key("/"))
        assert view._mode == ViewerMode.SEARCH
        _type(view, "one")
        assert view.store.row == 0
        assert view._search_highlight[0] == 0
        view._handle_search(ESCAPE)
        assert view.store.row == 2
        assert view._mode == ViewerMode.NORMAL

    def test_search_commit_and_next(self):
        view = ScrollerView()
        view.feed("x 1\ny\nx 2\n")
        view._handle_normal(_key("/"))
        _type(view, "x")
        view._handle_search(ENTER)
        assert view.store.row == 0
        view._handle_normal(_key("n"))
        assert view.store.row == 2
        assert view.status_msg == "/x"
