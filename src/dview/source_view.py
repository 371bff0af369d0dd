"""Source window widget: highlighted file, line selection and search."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path

from rich.text import Text
from textual import events
from textual.message import Message
from textual.widget import Widget

from dview._search import SearchMixin
from dview.attrs import AttributedLine
from dview.config import ConfigError, ViewerConfig
from dview.render import StyleTable, render
from dview.search import SearchState
from dview.session import SessionFlags
from dview.source import SourceFile, SourceHighlighter


class ViewerMode(Enum):
    NORMAL = auto()
    COMMAND = auto()
    SEARCH = auto()


MODE_STYLE = {
    ViewerMode.NORMAL: "bold white on dark_green",
    ViewerMode.COMMAND: "bold white on dark_red",
    ViewerMode.SEARCH: "bold white on dark_magenta",
}


class SourceViewer(SearchMixin, Widget, can_focus=True):
    """A read-only source window.

    Supported keys:
      NORMAL: j k  PgUp/PgDn ^F ^B ^D ^U  gg G  h l 0  / ? n N  :
      COMMAND: :<num>  :$  :set <opt>...  :e <file>  :q
    """

    DEFAULT_CSS = """
    SourceViewer {
        height: 2fr;
        background: $surface;
    }
    """

    @dataclass
    class Quit(Message):
        pass

    def __init__(
        self,
        source: SourceFile | None = None,
        *,
        config: ViewerConfig | None = None,
        style_table: StyleTable | None = None,
        session_flags: SessionFlags | None = None,
        source_highlighter: SourceHighlighter | None = None,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self.config: ViewerConfig = config or ViewerConfig()
        self.style_table: StyleTable = style_table or StyleTable()
        self.session_flags: SessionFlags = session_flags or SessionFlags()
        self.source_highlighter = source_highlighter or SourceHighlighter()
        self.source: SourceFile | None = None
        self.lines: list[AttributedLine] = [AttributedLine()]
        self.cursor_row: int = 0
        self.col_offset: int = 0
        self._scroll_top: int = 0
        self._mode: ViewerMode = ViewerMode.NORMAL
        self.command_buffer: str = ""
        self.pending: str = ""
        self.status_msg: str = ""
        self._search_state = SearchState()
        self._init_search()
        if source is not None:
            self.set_source(source)

    @property
    def flags(self) -> SessionFlags:
        return self.session_flags

    # -- Content -----------------------------------------------------------

    def set_source(self, source: SourceFile) -> None:
        self.source = source
        self.lines = source.lines or [AttributedLine()]
        self.cursor_row = 0
        self.col_offset = 0
        self._scroll_top = 0
        self._search_state = SearchState()
        self._search_highlight = None
        self.refresh()

    def open_file(self, path: str | Path) -> bool:
        try:
            source = self.source_highlighter.load(path)
        except OSError as e:
            self.status_msg = f"Cannot open {path}: {e.strerror or e}"
            return False
        self.set_source(source)
        self.status_msg = f'"{source.path.name}" {len(source.orig_lines)}L'
        return True

    # -- SearchMixin hooks -------------------------------------------------

    def _display_lines(self) -> list[AttributedLine]:
        return self.lines

    def _anchor_row(self) -> int:
        return max(0, min(self.cursor_row, len(self.lines) - 1))

    def _show_row(self, row: int) -> None:
        self.cursor_row = row
        self._clamp_cursor()
        self._scroll_cursor_to_center()

    def _leave_search(self) -> None:
        self._mode = ViewerMode.NORMAL

    # -- Scrolling ---------------------------------------------------------

    def _visible_height(self) -> int:
        return max(1, self.content_region.height - 2)

    def _clamp_cursor(self) -> None:
        self.cursor_row = max(0, min(self.cursor_row, len(self.lines) - 1))
        max_width = self.source.max_width if self.source else 0
        self.col_offset = max(0, min(self.col_offset, max_width))

    def _ensure_cursor_visible(self, vh: int) -> None:
        if self.cursor_row < self._scroll_top:
            self._scroll_top = self.cursor_row
        elif self.cursor_row >= self._scroll_top + vh:
            self._scroll_top = self.cursor_row - vh + 1

    def _scroll_cursor_to_center(self, ratio: float = 0.33) -> None:
        """Scroll so the cursor row sits *ratio* of the way down the window."""
        vh = self._visible_height()
        self._scroll_top = max(0, self.cursor_row - int(vh * ratio))

    # =====================================================================
    # Rendering
    # =====================================================================

    def render(self) -> Text:
        return self._render_rows(self.content_region.width, self.content_region.height)

    def _render_rows(self, width: int, height: int) -> Text:
        if height < 3 or width < 10:
            return Text("(too small)")

        content_height = height - 2
        lines = self.lines
        num_lines = len(lines)
        ln_width = max(3, len(str(num_lines)))
        prefix_w = ln_width + 2
        avail = max(1, width - prefix_w)
        self._ensure_cursor_visible(content_height)

        result = Text()
        for dy in range(content_height):
            idx = self._scroll_top + dy
            if idx >= num_lines:
                result.append(f"{'~':>{ln_width}}\n", style="dim blue")
                continue
            selected = idx == self.cursor_row
            result.append(
                f"{idx + 1:>{ln_width}}", style="bold" if selected else "dim cyan"
            )
            result.append(">" if selected else " ", style="bold green")
            result.append(" ")
            line = self._line_for_display(idx, lines[idx])
            result.append_text(
                render(
                    line, avail, self.col_offset, self.style_table, self.config.tabstop
                )
            )
            result.append("\n")

        # status bar
        mode_label = f" {self._mode.name} "
        result.append(mode_label, style=MODE_STYLE[self._mode])
        pending = f"  {self.pending}" if self.pending else ""
        if pending:
            result.append(pending, style="bold yellow")
        name = str(self.source.path) if self.source else "[no file]"
        pos = f" Ln {self.cursor_row + 1}/{num_lines}, Col {self.col_offset + 1} "
        left = f"  {name}  {self.status_msg}"
        spacer_len = max(0, width - len(mode_label) - len(pending) - len(left) - len(pos))
        result.append(left)
        if spacer_len:
            result.append(" " * spacer_len)
        result.append(pos, style="bold")

        if self._mode == ViewerMode.COMMAND:
            result.append(f"\n:{self.command_buffer}", style="bold yellow")
            result.append(" ", style="reverse")
        elif self._mode == ViewerMode.SEARCH:
            prefix = "/" if self._search_forward else "?"
            result.append(f"\n{prefix}{self._search_buffer}", style="bold magenta")
            result.append(" ", style="reverse")
        else:
            result.append("\n")
        return result

    # =====================================================================
    # Key handling
    # =====================================================================

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()

        if self._mode == ViewerMode.NORMAL:
            self._handle_normal(event)
        elif self._mode == ViewerMode.COMMAND:
            self._handle_command(event)
        elif self._mode == ViewerMode.SEARCH:
            self._handle_search(event)

        self._clamp_cursor()
        self.refresh()

    def _handle_normal(self, event) -> None:
        key = event.key
        char = event.character or ""

        if self.pending:
            pending, self.pending = self.pending, ""
            if pending == "g" and char == "g":
                self.cursor_row = 0
                return

        vh = self._visible_height()
        if char == "j" or key == "down":
            self.cursor_row += 1
        elif char == "k" or key == "up":
            self.cursor_row -= 1
        elif key in ("ctrl+f", "pagedown"):
            self.cursor_row += vh
        elif key in ("ctrl+b", "pageup"):
            self.cursor_row -= vh
        elif key == "ctrl+d":
            self.cursor_row += vh // 2
        elif key == "ctrl+u":
            self.cursor_row -= vh // 2
        elif char == "G" or key == "end":
            self.cursor_row = len(self.lines) - 1
        elif key == "home":
            self.cursor_row = 0
        elif char == "g":
            self.pending = "g"
        elif char == "l" or key == "right":
            self.col_offset += 1
        elif char == "h" or key == "left":
            self.col_offset = max(0, self.col_offset - 1)
        elif char == "0":
            self.col_offset = 0
        elif char in ("/", "?"):
            self._mode = ViewerMode.SEARCH
            self._begin_search(forward=char == "/")
        elif char == "n":
            self._goto_next_match()
        elif char == "N":
            self._goto_next_match(reverse=True)
        elif char == ":":
            self._mode = ViewerMode.COMMAND
            self.command_buffer = ""
            self.status_msg = ""

    def _handle_command(self, event) -> None:
        key = event.key
        char = event.character

        if key == "escape":
            self._mode = ViewerMode.NORMAL
            self.command_buffer = ""
            return

        if key == "enter":
            cmd = self.command_buffer
            self._mode = ViewerMode.NORMAL
            self.command_buffer = ""
            self._exec_command(cmd)
            return

        if key == "backspace":
            if self.command_buffer:
                self.command_buffer = self.command_buffer[:-1]
            else:
                self._mode = ViewerMode.NORMAL
            return

        if char and char.isprintable():
            self.command_buffer += char

    def _exec_command(self, cmd: str) -> None:
        stripped = cmd.strip()
        if not stripped:
            return

        if stripped.isdigit():
            self.cursor_row = max(0, min(int(stripped) - 1, len(self.lines) - 1))
            self._scroll_cursor_to_center()
            return
        if stripped == "$":
            self.cursor_row = len(self.lines) - 1
            self._scroll_cursor_to_center()
            return
        if stripped in ("q", "quit"):
            self.post_message(self.Quit())
            return

        name, _, arg = stripped.partition(" ")
        if name in ("set", "se"):
            try:
                for opt in arg.split():
                    self.config.set_option(opt)
            except ConfigError as e:
                self.status_msg = str(e)
            return
        if name in ("e", "edit"):
            if arg.strip():
                self.open_file(arg.strip())
            else:
                self.status_msg = "No file name"
            return

        self.status_msg = f"Not an editor command: {stripped}"
