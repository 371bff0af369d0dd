"""Output window widget: wrapped, scrollable debugger output."""

from __future__ import annotations

from rich.text import Text
from textual import events
from textual.widget import Widget

from dview._search import SearchMixin
from dview.attrs import AttributedLine
from dview.config import ViewerConfig
from dview.linestore import LineStore
from dview.output import GdbHighlighter
from dview.render import StyleTable, render
from dview.search import SearchState
from dview.session import SessionFlags
from dview.source_view import MODE_STYLE, ViewerMode


class ScrollerView(SearchMixin, Widget, can_focus=True):
    """Debugger output window.

    Lines longer than the window wrap; the viewport is anchored at its
    bottom row, which follows new output until the user scrolls away.

    Supported keys:
      j k  up/down  PgUp/PgDn  home end  / ? n N  escape
    """

    DEFAULT_CSS = """
    ScrollerView {
        height: 1fr;
        background: $panel;
    }
    """

    def __init__(
        self,
        *,
        config: ViewerConfig | None = None,
        style_table: StyleTable | None = None,
        session_flags: SessionFlags | None = None,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self.config: ViewerConfig = config or ViewerConfig()
        self.style_table: StyleTable = style_table or StyleTable()
        self.session_flags: SessionFlags = session_flags or SessionFlags()
        self.output_highlighter = GdbHighlighter()
        self.store = LineStore(classify=self._classify)
        self._mode: ViewerMode = ViewerMode.NORMAL
        self.status_msg: str = ""
        self._search_state = SearchState()
        self._init_search()

    @property
    def flags(self) -> SessionFlags:
        return self.session_flags

    def _classify(self, text: str) -> AttributedLine:
        return self.output_highlighter.highlight(text, self.session_flags)

    def feed(self, data: str | bytes) -> None:
        """Append raw debugger output and jump to the newest line."""
        self.store.append_raw(data)
        self.refresh()

    # -- SearchMixin hooks -------------------------------------------------

    def _display_lines(self) -> list[AttributedLine]:
        return self.store.lines()

    def _anchor_row(self) -> int:
        # searches start from the row shown at the bottom of the window
        return self.store.row

    def _show_row(self, row: int) -> None:
        self.store.scroll_to(row)

    def _leave_search(self) -> None:
        self._mode = ViewerMode.NORMAL

    def _page_height(self) -> int:
        return max(1, self.content_region.height - 1)

    # =====================================================================
    # Rendering
    # =====================================================================

    def render(self) -> Text:
        return self._render_rows(self.content_region.width, self.content_region.height)

    def _render_rows(self, width: int, height: int) -> Text:
        if width < 1 or height < 2:
            return Text("")

        self.store.resize(width)
        rows_height = height - 1
        cursor = self.store.cursor_position(rows_height)
        result = Text()
        for y, entry in enumerate(self.store.viewport(rows_height)):
            if entry is None:
                result.append(" " * width)
            else:
                row, col = entry
                line = self._line_for_display(row, self.store.line_at(row))
                row_text = render(line, width, col, self.style_table, self.config.tabstop)
                if cursor is not None and cursor[0] == y:
                    row_text.stylize("reverse", cursor[1], cursor[1] + 1)
                result.append_text(row_text)
            result.append("\n")

        if self._mode == ViewerMode.SEARCH:
            prefix = "/" if self._search_forward else "?"
            result.append(f"{prefix}{self._search_buffer}", style="bold magenta")
            result.append(" ", style="reverse")
        else:
            label = f" {self._mode.name} "
            result.append(label, style=MODE_STYLE[self._mode])
            result.append(f"  {self.status_msg}")
        return result

    # =====================================================================
    # Key handling
    # =====================================================================

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()

        if self._mode == ViewerMode.SEARCH:
            self._handle_search(event)
        else:
            self._handle_normal(event)
        self.refresh()

    def _handle_normal(self, event) -> None:
        key = event.key
        char = event.character or ""

        if char == "k" or key == "up":
            self.store.up(1)
        elif char == "j" or key == "down":
            self.store.down(1)
        elif key in ("pageup", "ctrl+b"):
            self.store.up(self._page_height())
        elif key in ("pagedown", "ctrl+f"):
            self.store.down(self._page_height())
        elif key == "home" or char == "g":
            self.store.home()
        elif key == "end" or char == "G":
            self.store.end()
        elif char in ("/", "?"):
            self._mode = ViewerMode.SEARCH
            self._begin_search(forward=char == "/")
        elif char == "n":
            self._goto_next_match()
        elif char == "N":
            self._goto_next_match(reverse=True)
