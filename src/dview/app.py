"""Debugger viewer application: source window over an output window."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Header

from dview.config import ViewerConfig
from dview.render import StyleTable
from dview.scroller import ScrollerView
from dview.session import SessionFlags
from dview.source_view import SourceViewer

logger = logging.getLogger(__name__)


class DviewApp(App):
    """TUI app that pairs a SourceViewer with a ScrollerView."""

    CSS = """
    #source {
        border-bottom: solid $accent;
    }
    """
    TITLE = "dview"
    BINDINGS = [
        Binding("tab", "switch_window", "Switch window", priority=True),
    ]
    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        file_path: str = "",
        output: bytes = b"",
        config: ViewerConfig | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.file_path = file_path
        self.output_data = output
        self.viewer_config = config or ViewerConfig()
        self.session_flags = SessionFlags()
        self.style_table = StyleTable()

    def compose(self) -> ComposeResult:
        yield Header()
        yield SourceViewer(
            config=self.viewer_config,
            style_table=self.style_table,
            session_flags=self.session_flags,
            id="source",
        )
        yield ScrollerView(
            config=self.viewer_config,
            style_table=self.style_table,
            session_flags=self.session_flags,
            id="output",
        )

    def on_mount(self) -> None:
        viewer = self.query_one("#source", SourceViewer)
        if self.file_path:
            viewer.open_file(self.file_path)
            self.sub_title = self.file_path
        if self.output_data:
            self.query_one("#output", ScrollerView).feed(self.output_data)
        viewer.focus()

    def action_switch_window(self) -> None:
        focused = self.focused
        target = "#output" if focused is not None and focused.id == "source" else "#source"
        self.query_one(target).focus()

    def on_source_viewer_quit(self, event: SourceViewer.Quit) -> None:
        self.exit()


def _setup_logging(log_file: str, verbose: bool) -> None:
    root = logging.getLogger("dview")
    if not log_file:
        root.addHandler(logging.NullHandler())
        root.propagate = False
        return
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="dview",
        description="Debugger source and output viewer in Textual",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default="",
        help="source file to open",
    )
    parser.add_argument(
        "--output",
        default="",
        metavar="LOG",
        help="raw debugger output to show in the output window",
    )
    parser.add_argument(
        "--tabstop",
        type=int,
        default=8,
        metavar="N",
        help="tab width used when drawing lines (default: 8)",
    )
    parser.add_argument(
        "--log-file",
        default="",
        metavar="PATH",
        help="write diagnostics to PATH",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="log debug messages (with --log-file)",
    )
    args = parser.parse_args()

    if args.tabstop < 1:
        parser.error("--tabstop must be at least 1")
    _setup_logging(args.log_file, args.verbose)

    output = b""
    if args.output:
        try:
            output = Path(args.output).read_bytes()
        except OSError as exc:
            print(f"dview: {exc}", file=sys.stderr)
            sys.exit(1)

    if args.file and not Path(args.file).is_file():
        print(f"dview: {args.file}: no such file", file=sys.stderr)
        sys.exit(1)

    logger.info("starting: file=%r output=%r", args.file, args.output)
    app = DviewApp(
        file_path=args.file,
        output=output,
        config=ViewerConfig(tabstop=args.tabstop),
    )
    app.run()


if __name__ == "__main__":
    main()
