#!/usr/bin/env python3
"""
MarkTerm - terminal markdown pager with keyboard-followable links.

Local markdown links are cycled with tab, opened with enter and left again
with backspace, which returns to the same scroll position. Links never leave
the root directory, and the displayed file reloads when it changes on disk.

Usage:
    markterm document.md [--root DIR]
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Optional

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer

import config
from links import LinkResolutionError, is_within
from pager import NO_HISTORY_MESSAGE, LoadRequest, Pager, load_document
from render import render_markdown
from utility import (
    THEME,
    ContentRendered,
    DocumentView,
    FileChanged,
    HelpPanel,
    LoadFailed,
    StatusBar,
)
from watcher import DocumentWatcher

logger = logging.getLogger(__name__)

# Horizontal padding and scrollbar of the document view
VIEWER_CHROME = 7


# ============================================================================
# Main Application
# ============================================================================

class MarkTerm(App):
    """Terminal markdown pager with keyboard-followable links."""

    CSS = THEME

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("r", "reload", "Reload", show=True),
        Binding("tab", "next_link", "Next link", show=True, priority=True),
        Binding("shift+tab", "prev_link", "Prev link", show=False, priority=True),
        Binding("enter", "follow_link", "Follow", show=True),
        Binding("backspace", "back", "Back", show=True),
        Binding("g,home", "scroll_top", "Top", show=False),
        Binding("G,shift+g,end", "scroll_bottom", "Bottom", show=False),
        Binding("question_mark", "toggle_help", "Help", show=True),
    ]

    TITLE = "MarkTerm"

    def __init__(self, filepath: Optional[str] = None, root_dir: Optional[str] = None,
                 max_width: int = 100, code_theme: str = "monokai", watch: bool = True):
        super().__init__()
        self.filepath = filepath
        self.pager = Pager(root_dir or os.getcwd())
        self.max_width = max_width
        self.code_theme = code_theme
        self.watch_enabled = watch
        self.watcher = DocumentWatcher(self._on_file_changed)

    def compose(self) -> ComposeResult:
        yield DocumentView()
        yield HelpPanel()
        yield StatusBar()
        yield Footer()

    async def on_mount(self) -> None:
        """Load initial file if provided."""
        if self.filepath:
            self._load(self.pager.open(self.filepath))
        else:
            self.sub_title = "No file loaded"
        self.set_interval(0.5, self._update_status)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _render_width(self) -> int:
        available = self.size.width - VIEWER_CHROME
        if available <= 0:
            return self.max_width
        return min(self.max_width, available)

    def _load(self, request: Optional[LoadRequest]) -> None:
        if request is None:
            return
        self._render_document(request, self._render_width())

    @work(thread=True, exclusive=True, group="render")
    def _render_document(self, request: LoadRequest, width: int) -> None:
        """Read, resolve and render off the event loop."""
        def render(markdown: str) -> str:
            return render_markdown(markdown, width, self.code_theme)

        try:
            document = load_document(request, self.pager.root_dir, render)
        except (OSError, LinkResolutionError) as e:
            logger.error("error loading %s: %s", request.path, e)
            self.post_message(LoadFailed(request, e))
            return
        self.post_message(ContentRendered(document))

    def on_content_rendered(self, message: ContentRendered) -> None:
        if not self.pager.document_ready(message.document):
            return
        logger.info("content rendered: %s", message.document.path)

        self.sub_title = message.document.path
        viewer = self.query_one(DocumentView)
        viewer.show_document(self.pager.content())
        if message.document.scroll_to_top:
            viewer.scroll_home(animate=False)
        offset = self.pager.take_pending_restore()
        if offset is not None:
            self.call_after_refresh(viewer.scroll_to, y=offset, animate=False)
        self.query_one(StatusBar).clear_error()
        self._update_status()

        if self.watch_enabled:
            self.watcher.watch(message.document.path)

    def on_load_failed(self, message: LoadFailed) -> None:
        if not self.pager.load_failed(message.request):
            return
        self.query_one(StatusBar).show_error(str(message.error))
        self.notify(f"Failed to load: {message.error}", severity="error")

    def _on_file_changed(self, path: str) -> None:
        # Called from the watchdog thread
        self.post_message(FileChanged(path))

    def on_file_changed(self, message: FileChanged) -> None:
        self._load(self.pager.file_changed(message.path))

    def on_resize(self) -> None:
        if self.pager.current_path:
            self._load(self.pager.reload())

    def _update_status(self) -> None:
        viewer = self.query_one(DocumentView)
        percent = None
        if self.pager.current_path:
            max_y = viewer.max_scroll_y
            percent = 100.0 if max_y <= 0 else min(100.0, viewer.scroll_y * 100.0 / max_y)
        self.query_one(StatusBar).show_status(
            self.pager.note, len(self.pager.links), len(self.pager.history), percent
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _dismiss_error(self) -> None:
        status = self.query_one(StatusBar)
        if status.clear_error():
            self._update_status()

    def _show_focus(self, message: str) -> None:
        self._dismiss_error()
        viewer = self.query_one(DocumentView)
        viewer.show_document(self.pager.content())
        line = self.pager.focused_line()
        if line is not None:
            viewer.scroll_to(y=max(0, line - viewer.size.height // 2), animate=False)
        self.notify(message, timeout=2)

    def action_next_link(self) -> None:
        self._show_focus(self.pager.focus_next())

    def action_prev_link(self) -> None:
        self._show_focus(self.pager.focus_prev())

    def action_follow_link(self) -> None:
        self._dismiss_error()
        viewer = self.query_one(DocumentView)
        request, message = self.pager.activate(viewer.scroll_y)
        if message:
            self.notify(message, timeout=2)
        if request is not None:
            self.notify(f"Loading: {request.note}", timeout=1)
            self._load(request)

    def action_back(self) -> None:
        """Go back to previous file."""
        self._dismiss_error()
        request = self.pager.back()
        if request is None:
            self.notify(NO_HISTORY_MESSAGE, timeout=2)
            return
        self._load(request)

    def action_reload(self) -> None:
        """Reload current file."""
        self._dismiss_error()
        if self.pager.current_path:
            self.notify("Reloading...", timeout=1)
            self._load(self.pager.reload())

    def action_scroll_top(self) -> None:
        self._dismiss_error()
        self.query_one(DocumentView).scroll_home(animate=False)

    def action_scroll_bottom(self) -> None:
        self._dismiss_error()
        self.query_one(DocumentView).scroll_end(animate=False)

    def action_toggle_help(self) -> None:
        self.query_one(HelpPanel).toggle_class("hidden")


# ============================================================================
# Command line
# ============================================================================

def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def default_root(document: Path) -> str:
    """The working directory when it contains the document, else the document's directory."""
    cwd = os.path.realpath(os.getcwd())
    doc = os.path.realpath(document)
    if is_within(doc, cwd):
        return cwd
    return os.path.dirname(doc)


def setup_logging(log_file: Optional[str]) -> None:
    """Log to ``log_file`` when given; the terminal belongs to the UI."""
    root = logging.getLogger()
    if not log_file:
        root.addHandler(logging.NullHandler())
        return
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)


def build_app(argv: Optional[list[str]] = None) -> MarkTerm:
    parser = argparse.ArgumentParser(
        prog="markterm",
        description="Read markdown in the terminal and follow links between local documents.",
    )
    parser.add_argument("path", help="Markdown file to open.")
    parser.add_argument("--root", default=None,
                        help="Links may not leave this directory (default: current directory "
                             "when it contains the file, else the file's directory).")
    parser.add_argument("--width", type=_positive_int, default=None,
                        help="Maximum render width in columns.")
    parser.add_argument("--code-theme", default=None, help="Pygments style for code blocks.")
    parser.add_argument("--no-watch", action="store_true", help="Do not reload the file when it changes.")
    parser.add_argument("--log-file", default=None, help="Write debug logs to this file.")
    args = parser.parse_args(argv)

    path = Path(args.path)
    if not path.is_file():
        raise SystemExit(f"File not found: {path}")

    root = args.root
    if root is not None and not os.path.isdir(root):
        raise SystemExit(f"Root is not a directory: {root}")

    setup_logging(args.log_file)

    return MarkTerm(
        str(path),
        root_dir=root or default_root(path),
        max_width=args.width or config.load_max_width(),
        code_theme=args.code_theme or config.load_code_theme(),
        watch=not args.no_watch and config.load_watch_enabled(),
    )


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point."""
    app = build_app(argv)
    try:
        app.run()
    finally:
        app.watcher.close()


if __name__ == '__main__':
    main()
