from __future__ import annotations

from typing import Optional

from rich.text import Text
from textual.containers import VerticalScroll
from textual.message import Message
from textual.widgets import Static

from pager import LoadRequest, RenderedDocument

THEME = """
$primary: #61afef;
$secondary: #c678dd;
$accent: #56b6c2;
$warning: #e5c07b;
$success: #98c379;
$error: #e06c75;
$background: #1a1a1a;
$surface: #21252b;
$boost: #2c313a;

Screen {
    background: $background;
}

Header {
    display: none;
}

Footer {
    background: $surface;
    color: #5c6370;
}

#viewer {
    background: $background;
    padding: 1 3;
    scrollbar-gutter: stable;
    scrollbar-size-vertical: 1;
}

#content {
    width: auto;
    color: #abb2bf;
}

#help {
    dock: bottom;
    height: auto;
    background: #1b1b1b;
    color: #7d7d7d;
    padding: 1 2;
}

#help.hidden {
    display: none;
}

#status {
    dock: bottom;
    height: 1;
    background: $surface;
    color: #5c6370;
    padding: 0 2;
}

#status.error {
    color: $error;
}
"""

HELP_ROWS = [
    ("k/↑      up", "g/home  go to top"),
    ("j/↓      down", "G/end   go to bottom"),
    ("pgup     page up", "tab     next link"),
    ("pgdn     page down", "⇧tab    prev link"),
    ("", "enter   follow link"),
    ("", "⌫       go back"),
    ("", "r       reload this document"),
    ("", "q       quit"),
]


# ============================================================================
# Messages
# ============================================================================

class ContentRendered(Message):
    """A document finished loading in the background."""
    def __init__(self, document: RenderedDocument):
        super().__init__()
        self.document = document


class LoadFailed(Message):
    """Loading a document failed."""
    def __init__(self, request: LoadRequest, error: Exception):
        super().__init__()
        self.request = request
        self.error = error


class FileChanged(Message):
    """The file on screen changed on disk."""
    def __init__(self, path: str):
        super().__init__()
        self.path = path


# ============================================================================
# Widgets
# ============================================================================

class DocumentView(VerticalScroll):
    """Scrollable view of the rendered document."""

    def __init__(self):
        super().__init__(id="viewer")
        self.body = Static("", id="content")

    def compose(self):
        yield self.body

    def show_document(self, styled: str) -> None:
        """Display ANSI-styled text."""
        self.body.update(Text.from_ansi(styled) if styled else Text())


class StatusBar(Static):
    """One-line status: document note, link and history counts, scroll position."""

    def __init__(self):
        super().__init__("", id="status")

    def show_status(self, note: str, links: int, back: int, percent: Optional[float]) -> None:
        # An error stays up until cleared
        if self.has_class("error"):
            return
        parts = [note or "No file loaded"]
        if links:
            parts.append(f"{links} link{'s' if links != 1 else ''}")
        if back:
            parts.append(f"{back} back")
        if percent is not None:
            parts.append(f"{percent:3.0f}%")
        self.update(Text(" • ".join(parts)))

    def show_error(self, message: str) -> None:
        self.add_class("error")
        self.update(Text(f"Error: {message[:80]}"))

    def clear_error(self) -> bool:
        """Let status updates through again; True if an error was showing."""
        if not self.has_class("error"):
            return False
        self.remove_class("error")
        return True


class HelpPanel(Static):
    """Key reference shown below the document."""

    def __init__(self):
        super().__init__(Text(self._help_text()), id="help", classes="hidden")

    @staticmethod
    def _help_text() -> str:
        lines = []
        for left, right in HELP_ROWS:
            lines.append(f"{left:<24}{right}")
        return "\n".join(lines)
