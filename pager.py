"""
Pager state: the loaded document, its links, the focused link and history.

Everything here is owned by the app's event loop and changed one event at a
time. Loading and rendering happen elsewhere; the pager hands out a
LoadRequest and later accepts the matching RenderedDocument.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from highlight import highlight_focused_link, link_spans
from history import NavEntry, NavigationHistory
from links import (
    EMPTY_REGISTRY,
    FileSystem,
    LinkRegistry,
    followable_links_for_document,
    strip_absolute_path,
)
from render import normalize_markdown

logger = logging.getLogger(__name__)

NO_LINKS_MESSAGE = "No followable links"
SELECT_LINK_MESSAGE = "Tab to select a link"
NO_HISTORY_MESSAGE = "No previous document"


@dataclass(frozen=True)
class LoadRequest:
    """Ask the app to (re)load a document."""

    path: str
    note: str
    generation: int
    scroll_to_top: bool = False


@dataclass(frozen=True)
class RenderedDocument:
    path: str
    note: str
    markdown: str
    rendered: str
    links: LinkRegistry
    generation: int
    scroll_to_top: bool = False


def load_document(request: LoadRequest, root_dir: str, render: Callable[[str], str],
                  fs: Optional[FileSystem] = None) -> RenderedDocument:
    """
    Read, resolve and render the requested document.

    Runs off the event loop. Raises OSError when the file cannot be read and
    LinkResolutionError when its links cannot be resolved.
    """
    # Links and rendering must see the same source text
    markdown = normalize_markdown(Path(request.path).read_text(encoding="utf-8", errors="replace"))
    links = followable_links_for_document(root_dir, request.path, markdown, fs)
    return RenderedDocument(
        path=request.path,
        note=request.note,
        markdown=markdown,
        rendered=render(markdown),
        links=links,
        generation=request.generation,
        scroll_to_top=request.scroll_to_top,
    )


class Pager:
    """Link focus and navigation state for one viewer."""

    def __init__(self, root_dir: str):
        self.root_dir = root_dir
        # The document on screen; only a successful load replaces it
        self.current_path: Optional[str] = None
        self.note = ""
        self.markdown = ""
        self.rendered = ""
        self.links: LinkRegistry = EMPTY_REGISTRY
        self.focused_link = -1
        self.history = NavigationHistory()
        self.pending_restore: Optional[float] = None
        self._generation = 0
        self._pending: Optional[LoadRequest] = None
        # History change made by the pending navigation, undone if it fails
        self._pushed: Optional[NavEntry] = None
        self._popped: Optional[NavEntry] = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _request(self, path: str, note: str, scroll_to_top: bool = False) -> LoadRequest:
        self._generation += 1
        self._pending = LoadRequest(path, note, self._generation, scroll_to_top)
        return self._pending

    def _cancel_pending(self) -> None:
        """Drop the pending load and give back what its navigation took from history."""
        if self._pushed is not None and self.history.peek() is self._pushed:
            self.history.pop()
        if self._popped is not None:
            self.history.push(self._popped)
        self._pushed = None
        self._popped = None
        self._pending = None
        self.pending_restore = None

    def note_for(self, path: str) -> str:
        root = os.path.realpath(self.root_dir)
        return strip_absolute_path(path, root)

    def open(self, path: str) -> LoadRequest:
        """Load a first document: no history, nothing focused."""
        self.unload()
        path = os.path.realpath(path)
        return self._request(path, self.note_for(path), scroll_to_top=True)

    def reload(self) -> Optional[LoadRequest]:
        """Reload the current document in place, or restart the pending load."""
        if self._pending is not None:
            pending = self._pending
            return self._request(pending.path, pending.note, pending.scroll_to_top)
        if self.current_path is None:
            return None
        return self._request(self.current_path, self.note)

    def file_changed(self, path: str) -> Optional[LoadRequest]:
        """React to a change on disk; only the displayed file matters."""
        if self.current_path is None or path != self.current_path:
            return None
        logger.debug("reloading %s after change on disk", path)
        return self.reload()

    def is_pending(self, generation: int) -> bool:
        """Is this the latest load request, still waiting for its result?"""
        return self._pending is not None and self._pending.generation == generation

    def document_ready(self, document: RenderedDocument) -> bool:
        """
        Install a freshly rendered document.

        Returns False for results of superseded requests, which are dropped.
        """
        if not self.is_pending(document.generation):
            logger.debug("dropping stale render of %s", document.path)
            return False

        self._pending = None
        self._pushed = None
        self._popped = None
        self.current_path = document.path
        self.note = document.note
        self.markdown = document.markdown
        self.rendered = document.rendered
        self.links = document.links
        if self.focused_link >= len(self.links):
            self.focused_link = -1
        return True

    def load_failed(self, request: LoadRequest) -> bool:
        """
        Keep the displayed document after a failed load.

        A failed follow leaves history as it was, and a failed back keeps its
        entry. Returns False for superseded requests.
        """
        if not self.is_pending(request.generation):
            return False
        logger.debug("load of %s failed, staying on %s", request.path, self.current_path)
        self._cancel_pending()
        return True

    def take_pending_restore(self) -> Optional[float]:
        """Scroll offset to restore after a back navigation, consumed once."""
        offset, self.pending_restore = self.pending_restore, None
        return offset

    def unload(self) -> None:
        self.current_path = None
        self.note = ""
        self.markdown = ""
        self.rendered = ""
        self.links = EMPTY_REGISTRY
        self.focused_link = -1
        self.history.clear()
        self.pending_restore = None
        self._pending = None
        self._pushed = None
        self._popped = None

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def content(self) -> str:
        """Rendered text with the focused link highlighted."""
        if self.focused_link < 0:
            return self.rendered
        return highlight_focused_link(self.rendered, self.links, self.focused_link)

    @property
    def focused(self):
        return self.links.get(self.focused_link)

    def focused_line(self) -> Optional[int]:
        """Line of the rendered text where the focused link starts."""
        if self.focused is None:
            return None
        span = link_spans(self.rendered, self.links)[self.focused_link]
        if span is None:
            return None
        return self.rendered.count("\n", 0, span[0])

    def _focus_message(self) -> str:
        return "Open: " + self.links[self.focused_link].resolved_note

    def focus_next(self) -> str:
        if not self.links:
            return NO_LINKS_MESSAGE
        if self.focused_link < 0:
            self.focused_link = 0
        else:
            self.focused_link = (self.focused_link + 1) % len(self.links)
        return self._focus_message()

    def focus_prev(self) -> str:
        if not self.links:
            return NO_LINKS_MESSAGE
        if self.focused_link < 0:
            self.focused_link = len(self.links) - 1
        else:
            self.focused_link = (self.focused_link - 1) % len(self.links)
        return self._focus_message()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def follow(self, scroll_offset: float) -> Optional[LoadRequest]:
        """Open the focused link, remembering where we were."""
        link = self.focused
        if link is None or not link.resolved_path:
            return None

        self._cancel_pending()
        if self.current_path:
            self._pushed = NavEntry(self.current_path, scroll_offset)
            self.history.push(self._pushed)

        self.focused_link = -1
        logger.debug("following %s -> %s", link.href, link.resolved_path)
        return self._request(link.resolved_path, link.resolved_note, scroll_to_top=True)

    def activate(self, scroll_offset: float) -> tuple[Optional[LoadRequest], Optional[str]]:
        """Enter key: follow the focused link, or hint at how to pick one."""
        if self.focused is not None:
            return self.follow(scroll_offset), None
        if self.links:
            return None, SELECT_LINK_MESSAGE
        return None, None

    def back(self) -> Optional[LoadRequest]:
        """Return to the previous document and restore its scroll offset."""
        self._cancel_pending()
        entry = self.history.pop()
        if entry is None:
            return None

        self._popped = entry
        self.focused_link = -1
        self.pending_restore = entry.scroll_offset
        return self._request(entry.path, self.note_for(entry.path), scroll_to_top=True)
