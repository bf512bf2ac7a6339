"""
Live reload of the displayed document using watchdog.

Exactly one directory is watched at a time: the directory of the document on
screen. Events for any other file are ignored.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

logger = logging.getLogger(__name__)


def _event_path(path) -> str:
    if isinstance(path, bytes):
        path = os.fsdecode(path)
    return os.path.abspath(path)


class DocumentChangeHandler(FileSystemEventHandler):
    """Forward writes to one file until canceled."""

    def __init__(self, path: str, on_change: Callable[[str], None]):
        super().__init__()
        self.path = os.path.abspath(path)
        self.on_change = on_change
        self.cancelled = threading.Event()

    def cancel(self) -> None:
        self.cancelled.set()

    def _notify(self, event_type: str, path) -> None:
        if self.cancelled.is_set():
            return
        if _event_path(path) != self.path:
            return
        logger.debug("watchdog %s: %s", event_type, self.path)
        self.on_change(self.path)

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory:
            self._notify("created", event.src_path)

    def on_modified(self, event: FileSystemEvent):
        if not event.is_directory:
            self._notify("modified", event.src_path)

    def on_moved(self, event: FileSystemEvent):
        # Editors that save through a temporary file rename it over the target
        if not event.is_directory:
            self._notify("moved", event.dest_path)


class DocumentWatcher:
    """Watch the directory of the current document for changes to it."""

    def __init__(self, on_change: Callable[[str], None], observer_factory=Observer):
        self.on_change = on_change
        self._observer_factory = observer_factory
        self._observer = None
        self._watch: Optional[ObservedWatch] = None
        self._handler: Optional[DocumentChangeHandler] = None

    @property
    def watched_dir(self) -> Optional[str]:
        return self._watch.path if self._watch is not None else None

    @property
    def watched_path(self) -> Optional[str]:
        return self._handler.path if self._handler is not None else None

    def _ensure_observer(self):
        if self._observer is None:
            self._observer = self._observer_factory()
            self._observer.daemon = True
            self._observer.start()
        return self._observer

    def watch(self, path: str) -> bool:
        """
        Start watching ``path``, stopping any previous watch first.

        Returns False when the directory could not be watched; the pager
        keeps working without live reload.
        """
        self.stop()

        directory = os.path.dirname(os.path.abspath(path))
        handler = DocumentChangeHandler(path, self.on_change)
        try:
            observer = self._ensure_observer()
            self._watch = observer.schedule(handler, directory, recursive=False)
        except OSError as e:
            handler.cancel()
            logger.error("error watching %s: %s", directory, e)
            return False

        self._handler = handler
        logger.debug("watching dir %s", directory)
        return True

    def stop(self) -> None:
        """Stop delivering events for the current document."""
        if self._handler is not None:
            self._handler.cancel()
            self._handler = None

        if self._watch is None:
            return

        watch, self._watch = self._watch, None
        try:
            self._observer.unschedule(watch)
            logger.debug("unwatched dir %s", watch.path)
        except (KeyError, OSError) as e:
            logger.error("failed to unwatch dir %s: %s", watch.path, e)

    def close(self) -> None:
        self.stop()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=1)
            self._observer = None
