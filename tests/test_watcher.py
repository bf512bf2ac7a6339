"""Live reload plumbing, driven with synthetic watchdog events."""

from __future__ import annotations

import os
import tempfile
import unittest
from types import SimpleNamespace

from watchdog.events import DirModifiedEvent, FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from watcher import DocumentChangeHandler, DocumentWatcher


class FakeObserver:
    def __init__(self) -> None:
        self.daemon = False
        self.started = False
        self.stopped = False
        self.scheduled: list = []
        self.calls: list = []
        self.fail_schedule = False

    def start(self) -> None:
        self.started = True

    def schedule(self, handler, path, recursive=False):
        if self.fail_schedule:
            raise OSError("inotify watch limit reached")
        watch = SimpleNamespace(path=path, handler=handler, recursive=recursive)
        self.scheduled.append(watch)
        self.calls.append(("schedule", path))
        return watch

    def unschedule(self, watch) -> None:
        self.scheduled.remove(watch)
        self.calls.append(("unschedule", watch.path))

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout=None) -> None:
        pass


class DocumentChangeHandlerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = self._tmp.name
        self.path = os.path.join(self.dir, "doc.md")
        self.changes: list[str] = []
        self.handler = DocumentChangeHandler(self.path, self.changes.append)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_write_to_watched_file_notifies(self) -> None:
        self.handler.dispatch(FileModifiedEvent(self.path))
        self.handler.dispatch(FileCreatedEvent(self.path))
        self.assertEqual(self.changes, [os.path.abspath(self.path)] * 2)

    def test_other_files_are_ignored(self) -> None:
        self.handler.dispatch(FileModifiedEvent(os.path.join(self.dir, "other.md")))
        self.handler.dispatch(DirModifiedEvent(self.dir))
        self.assertEqual(self.changes, [])

    def test_rename_over_watched_file_notifies(self) -> None:
        tmp = os.path.join(self.dir, ".doc.md.swp")
        self.handler.dispatch(FileMovedEvent(tmp, self.path))
        self.assertEqual(self.changes, [os.path.abspath(self.path)])

    def test_moving_watched_file_away_is_ignored(self) -> None:
        self.handler.dispatch(FileMovedEvent(self.path, os.path.join(self.dir, "renamed.md")))
        self.assertEqual(self.changes, [])

    def test_cancelled_handler_is_silent(self) -> None:
        self.handler.cancel()
        self.handler.dispatch(FileModifiedEvent(self.path))
        self.assertEqual(self.changes, [])


class DocumentWatcherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.observer = FakeObserver()
        self.changes: list[str] = []
        self.watcher = DocumentWatcher(self.changes.append, observer_factory=lambda: self.observer)

    def test_watches_the_document_directory(self) -> None:
        self.assertTrue(self.watcher.watch("/docs/a.md"))
        self.assertTrue(self.observer.started)
        self.assertTrue(self.observer.daemon)
        self.assertEqual(self.watcher.watched_dir, "/docs")
        self.assertEqual(self.watcher.watched_path, os.path.abspath("/docs/a.md"))
        self.assertFalse(self.observer.scheduled[0].recursive)

    def test_previous_watch_is_stopped_before_the_next(self) -> None:
        self.watcher.watch("/docs/a.md")
        first = self.observer.scheduled[0].handler
        self.watcher.watch("/other/b.md")

        self.assertEqual(self.observer.calls, [
            ("schedule", "/docs"),
            ("unschedule", "/docs"),
            ("schedule", "/other"),
        ])
        first.dispatch(FileModifiedEvent("/docs/a.md"))
        self.assertEqual(self.changes, [])

    def test_schedule_failure_disables_watching(self) -> None:
        self.observer.fail_schedule = True
        with self.assertLogs("watcher", level="ERROR"):
            self.assertFalse(self.watcher.watch("/docs/a.md"))
        self.assertIsNone(self.watcher.watched_dir)
        self.assertIsNone(self.watcher.watched_path)

    def test_stop_and_close(self) -> None:
        self.watcher.watch("/docs/a.md")
        handler = self.observer.scheduled[0].handler
        self.watcher.stop()
        self.assertEqual(self.observer.scheduled, [])
        handler.dispatch(FileModifiedEvent("/docs/a.md"))
        self.assertEqual(self.changes, [])

        self.watcher.close()
        self.assertTrue(self.observer.stopped)

    def test_stop_without_watch_is_noop(self) -> None:
        self.watcher.stop()
        self.watcher.close()
        self.assertFalse(self.observer.started)


if __name__ == "__main__":
    unittest.main()
