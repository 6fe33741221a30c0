"""Directory event source backed by the watchdog library."""
from __future__ import annotations

import logging
import os
import queue
from typing import Callable, Iterator

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from domain.models import FileEvent, FileEventKind
from ports.adapter_error import WatchSetupError
from ports.event_source import DirectoryEventSource

logger = logging.getLogger(__name__)

_CLOSED = object()


class _QueueingHandler(FileSystemEventHandler):
    """Translates watchdog callbacks into FileEvents for a single directory."""

    def __init__(self, watch_path: str, sink: Callable[[FileEvent], None]):
        self.watch_path = os.path.abspath(watch_path)
        self.sink = sink

    def dispatch(self, event: FileSystemEvent) -> None:
        try:
            super().dispatch(event)
        except Exception as e:
            # A raising handler would kill the observer thread
            self.sink(FileEvent(FileEventKind.ERROR, _decode(event.src_path), error=e))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.sink(FileEvent(FileEventKind.CREATE, _decode(event.src_path)))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.sink(FileEvent(FileEventKind.WRITE, _decode(event.src_path)))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.sink(FileEvent(FileEventKind.REMOVE, _decode(event.src_path)))

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self.sink(FileEvent(FileEventKind.REMOVE, _decode(event.src_path)))

        dest_path = _decode(event.dest_path)
        if os.path.dirname(os.path.abspath(dest_path)) == self.watch_path:
            self.sink(FileEvent(FileEventKind.CREATE, dest_path))


class WatchdogEventSource(DirectoryEventSource):
    """
    Non-recursive watch of one directory using a watchdog Observer.

    The observer thread only enqueues events; consumers pull them through
    events() on their own thread.
    """

    def __init__(
        self,
        watch_path: str,
        observer_factory: Callable[[], Observer] = Observer,
        health_check_interval: float = 1.0,
    ):
        """
        Initialize watchdog event source.

        Args:
            watch_path: Directory to watch.
            observer_factory: Creates the watchdog observer.
            health_check_interval: Seconds between observer liveness checks
                while no events arrive.
        """
        self.watch_path = os.path.abspath(watch_path)
        self.observer_factory = observer_factory
        self.health_check_interval = health_check_interval

        self._queue: "queue.Queue" = queue.Queue()
        self._handler = _QueueingHandler(self.watch_path, self._queue.put)
        self._observer = None
        self._closed = False
        self._consumed = False

    def start(self) -> None:
        if not os.path.isdir(self.watch_path):
            raise WatchSetupError(
                code="WATCH_PATH_MISSING",
                message=f"Watch directory does not exist: {self.watch_path}",
                details={"path": self.watch_path}
            )

        observer = self.observer_factory()
        try:
            observer.schedule(self._handler, self.watch_path, recursive=False)
            observer.start()
        except OSError as e:
            raise WatchSetupError(
                code="WATCH_FAILED",
                message=f"Cannot watch path {self.watch_path}",
                details={"path": self.watch_path, "error": str(e)}
            ) from e

        self._observer = observer
        logger.debug(f"Observer started for {self.watch_path}")

    def initial_scan(self) -> Iterator[FileEvent]:
        try:
            with os.scandir(self.watch_path) as entries:
                names = sorted(entry.name for entry in entries if entry.is_file())
        except OSError as e:
            raise WatchSetupError(
                code="SCAN_FAILED",
                message=f"Cannot read watch directory: {self.watch_path}",
                details={"path": self.watch_path, "error": str(e)}
            ) from e

        for name in names:
            yield FileEvent(FileEventKind.CREATE, os.path.join(self.watch_path, name))

    def events(self) -> Iterator[FileEvent]:
        if self._consumed:
            raise RuntimeError("Event stream already consumed")
        self._consumed = True
        return self._iter_events()

    def _iter_events(self) -> Iterator[FileEvent]:
        reported_dead = False
        while True:
            try:
                item = self._queue.get(timeout=self.health_check_interval)
            except queue.Empty:
                if self._observer_died() and not reported_dead:
                    reported_dead = True
                    yield FileEvent(
                        FileEventKind.ERROR,
                        self.watch_path,
                        error=RuntimeError("Filesystem observer stopped unexpectedly"),
                    )
                continue

            if item is _CLOSED:
                return
            yield item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
        self._queue.put(_CLOSED)

    def _observer_died(self) -> bool:
        return (
            self._observer is not None
            and not self._closed
            and not self._observer.is_alive()
        )


def _decode(path) -> str:
    return os.fsdecode(path)
