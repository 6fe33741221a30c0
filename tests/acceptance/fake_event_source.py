"""Fake directory event source for tests."""
import queue
from typing import Iterator, Optional

from domain.models import FileEvent, FileEventKind
from ports.adapter_error import WatchSetupError
from ports.event_source import DirectoryEventSource

_CLOSED = object()


class FakeEventSource(DirectoryEventSource):
    """
    In-memory event source.

    Tests push live events with emit(); `existing` is reported by
    initial_scan(). Set `fail_start` to make start() raise.
    """

    def __init__(self, existing: Optional[list[str]] = None, fail_start: bool = False):
        self.existing = list(existing or [])
        self.fail_start = fail_start
        self.started = False
        self.closed = False
        self._queue: "queue.Queue" = queue.Queue()

    def start(self) -> None:
        if self.fail_start:
            raise WatchSetupError(
                code="WATCH_PATH_MISSING",
                message="Watch directory does not exist (fake)",
            )
        self.started = True

    def initial_scan(self) -> Iterator[FileEvent]:
        for path in self.existing:
            yield FileEvent(FileEventKind.CREATE, path)

    def events(self) -> Iterator[FileEvent]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item

    def emit(self, kind: FileEventKind, path: str) -> None:
        self._queue.put(FileEvent(kind, path))

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put(_CLOSED)
