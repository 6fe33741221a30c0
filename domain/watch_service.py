"""Coordinator tying the event source, debounce and disposition together."""
import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from domain.extension_filter import ExtensionFilter
from domain.models import FileEvent, FileEventKind, FileSnapshot, PathState, WatchTarget
from domain.settle_tracker import SettleTracker
from domain.upload_disposer import UploadDisposer
from ports.event_source import DirectoryEventSource
from ports.scheduler import Scheduler

logger = logging.getLogger(__name__)

_STOP = object()


class WatchService:
    """
    Owns all per-path state and processes it from a single thread.

    Filesystem events, settle-check timer firings and disposition completions
    all arrive through one inbox and are handled serially by run(). Uploads
    are dispatched to a worker pool so a long upload never blocks ingestion
    of events for other paths.
    """

    def __init__(
        self,
        target: WatchTarget,
        event_source: DirectoryEventSource,
        disposer: UploadDisposer,
        scheduler: Scheduler,
        stat: Callable[[str], FileSnapshot],
        max_workers: int = 2,
    ):
        """
        Initialize watch service.

        Args:
            target: Watched directory and its settle/retry policy.
            event_source: Source of filesystem notifications.
            disposer: Uploads settled files and disposes of them.
            scheduler: Scheduler for settle-check timers.
            stat: Returns the current FileSnapshot of a path.
            max_workers: Number of concurrent dispositions.
        """
        self.target = target
        self.event_source = event_source
        self.disposer = disposer
        self.retry_ledger = disposer.retry_ledger
        self.extension_filter = ExtensionFilter(target.extensions)
        self.tracker = SettleTracker(
            settle_seconds=target.settle_seconds,
            scheduler=scheduler,
            stat=stat,
            on_due=self._post_settle_check,
            on_settled=self._dispatch,
        )

        self.inbox: "queue.Queue" = queue.Queue()
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix="disposer",
        )
        self._pump_thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()

    def run(self) -> None:
        """
        Watch the target directory until stop() is called.

        Raises:
            WatchSetupError: If the directory cannot be watched.
        """
        self.event_source.start()
        logger.info(f"Watching: {self.target.path}")

        logger.info(f"Scanning for existing files in {self.target.path}")
        for event in self.event_source.initial_scan():
            if self.extension_filter.is_eligible(event.path):
                logger.info(f"Found existing file: {event.path}")
                self.tracker.observe(event.path)

        self._pump_thread = threading.Thread(
            target=self._pump_events,
            name="event-pump",
            daemon=True,
        )
        self._pump_thread.start()

        while True:
            item = self.inbox.get()
            if item is _STOP:
                break
            try:
                self.handle_event(item)
            except Exception as e:
                logger.exception(f"Unexpected error handling {item}: {e}")

        self.tracker.cancel_all()
        logger.info("Watch loop stopped")

    def handle_event(self, event: FileEvent) -> None:
        """Apply one event to the per-path state. Loop thread only."""
        kind = event.kind

        if kind == FileEventKind.ERROR:
            logger.error(f"Watcher error: {event.error}")
            return

        if kind == FileEventKind.SETTLE_CHECK:
            self.tracker.check(event.path, event.generation)
            return

        if kind == FileEventKind.DISPOSED:
            if self.tracker.release(event.path):
                self.retry_ledger.clear(event.path)
            self.tracker.resume(event.path)
            return

        if not self.extension_filter.is_eligible(event.path):
            return

        if kind == FileEventKind.CREATE:
            logger.info(f"New file detected: {event.path}")
            self.tracker.observe(event.path)
        elif kind == FileEventKind.WRITE:
            self.tracker.observe(event.path)
        elif kind == FileEventKind.REMOVE:
            if self.tracker.state(event.path) == PathState.DISPOSING:
                # Ledger is cleared once the disposition has finished
                self.tracker.forget(event.path)
                return
            if self.tracker.forget(event.path):
                logger.info(f"File removed before processing: {event.path}")
            self.retry_ledger.clear(event.path)

    def stop(self, wait: bool = True) -> None:
        """
        Stop accepting events and end run().

        Uploads already underway are not aborted; with `wait` the call blocks
        until they finish. Safe to call from any thread except from inside a
        signal handler, which may interrupt the loop while it holds the inbox
        lock.
        """
        if self._stopping.is_set():
            return
        self._stopping.set()
        logger.info("Stopping watcher...")

        self.event_source.close()
        self.inbox.put(_STOP)
        self._executor.shutdown(wait=wait)

    def _pump_events(self) -> None:
        for event in self.event_source.events():
            self.inbox.put(event)

    def _post_settle_check(self, path: str, generation: int) -> None:
        # Runs on the timer thread; hand over to the loop thread.
        self.inbox.put(FileEvent(FileEventKind.SETTLE_CHECK, path, generation=generation))

    def _dispatch(self, path: str) -> None:
        logger.info(f"Processing file: {path}")
        try:
            self._executor.submit(self._dispose, path)
        except RuntimeError as e:
            logger.warning(f"Not processing {path}, watcher is stopping: {e}")
            self.tracker.release(path)

    def _dispose(self, path: str) -> None:
        try:
            outcome = self.disposer.dispose(path)
            if outcome.terminal and not outcome.succeeded:
                logger.error(f"Giving up on file {path}: {outcome.reason}")
            elif not outcome.succeeded:
                logger.warning(f"Error handling file {path}: {outcome.reason}")
        except Exception as e:
            logger.exception(f"Unexpected error disposing of {path}: {e}")
        finally:
            self.inbox.put(FileEvent(FileEventKind.DISPOSED, path))
