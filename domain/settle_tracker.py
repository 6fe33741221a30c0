"""Debounce of file arrivals until their content stops changing."""
import logging
from typing import Callable

from domain.models import FileSnapshot, PathState, PendingFile
from ports.adapter_error import AdapterError
from ports.scheduler import Scheduler

logger = logging.getLogger(__name__)


class SettleTracker:
    """
    Per-path debounce state machine.

    A path becomes PENDING on its first create/write notification. Each
    further write replaces the scheduled settle-check. When a check fires and
    the file's size and modification time are unchanged since scheduling, the
    path is handed to `on_settled` and becomes DISPOSING until release().
    Notifications that arrive while a path is DISPOSING are remembered and
    replayed by resume() once the disposition has finished.

    The tracker is not thread-safe. All methods must be called from the single
    thread that consumes the watch inbox; timer firings reach it through
    `on_due(path, generation)`, which is expected to post a settle-check event
    into that inbox rather than call check() directly.
    """

    def __init__(
        self,
        settle_seconds: float,
        scheduler: Scheduler,
        stat: Callable[[str], FileSnapshot],
        on_due: Callable[[str, int], None],
        on_settled: Callable[[str], None],
    ):
        """
        Initialize settle tracker.

        Args:
            settle_seconds: Quiet period a file must stay unchanged.
            scheduler: Scheduler used for settle-check timers.
            stat: Returns the current FileSnapshot of a path. Raises
                AdapterError (or OSError) when the file is gone.
            on_due: Called from the timer when a settle-check is due.
            on_settled: Called with the path once the file has settled.
        """
        self.settle_seconds = settle_seconds
        self.scheduler = scheduler
        self.stat = stat
        self.on_due = on_due
        self.on_settled = on_settled

        self._pending: dict[str, PendingFile] = {}
        self._disposing: set[str] = set()
        self._changed: set[str] = set()
        self._removed: set[str] = set()
        self._generation = 0

    @property
    def pending_paths(self) -> list[str]:
        return sorted(self._pending)

    def state(self, path: str) -> PathState:
        if path in self._disposing:
            return PathState.DISPOSING
        if path in self._pending:
            return PathState.PENDING
        return PathState.IDLE

    def observe(self, path: str) -> bool:
        """
        Handle a create or write notification.

        Returns:
            True if a settle-check was (re)scheduled.
        """
        if path in self._disposing:
            logger.debug(f"Deferring change to file being disposed: {path}")
            self._changed.add(path)
            return False

        try:
            snapshot = self.stat(path)
        except (AdapterError, OSError) as e:
            logger.warning(f"Error stating file {path}: {e}")
            return False

        pending = self._pending.get(path)
        if pending is None:
            pending = PendingFile(path=path, last_snapshot=snapshot)
            self._pending[path] = pending
        else:
            self._cancel_timer(pending)
            pending.last_snapshot = snapshot

        self._generation += 1
        generation = self._generation
        pending.generation = generation
        pending.timer = self.scheduler.call_later(
            self.settle_seconds,
            lambda: self.on_due(path, generation),
        )
        return True

    def forget(self, path: str) -> bool:
        """
        Handle a remove notification.

        A removal of a path being disposed is recorded and reported by
        release().

        Returns:
            True if pending state existed and was discarded.
        """
        if path in self._disposing:
            self._removed.add(path)
            return False

        pending = self._pending.pop(path, None)
        if pending is None:
            return False
        self._cancel_timer(pending)
        return True

    def check(self, path: str, generation: int) -> bool:
        """
        Handle a settle-check firing.

        A check that was superseded by a later write (older generation) is
        ignored.

        Returns:
            True if the file settled and was handed to on_settled.
        """
        pending = self._pending.get(path)
        if pending is None or pending.generation != generation:
            return False

        try:
            snapshot = self.stat(path)
        except (AdapterError, OSError) as e:
            logger.debug(f"File disappeared before settling: {path} ({e})")
            del self._pending[path]
            return False

        if snapshot != pending.last_snapshot:
            logger.info(f"File still changing: {path}")
            self.observe(path)
            return False

        del self._pending[path]
        pending.timer = None
        self._disposing.add(path)

        logger.info(f"File settled: {path} ({snapshot.size} bytes)")
        self.on_settled(path)
        return True

    def release(self, path: str) -> bool:
        """
        Mark the disposition of `path` as finished.

        Returns:
            True if the path was removed while it was being disposed.
        """
        self._disposing.discard(path)
        removed = path in self._removed
        self._removed.discard(path)
        return removed

    def resume(self, path: str) -> bool:
        """
        Re-observe a path that was created or written while being disposed.

        Returns:
            True if a settle-check was scheduled.
        """
        if path not in self._changed:
            return False
        self._changed.discard(path)
        return self.observe(path)

    def cancel_all(self) -> None:
        """Cancel every scheduled settle-check and drop pending state."""
        for pending in self._pending.values():
            self._cancel_timer(pending)
        self._pending.clear()
        self._changed.clear()
        self._removed.clear()

    @staticmethod
    def _cancel_timer(pending: PendingFile) -> None:
        if pending.timer is not None:
            pending.timer.cancel()
            pending.timer = None
