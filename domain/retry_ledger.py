"""In-memory per-path upload failure counter."""
import logging
import threading

logger = logging.getLogger(__name__)


class RetryLedger:
    """
    Counts failed upload attempts per path.

    Entries never expire; they are removed only by an explicit clear() on a
    terminal outcome or when the file disappears. Dispositions run on worker
    threads, so access is guarded by a lock.
    """

    def __init__(self):
        self._attempts: dict[str, int] = {}
        self._lock = threading.Lock()

    def record_failure(self, path: str) -> int:
        """Increment and return the failure count for `path`."""
        with self._lock:
            attempts = self._attempts.get(path, 0) + 1
            self._attempts[path] = attempts
        logger.debug(f"Recorded failure {attempts} for {path}")
        return attempts

    def clear(self, path: str) -> None:
        with self._lock:
            self._attempts.pop(path, None)

    def count(self, path: str) -> int:
        with self._lock:
            return self._attempts.get(path, 0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._attempts)
