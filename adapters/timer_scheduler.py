"""Scheduler adapter backed by threading.Timer."""
import threading
from typing import Callable

from ports.scheduler import ScheduledCall, Scheduler


class _TimerCall(ScheduledCall):
    def __init__(self, timer: threading.Timer):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class TimerScheduler(Scheduler):
    """Runs each callback on its own daemon timer thread."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return _TimerCall(timer)
