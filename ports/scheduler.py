"""Interface for delayed callbacks."""
from abc import ABC, abstractmethod
from typing import Callable


class ScheduledCall(ABC):
    """Handle to a callback scheduled with a Scheduler."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running. No-op if it already ran."""
        pass


class Scheduler(ABC):
    """
    Runs callbacks after a delay.

    Callbacks may run on another thread; callers must not touch shared state
    from inside them.
    """

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        """
        Schedule `callback` to run once after `delay` seconds.

        Returns:
            Handle that can cancel the call.
        """
        pass
