"""Interface for directory change notifications."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator

from domain.models import FileEvent


class DirectoryEventSource(ABC):
    """
    Feed of create/write/remove notifications for one directory.

    Implementation examples: watchdog observer, polling scanner, test fakes.
    """

    @abstractmethod
    def start(self) -> None:
        """
        Begin watching the directory.

        Raises:
            WatchSetupError: If the directory does not exist or cannot be
                watched. The watch cannot start.
        """
        pass

    @abstractmethod
    def initial_scan(self) -> Iterator[FileEvent]:
        """
        Enumerate pre-existing regular files as CREATE events.

        Performed once at startup, before live events are consumed.

        Raises:
            WatchSetupError: If the directory cannot be listed.
        """
        pass

    @abstractmethod
    def events(self) -> Iterator[FileEvent]:
        """
        Lazy, infinite stream of live events.

        Errors from the notification mechanism are yielded as ERROR events
        and do not end the stream. The stream ends only after close() and
        cannot be restarted.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop watching and end the event stream."""
        pass
