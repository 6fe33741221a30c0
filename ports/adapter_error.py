"""Unified adapter error types."""
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class AdapterError(Exception):
    """
    Unified error type for all adapter failures.

    Allows adapters to return structured error information without coupling
    domain logic to specific error reasons or OS details.

    The disposer and watch service interpret the subclass and apply the
    appropriate policy (leave the file in place, log, abort startup).
    """
    code: str
    message: str
    details: Optional[Any] = None

    def __str__(self) -> str:
        if self.details:
            return f"[{self.code}] {self.message} (details: {self.details})"
        return f"[{self.code}] {self.message}"


class TransientIOError(AdapterError):
    """
    Stat, delete or rename failure during processing.

    Logged; the file is left in place. Never fatal to the watch loop.
    """


class TerminalDispositionError(AdapterError):
    """
    Both the move and the copy fallback failed while relocating a file.

    The file is left at its original location for manual intervention.
    """


class WatchSetupError(AdapterError):
    """Watch directory is missing or cannot be watched. Fatal at startup."""
