"""Interface for media file access and disposition on storage."""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.models import FileSnapshot


class MediaFileStore(ABC):
    """
    Filesystem operations needed to settle and dispose media files.

    Single adapter per storage type (local filesystem, network share, etc).
    """

    @abstractmethod
    def stat(self, path: str) -> FileSnapshot:
        """
        Read the current size and modification time of a file.

        Raises:
            TransientIOError: If the file vanished or cannot be read.
        """
        pass

    @abstractmethod
    def relocate(self, path: str, dest_dir: str) -> str:
        """
        Move a file into `dest_dir` without overwriting anything there.

        A name clash gets a numeric suffix before the extension
        (`video.mp4` -> `video_1.mp4`). A failed rename falls back to
        copy-then-delete.

        Returns:
            Final path of the relocated file.

        Raises:
            TerminalDispositionError: If both the rename and the copy fail.
                The original file is left untouched.
        """
        pass

    @abstractmethod
    def delete(self, path: str) -> None:
        """
        Delete a file.

        Raises:
            TransientIOError: If the file cannot be removed.
        """
        pass

    @abstractmethod
    def rename_with_suffix(self, path: str, suffix: str) -> str:
        """
        Rename a file in place by appending `suffix` to its name.

        Returns:
            New path of the file.

        Raises:
            TerminalDispositionError: If the rename fails.
        """
        pass
