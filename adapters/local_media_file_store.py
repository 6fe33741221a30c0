"""Local filesystem media file store adapter."""
import logging
import os
import shutil
from pathlib import Path
from typing import Union

from domain.models import FileSnapshot
from ports.adapter_error import TerminalDispositionError, TransientIOError
from ports.media_file_store import MediaFileStore

logger = logging.getLogger(__name__)


class LocalMediaFileStore(MediaFileStore):
    """
    Local filesystem implementation of MediaFileStore.

    Relocation never overwrites an existing file: a clashing name gets the
    first free `_N` suffix before its extension. When a rename fails (for
    example across devices) the file is copied and the original removed.
    """

    def __init__(self, *stage_dirs: Union[str, Path, None]):
        """
        Initialize local media file store.

        Args:
            stage_dirs: Destination directories (done, failed) to create if
                they don't exist. None entries are ignored.
        """
        for stage_dir in stage_dirs:
            if stage_dir:
                Path(stage_dir).mkdir(parents=True, exist_ok=True)

    def stat(self, path: str) -> FileSnapshot:
        """
        Read size and modification time.

        Raises:
            TransientIOError: If the file doesn't exist or can't be accessed.
        """
        try:
            st = os.stat(path)
        except OSError as e:
            raise TransientIOError(
                code="STAT_FAILED",
                message=f"Cannot stat file: {path}",
                details={"path": path, "error": str(e)}
            ) from e

        return FileSnapshot(size=st.st_size, mtime_ns=st.st_mtime_ns)

    def relocate(self, path: str, dest_dir: str) -> str:
        """
        Move file into `dest_dir` under a name that doesn't clash.

        Returns:
            New file path.

        Raises:
            TerminalDispositionError: If both rename and copy fail.
        """
        source_path = Path(path)
        dest_path = unique_path(Path(dest_dir) / source_path.name)

        try:
            os.rename(source_path, dest_path)
            return str(dest_path)
        except OSError as e:
            logger.warning(f"Error moving {source_path.name} to {dest_dir}: {e}")

        try:
            shutil.copy2(source_path, dest_path)
        except OSError as e:
            self._discard_partial_copy(dest_path)
            raise TerminalDispositionError(
                code="COPY_FAILED",
                message=f"Failed to copy file: {source_path.name}",
                details={
                    "source_path": str(source_path),
                    "dest_path": str(dest_path),
                    "error": str(e)
                }
            ) from e

        try:
            os.remove(source_path)
        except OSError as e:
            logger.warning(f"Could not remove original file {source_path}: {e}")

        return str(dest_path)

    def delete(self, path: str) -> None:
        """
        Delete file.

        Raises:
            TransientIOError: If the file can't be removed.
        """
        try:
            os.remove(path)
        except OSError as e:
            raise TransientIOError(
                code="DELETE_FAILED",
                message=f"Failed to delete file: {path}",
                details={"path": path, "error": str(e)}
            ) from e

    def rename_with_suffix(self, path: str, suffix: str) -> str:
        """
        Rename file in place by appending `suffix`.

        Returns:
            New file path.

        Raises:
            TerminalDispositionError: If the rename fails.
        """
        dest_path = unique_path(Path(path + suffix))

        try:
            os.rename(path, dest_path)
        except OSError as e:
            raise TerminalDispositionError(
                code="RENAME_FAILED",
                message=f"Failed to rename file: {os.path.basename(path)}",
                details={
                    "source_path": path,
                    "dest_path": str(dest_path),
                    "error": str(e)
                }
            ) from e

        return str(dest_path)

    @staticmethod
    def _discard_partial_copy(dest_path: Path) -> None:
        try:
            if dest_path.exists():
                dest_path.unlink()
        except OSError as e:
            logger.warning(f"Could not remove partial copy {dest_path}: {e}")


def unique_path(path: Path) -> Path:
    """
    Return `path`, or the first `<stem>_N<ext>` sibling that doesn't exist.

    Only the final extension is kept after the counter:
    `clip.mp4.failed` -> `clip.mp4_1.failed`.
    """
    if not path.exists():
        return path

    base, ext = os.path.splitext(str(path))
    counter = 1
    while True:
        candidate = Path(f"{base}_{counter}{ext}")
        if not candidate.exists():
            return candidate
        counter += 1
