"""Domain service for uploading settled files and disposing of them."""
import logging
import os
from typing import Optional

from domain.models import (
    DispositionOutcome,
    OutcomeKind,
    UploadResult,
    VideoAttributes,
    VideoDefaults,
)
from domain.retry_ledger import RetryLedger
from ports.adapter_error import AdapterError
from ports.media_file_store import MediaFileStore
from ports.media_uploader import MediaUploader, MediaUploaderError

logger = logging.getLogger(__name__)

DEFAULT_FAILED_SUFFIX = ".failed"


class UploadDisposer:
    """
    Orchestrates one upload attempt per settled file.

    Responsibilities:
    - Build video metadata from configured defaults
    - Invoke the media uploader
    - On success, move the file to the done directory or delete it
    - On failure, count the attempt and, once the retry limit is reached,
      move the file to the failed directory or rename it in place
    - Keep the retry ledger in step with terminal outcomes

    Retries are never self-scheduled: a retryable failure leaves the file in
    place until something triggers another disposition of the same path.
    """

    def __init__(
        self,
        uploader: MediaUploader,
        file_store: MediaFileStore,
        retry_ledger: RetryLedger,
        defaults: VideoDefaults,
        max_retries: int = 3,
        done_dir: Optional[str] = None,
        failed_dir: Optional[str] = None,
        failed_suffix: str = DEFAULT_FAILED_SUFFIX,
    ):
        """
        Initialize upload disposer.

        Args:
            uploader: Remote upload client.
            file_store: Store for relocating and deleting files.
            retry_ledger: Per-path failure counter.
            defaults: Static upload metadata.
            max_retries: Failed attempts after which a file is disposed as failed.
            done_dir: Destination for uploaded files. If None, they are deleted.
            failed_dir: Destination for failed files. If None, they are renamed
                in place with `failed_suffix`.
            failed_suffix: Suffix appended to failed files kept in place.
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")

        self.uploader = uploader
        self.file_store = file_store
        self.retry_ledger = retry_ledger
        self.defaults = defaults
        self.max_retries = max_retries
        self.done_dir = done_dir or None
        self.failed_dir = failed_dir or None
        self.failed_suffix = failed_suffix

    def build_attributes(self, path: str) -> VideoAttributes:
        """Video metadata for `path`, titled by its file name without extension."""
        filename = os.path.basename(path)
        name = os.path.splitext(filename)[0]
        return VideoAttributes.from_defaults(name, self.defaults)

    def dispose(self, path: str) -> DispositionOutcome:
        """
        Upload a settled file and dispose of it according to the outcome.

        Never raises for per-file problems; every failure is reported through
        the returned outcome and the log.

        Args:
            path: Absolute path of the settled file.

        Returns:
            DispositionOutcome describing what happened to the file.
        """
        logger.info(f"Starting upload: {path}")

        try:
            attributes = self.build_attributes(path)
            result = self.uploader.upload(path, attributes)
        except MediaUploaderError as e:
            logger.error(f"Upload failed: {path}: {e}")
            return self._handle_failure(path, str(e))
        except Exception as e:
            error_msg = f"Unexpected error during upload: {e}"
            logger.exception(f"{path}: {error_msg}")
            return self._handle_failure(path, error_msg)

        logger.info(f"Upload successful: {result.name or attributes.name} (id: {result.identifier})")
        return self._handle_success(path, result)

    def _handle_success(self, path: str, result: UploadResult) -> DispositionOutcome:
        attempts = self.retry_ledger.count(path)
        destination = None

        try:
            if self.done_dir:
                destination = self.file_store.relocate(path, self.done_dir)
                logger.info(f"Moved to done: {destination}")
            else:
                self.file_store.delete(path)
                logger.info(f"Deleted: {path}")
        except AdapterError as e:
            logger.error(f"Uploaded but could not dispose of {path}: {e}")
            return DispositionOutcome(
                kind=OutcomeKind.TERMINAL_FAILURE,
                path=path,
                reason=f"Uploaded but disposition failed: {e}",
                attempts=attempts,
                upload=result,
            )
        finally:
            self.retry_ledger.clear(path)

        return DispositionOutcome(
            kind=OutcomeKind.SUCCESS,
            path=path,
            attempts=attempts,
            destination=destination,
            upload=result,
        )

    def _handle_failure(self, path: str, reason: str) -> DispositionOutcome:
        attempts = self.retry_ledger.record_failure(path)

        if attempts < self.max_retries:
            logger.warning(f"Will retry {path} ({attempts}/{self.max_retries})")
            return DispositionOutcome(
                kind=OutcomeKind.RETRYABLE_FAILURE,
                path=path,
                reason=reason,
                attempts=attempts,
            )

        logger.error(f"Max retries reached for {path} ({attempts}/{self.max_retries})")

        destination = None
        try:
            if self.failed_dir:
                destination = self.file_store.relocate(path, self.failed_dir)
                logger.info(f"Moved to failed: {destination}")
            else:
                destination = self.file_store.rename_with_suffix(path, self.failed_suffix)
                logger.info(f"Renamed to: {destination}")
        except AdapterError as e:
            logger.error(f"Could not dispose of failed file {path}, left in place: {e}")
            reason = f"{reason}; disposition failed: {e}"
        finally:
            self.retry_ledger.clear(path)

        return DispositionOutcome(
            kind=OutcomeKind.TERMINAL_FAILURE,
            path=path,
            reason=reason,
            attempts=attempts,
            destination=destination,
        )
