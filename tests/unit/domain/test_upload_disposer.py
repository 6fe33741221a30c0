"""Unit tests for UploadDisposer."""
from unittest.mock import Mock

import pytest

from adapters.local_media_file_store import LocalMediaFileStore
from domain.models import OutcomeKind, UploadResult, VideoAttributes, VideoDefaults
from domain.retry_ledger import RetryLedger
from domain.upload_disposer import UploadDisposer
from ports.adapter_error import TerminalDispositionError, TransientIOError
from ports.media_file_store import MediaFileStore
from ports.media_uploader import AuthError, MediaUploader, UploadError


@pytest.fixture
def mock_uploader():
    """Mock media uploader that succeeds."""
    uploader = Mock(spec=MediaUploader)
    uploader.upload.return_value = UploadResult(identifier="uuid-123", name="clip")
    return uploader


@pytest.fixture
def defaults():
    return VideoDefaults(
        category=15,
        licence=1,
        language="en",
        privacy=2,
        description="Uploaded by the folder monitor",
        tags=["auto", "upload"],
        download_enabled=False,
        comments_enabled=False,
        wait_transcoding=True,
        nsfw=False,
    )


@pytest.fixture
def dirs(tmp_path):
    watch = tmp_path / "watch"
    watch.mkdir()
    return {
        "watch": watch,
        "done": tmp_path / "done",
        "failed": tmp_path / "failed",
    }


@pytest.fixture
def clip(dirs):
    path = dirs["watch"] / "clip.mp4"
    path.write_bytes(b"fake video content")
    return path


def make_disposer(uploader, defaults, done=None, failed=None, max_retries=3, ledger=None, store=None):
    return UploadDisposer(
        uploader=uploader,
        file_store=store or LocalMediaFileStore(done, failed),
        retry_ledger=ledger if ledger is not None else RetryLedger(),
        defaults=defaults,
        max_retries=max_retries,
        done_dir=str(done) if done else None,
        failed_dir=str(failed) if failed else None,
    )


@pytest.mark.unit
class TestUploadDisposerAttributes:

    def test_title_is_file_name_without_extension(self, mock_uploader, defaults):
        disposer = make_disposer(mock_uploader, defaults)

        attributes = disposer.build_attributes("/watch/My Holiday.final.mp4")

        assert attributes.name == "My Holiday.final"

    def test_defaults_are_passed_through(self, mock_uploader, defaults, clip):
        disposer = make_disposer(mock_uploader, defaults)

        disposer.dispose(str(clip))

        mock_uploader.upload.assert_called_once()
        path, attributes = mock_uploader.upload.call_args[0]
        assert path == str(clip)
        assert attributes == VideoAttributes(
            name="clip",
            category=15,
            licence=1,
            language="en",
            privacy=2,
            description="Uploaded by the folder monitor",
            tags=["auto", "upload"],
            download_enabled=False,
            comments_enabled=False,
            wait_transcoding=True,
            nsfw=False,
        )

    def test_rejects_zero_max_retries(self, mock_uploader, defaults):
        with pytest.raises(ValueError):
            make_disposer(mock_uploader, defaults, max_retries=0)


@pytest.mark.unit
class TestUploadDisposerSuccess:

    def test_success_moves_file_to_done(self, mock_uploader, defaults, dirs, clip):
        disposer = make_disposer(mock_uploader, defaults, done=dirs["done"])

        outcome = disposer.dispose(str(clip))

        assert outcome.kind == OutcomeKind.SUCCESS
        assert outcome.terminal
        assert outcome.upload.identifier == "uuid-123"
        assert not clip.exists()
        assert (dirs["done"] / "clip.mp4").read_bytes() == b"fake video content"
        assert outcome.destination == str(dirs["done"] / "clip.mp4")

    def test_success_without_done_dir_deletes_file(self, mock_uploader, defaults, clip):
        disposer = make_disposer(mock_uploader, defaults)

        outcome = disposer.dispose(str(clip))

        assert outcome.kind == OutcomeKind.SUCCESS
        assert outcome.destination is None
        assert not clip.exists()

    def test_success_does_not_overwrite_existing_done_file(self, mock_uploader, defaults, dirs, clip):
        dirs["done"].mkdir()
        (dirs["done"] / "clip.mp4").write_bytes(b"earlier upload")
        disposer = make_disposer(mock_uploader, defaults, done=dirs["done"])

        outcome = disposer.dispose(str(clip))

        assert outcome.destination == str(dirs["done"] / "clip_1.mp4")
        assert (dirs["done"] / "clip.mp4").read_bytes() == b"earlier upload"
        assert (dirs["done"] / "clip_1.mp4").read_bytes() == b"fake video content"

    def test_success_clears_retry_ledger(self, mock_uploader, defaults, clip):
        ledger = RetryLedger()
        ledger.record_failure(str(clip))
        ledger.record_failure(str(clip))
        disposer = make_disposer(mock_uploader, defaults, ledger=ledger)

        outcome = disposer.dispose(str(clip))

        assert outcome.kind == OutcomeKind.SUCCESS
        assert outcome.attempts == 2
        assert ledger.count(str(clip)) == 0

    def test_relocation_failure_after_upload_is_terminal(self, mock_uploader, defaults, clip):
        store = Mock(spec=MediaFileStore)
        store.relocate.side_effect = TerminalDispositionError(
            code="COPY_FAILED", message="Failed to copy file: clip.mp4"
        )
        disposer = make_disposer(mock_uploader, defaults, done="/done", store=store)

        outcome = disposer.dispose(str(clip))

        assert outcome.kind == OutcomeKind.TERMINAL_FAILURE
        assert "COPY_FAILED" in outcome.reason
        assert outcome.upload.identifier == "uuid-123"
        assert clip.exists()

    def test_delete_failure_after_upload_is_terminal(self, mock_uploader, defaults, clip):
        store = Mock(spec=MediaFileStore)
        store.delete.side_effect = TransientIOError(code="DELETE_FAILED", message="busy")
        disposer = make_disposer(mock_uploader, defaults, store=store)

        outcome = disposer.dispose(str(clip))

        assert outcome.kind == OutcomeKind.TERMINAL_FAILURE
        assert "DELETE_FAILED" in outcome.reason


@pytest.mark.unit
class TestUploadDisposerFailure:

    def test_failure_below_limit_leaves_file_in_place(self, mock_uploader, defaults, dirs, clip):
        mock_uploader.upload.side_effect = UploadError("Upload failed: 503", status_code=503)
        ledger = RetryLedger()
        disposer = make_disposer(mock_uploader, defaults, failed=dirs["failed"], ledger=ledger)

        outcome = disposer.dispose(str(clip))

        assert outcome.kind == OutcomeKind.RETRYABLE_FAILURE
        assert not outcome.terminal
        assert outcome.attempts == 1
        assert "503" in outcome.reason
        assert clip.exists()
        assert list(dirs["failed"].iterdir()) == []
        assert ledger.count(str(clip)) == 1

    def test_reaching_limit_moves_to_failed_dir(self, mock_uploader, defaults, dirs, clip):
        mock_uploader.upload.side_effect = UploadError("Upload failed: 500")
        ledger = RetryLedger()
        disposer = make_disposer(mock_uploader, defaults, failed=dirs["failed"], ledger=ledger)

        kinds = [disposer.dispose(str(clip)).kind for _ in range(3)]

        assert kinds == [
            OutcomeKind.RETRYABLE_FAILURE,
            OutcomeKind.RETRYABLE_FAILURE,
            OutcomeKind.TERMINAL_FAILURE,
        ]
        assert not clip.exists()
        assert (dirs["failed"] / "clip.mp4").exists()
        assert ledger.count(str(clip)) == 0

    def test_reaching_limit_without_failed_dir_renames_in_place(self, mock_uploader, defaults, dirs, clip):
        mock_uploader.upload.side_effect = UploadError("Upload failed: 500")
        disposer = make_disposer(mock_uploader, defaults, max_retries=1)

        outcome = disposer.dispose(str(clip))

        assert outcome.kind == OutcomeKind.TERMINAL_FAILURE
        assert outcome.terminal and not outcome.succeeded
        assert outcome.destination == str(dirs["watch"] / "clip.mp4.failed")
        assert not clip.exists()
        assert (dirs["watch"] / "clip.mp4.failed").exists()

    def test_auth_error_counts_as_failure(self, mock_uploader, defaults, clip):
        mock_uploader.upload.side_effect = AuthError("Authentication required")
        disposer = make_disposer(mock_uploader, defaults)

        outcome = disposer.dispose(str(clip))

        assert outcome.kind == OutcomeKind.RETRYABLE_FAILURE
        assert "Authentication" in outcome.reason

    def test_unexpected_error_counts_as_failure(self, mock_uploader, defaults, clip):
        mock_uploader.upload.side_effect = RuntimeError("boom")
        disposer = make_disposer(mock_uploader, defaults)

        outcome = disposer.dispose(str(clip))

        assert outcome.kind == OutcomeKind.RETRYABLE_FAILURE
        assert "boom" in outcome.reason

    def test_failed_disposition_error_still_clears_ledger(self, mock_uploader, defaults, clip):
        mock_uploader.upload.side_effect = UploadError("Upload failed: 500")
        store = Mock(spec=MediaFileStore)
        store.rename_with_suffix.side_effect = TerminalDispositionError(
            code="RENAME_FAILED", message="Failed to rename file: clip.mp4"
        )
        ledger = RetryLedger()
        disposer = make_disposer(mock_uploader, defaults, max_retries=1, ledger=ledger, store=store)

        outcome = disposer.dispose(str(clip))

        assert outcome.kind == OutcomeKind.TERMINAL_FAILURE
        assert outcome.destination is None
        assert "RENAME_FAILED" in outcome.reason
        assert ledger.count(str(clip)) == 0
        assert clip.exists()

    def test_failures_then_success_ends_in_done(self, mock_uploader, defaults, dirs, clip):
        mock_uploader.upload.side_effect = [
            UploadError("Upload failed: 503"),
            UploadError("Upload failed: 503"),
            UploadResult(identifier="uuid-456", name="clip"),
        ]
        ledger = RetryLedger()
        disposer = make_disposer(
            mock_uploader, defaults, done=dirs["done"], failed=dirs["failed"], ledger=ledger
        )

        outcomes = [disposer.dispose(str(clip)) for _ in range(3)]

        assert outcomes[-1].kind == OutcomeKind.SUCCESS
        assert ledger.count(str(clip)) == 0
        assert (dirs["done"] / "clip.mp4").exists()
        assert list(dirs["failed"].iterdir()) == []
