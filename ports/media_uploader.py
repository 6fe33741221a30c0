"""Interface for media uploading (e.g., PeerTube)."""
from abc import ABC, abstractmethod
from typing import Optional

from domain.models import UploadResult, VideoAttributes


class MediaUploader(ABC):
    """
    Interface for the remote upload client.

    Implementation examples: PeerTube API, a fake uploader for tests.
    """

    @abstractmethod
    def authenticate(self) -> None:
        """
        Obtain credentials usable for subsequent uploads.

        Raises:
            AuthError: If the server rejects the credentials or is unreachable.
        """
        pass

    @abstractmethod
    def upload(self, path: str, attributes: VideoAttributes) -> UploadResult:
        """
        Upload a complete video file.

        Args:
            path: Absolute path to the video file.
            attributes: Metadata for the new video.

        Returns:
            UploadResult with the server-side identifier.

        Raises:
            AuthError: If authentication is required and fails.
            UploadError: If the upload is rejected or the transfer fails.
        """
        pass


class MediaUploaderError(Exception):
    """Base exception for media uploader errors."""
    pass


class AuthError(MediaUploaderError):
    """Credentials were rejected or could not be obtained."""
    pass


class UploadError(MediaUploaderError):
    """
    Upload failed.

    Always treated as retryable by the disposer, up to the retry limit.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
