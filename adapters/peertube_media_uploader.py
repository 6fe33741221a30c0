"""PeerTube API media uploader implementation."""
from __future__ import annotations

import logging
import mimetypes
import os
from typing import Optional

import requests

from domain.models import UploadResult, VideoAttributes
from ports.media_uploader import AuthError, MediaUploader, UploadError

logger = logging.getLogger(__name__)

# PeerTube VideoCommentPolicy.DISABLED
COMMENTS_POLICY_DISABLED = "2"


class PeerTubeMediaUploader(MediaUploader):
    """
    PeerTube REST API media uploader.

    Handles OAuth2 password-grant authentication and multipart video upload.
    The access token is obtained lazily and renewed once when the server
    answers 401 to an upload.
    """

    DEFAULT_TIMEOUT = 30 * 60  # Large uploads

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize PeerTube uploader.

        Args:
            base_url: Server URL, e.g. https://peertube.example.org
            username: Account user name.
            password: Account password.
            session: Optional requests session (tests inject a mock).
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.session = session or requests.Session()
        self.timeout = timeout
        self.token: Optional[str] = None
        self._default_channel_id: Optional[int] = None

    def authenticate(self) -> None:
        """
        Obtain an access token with the account credentials.

        Raises:
            AuthError: If any step of the token exchange fails.
        """
        try:
            resp = self.session.get(
                f"{self.base_url}/api/v1/oauth-clients/local",
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"Getting oauth clients: {e}") from e

        if resp.status_code != 200:
            raise AuthError(
                f"OAuth clients request failed: {resp.status_code} - {_body(resp)}"
            )

        try:
            client = resp.json()
            token_data = {
                "client_id": client["client_id"],
                "client_secret": client["client_secret"],
                "grant_type": "password",
                "response_type": "code",
                "username": self.username,
                "password": self.password,
            }
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError(f"Decoding client credentials: {e}") from e

        try:
            resp = self.session.post(
                f"{self.base_url}/api/v1/users/token",
                data=token_data,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"Token request: {e}") from e

        if resp.status_code != 200:
            raise AuthError(f"Authentication failed: {resp.status_code} - {_body(resp)}")

        try:
            self.token = resp.json()["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError(f"Decoding auth response: {e}") from e

        logger.debug(f"Authenticated as {self.username} on {self.base_url}")

    def upload(self, path: str, attributes: VideoAttributes) -> UploadResult:
        """
        Upload a video file.

        Raises:
            AuthError: If authentication is required and fails.
            UploadError: If the upload fails.
        """
        if self.token is None:
            try:
                self.authenticate()
            except AuthError as e:
                raise AuthError(f"Authentication required: {e}") from e

        resp = self._post_video(path, attributes)

        if resp.status_code == 401:
            logger.info("Access token rejected, re-authenticating")
            self.token = None
            self.authenticate()
            resp = self._post_video(path, attributes)

        if resp.status_code != 200:
            raise UploadError(
                f"Upload failed: {resp.status_code} - {_body(resp)}",
                status_code=resp.status_code,
            )

        try:
            video = resp.json()["video"]
        except (ValueError, KeyError, TypeError) as e:
            raise UploadError(f"Decoding upload response: {e}") from e

        return UploadResult(
            identifier=str(video.get("uuid") or video.get("id")),
            name=video.get("name") or attributes.name,
        )

    def _post_video(self, path: str, attributes: VideoAttributes) -> requests.Response:
        fields = self._form_fields(attributes)
        filename = os.path.basename(path)
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

        try:
            with open(path, "rb") as video_file:
                logger.debug(f"Uploading video file: {path}")
                return self.session.post(
                    f"{self.base_url}/api/v1/videos/upload",
                    headers={"Authorization": f"Bearer {self.token}"},
                    data=fields,
                    files={"videofile": (filename, video_file, content_type)},
                    timeout=self.timeout,
                )
        except OSError as e:
            raise UploadError(f"Opening video file: {e}") from e
        except requests.RequestException as e:
            raise UploadError(f"Upload request: {e}") from e

    def _form_fields(self, attributes: VideoAttributes) -> list[tuple[str, str]]:
        """
        Multipart form fields for an upload.

        A list of pairs rather than a dict so that `tags[]` can repeat.
        """
        fields = [
            ("name", attributes.name),
            ("channelId", str(self._channel_id(attributes))),
            ("privacy", str(attributes.privacy)),
            ("downloadEnabled", _bool(attributes.download_enabled)),
            ("waitTranscoding", _bool(attributes.wait_transcoding)),
            ("nsfw", _bool(attributes.nsfw)),
        ]

        if attributes.category:
            fields.append(("category", str(attributes.category)))
        if attributes.licence:
            fields.append(("licence", str(attributes.licence)))
        if attributes.language:
            fields.append(("language", attributes.language))
        if attributes.description:
            fields.append(("description", attributes.description))
        if not attributes.comments_enabled:
            fields.append(("commentsPolicy", COMMENTS_POLICY_DISABLED))

        for tag in attributes.tags:
            fields.append(("tags[]", tag))

        return fields

    def _channel_id(self, attributes: VideoAttributes) -> int:
        """Configured channel, or the account's first channel."""
        if attributes.channel_id is not None:
            return attributes.channel_id
        if self._default_channel_id is not None:
            return self._default_channel_id

        resp = self._get_me()

        if resp.status_code == 401:
            logger.info("Access token rejected, re-authenticating")
            self.token = None
            self.authenticate()
            resp = self._get_me()

        if resp.status_code != 200:
            raise UploadError(
                f"Fetching user channels failed: {resp.status_code} - {_body(resp)}",
                status_code=resp.status_code,
            )

        try:
            self._default_channel_id = int(resp.json()["videoChannels"][0]["id"])
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise UploadError(f"No video channel available for {self.username}: {e}") from e

        logger.debug(f"Using default channel id {self._default_channel_id}")
        return self._default_channel_id

    def _get_me(self) -> requests.Response:
        try:
            return self.session.get(
                f"{self.base_url}/api/v1/users/me",
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UploadError(f"Fetching user channels: {e}") from e


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _body(resp: requests.Response) -> str:
    return (resp.text or "")[:500]
