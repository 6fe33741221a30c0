"""Domain models for folder monitoring and upload disposition."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


DEFAULT_VIDEO_EXTENSIONS = (".mp4", ".webm", ".mkv", ".avi", ".mov", ".flv")


def normalize_extension(extension: str) -> str:
    """Lowercase an extension and make sure it carries the leading dot."""
    ext = extension.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


class FileEventKind(str, Enum):
    """Kind of event flowing through the watch inbox."""
    CREATE = "CREATE"
    WRITE = "WRITE"
    REMOVE = "REMOVE"
    ERROR = "ERROR"

    # Synthetic events posted by the service itself
    SETTLE_CHECK = "SETTLE_CHECK"
    DISPOSED = "DISPOSED"


class PathState(str, Enum):
    """Lifecycle state of a watched path."""
    IDLE = "IDLE"
    PENDING = "PENDING"
    DISPOSING = "DISPOSING"


class OutcomeKind(str, Enum):
    """Disposition outcome kind."""
    SUCCESS = "SUCCESS"
    RETRYABLE_FAILURE = "RETRYABLE_FAILURE"
    TERMINAL_FAILURE = "TERMINAL_FAILURE"


@dataclass(frozen=True)
class WatchTarget:
    """
    Watched directory and its settle/retry policy.

    Immutable for the process lifetime. Extensions are normalized to
    lowercase with a leading dot.
    """
    path: str
    extensions: frozenset = frozenset(DEFAULT_VIDEO_EXTENSIONS)
    settle_seconds: float = 5.0
    max_retries: int = 3

    def __post_init__(self):
        normalized = frozenset(
            normalize_extension(ext) for ext in self.extensions if ext.strip()
        )
        object.__setattr__(self, "extensions", normalized)

        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.settle_seconds < 0:
            raise ValueError(f"settle_seconds must be >= 0, got {self.settle_seconds}")


@dataclass(frozen=True)
class FileSnapshot:
    """Size and modification time observed by a single stat call."""
    size: int
    mtime_ns: int


@dataclass
class PendingFile:
    """
    File awaiting settlement.

    Exists only while a settle-check is scheduled for the path.
    `generation` identifies the most recently scheduled check so that a check
    which fired after being superseded can be recognised and ignored.
    """
    path: str
    last_snapshot: FileSnapshot
    generation: int = 0
    timer: Any = None


@dataclass(frozen=True)
class FileEvent:
    """Single notification consumed by the watch service."""
    kind: FileEventKind
    path: str = ""
    generation: int = 0
    error: Optional[BaseException] = None


@dataclass
class VideoDefaults:
    """
    Static upload metadata applied to every video.

    Values are passed through to the media server verbatim.
    """
    category: int = 0
    licence: int = 0
    language: str = ""
    privacy: int = 1
    description: str = ""
    tags: list[str] = field(default_factory=list)
    download_enabled: bool = True
    comments_enabled: bool = True
    wait_transcoding: bool = True
    nsfw: bool = False
    channel_id: Optional[int] = None


@dataclass
class VideoAttributes:
    """Metadata sent along with an uploaded video."""
    name: str
    category: int = 0
    licence: int = 0
    language: str = ""
    privacy: int = 1
    description: str = ""
    tags: list[str] = field(default_factory=list)
    download_enabled: bool = True
    comments_enabled: bool = True
    wait_transcoding: bool = True
    nsfw: bool = False
    channel_id: Optional[int] = None

    @classmethod
    def from_defaults(cls, name: str, defaults: VideoDefaults) -> "VideoAttributes":
        """Build attributes for a video titled `name` from configured defaults."""
        return cls(
            name=name,
            category=defaults.category,
            licence=defaults.licence,
            language=defaults.language,
            privacy=defaults.privacy,
            description=defaults.description,
            tags=list(defaults.tags),
            download_enabled=defaults.download_enabled,
            comments_enabled=defaults.comments_enabled,
            wait_transcoding=defaults.wait_transcoding,
            nsfw=defaults.nsfw,
            channel_id=defaults.channel_id,
        )


@dataclass
class UploadResult:
    """Identifier and name of a video accepted by the media server."""
    identifier: str
    name: str = ""


@dataclass
class DispositionOutcome:
    """
    Result of one disposition pass over a settled file.

    `destination` is where the file ended up (None when deleted or left in
    place). `attempts` is the failure count recorded for the path.
    """
    kind: OutcomeKind
    path: str
    reason: Optional[str] = None
    attempts: int = 0
    destination: Optional[str] = None
    upload: Optional[UploadResult] = None

    @property
    def succeeded(self) -> bool:
        return self.kind == OutcomeKind.SUCCESS

    @property
    def terminal(self) -> bool:
        return self.kind != OutcomeKind.RETRYABLE_FAILURE
