"""
Configuration module for the application.

Reads the JSON configuration file, applies defaults and lets environment
variables (optionally from a .env file) override the PeerTube credentials.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from domain.models import DEFAULT_VIDEO_EXTENSIONS, VideoDefaults, WatchTarget

DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_SETTLE_TIME = 5
DEFAULT_MAX_RETRIES = 3
DEFAULT_WORKERS = 2

ENV_URL = "PEERTUBE_URL"
ENV_USERNAME = "PEERTUBE_USERNAME"
ENV_PASSWORD = "PEERTUBE_PASSWORD"


class ConfigError(Exception):
    """Configuration file is unreadable or invalid."""
    pass


@dataclass
class PeerTubeConfig:
    """PeerTube server, credentials and upload defaults."""
    url: str = ""
    username: str = ""
    password: str = ""
    defaults: VideoDefaults = field(default_factory=VideoDefaults)


@dataclass
class WatcherConfig:
    """
    Watched folder and disposition settings.

    Attributes:
        watch_path: Folder monitored for new videos.
        done_path: Where uploaded videos go. Empty means delete them.
        failed_path: Where failed videos go. Empty means rename with .failed.
        video_extensions: File extensions treated as videos.
        settle_time: Seconds a file must stay unchanged before upload.
        max_retries: Failed uploads before a file is disposed as failed.
        workers: Concurrent uploads.
    """
    watch_path: str = ""
    done_path: str = ""
    failed_path: str = ""
    video_extensions: list[str] = field(default_factory=lambda: list(DEFAULT_VIDEO_EXTENSIONS))
    settle_time: float = DEFAULT_SETTLE_TIME
    max_retries: int = DEFAULT_MAX_RETRIES
    workers: int = DEFAULT_WORKERS


@dataclass
class LoggingConfig:
    log_file: str = ""
    verbose: bool = False


@dataclass
class Config:
    """Application configuration."""
    peertube: PeerTubeConfig = field(default_factory=PeerTubeConfig)
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def watch_target(self) -> WatchTarget:
        return WatchTarget(
            path=self.watcher.watch_path,
            extensions=frozenset(self.watcher.video_extensions),
            settle_seconds=float(self.watcher.settle_time),
            max_retries=self.watcher.max_retries,
        )

    def validate(self) -> None:
        """
        Check required settings and create the configured directories.

        Raises:
            ConfigError: If a required value is missing or a directory can't
                be created.
        """
        required = {
            "peertube.url": self.peertube.url,
            "peertube.username": self.peertube.username,
            "peertube.password": self.peertube.password,
            "watcher.watchPath": self.watcher.watch_path,
        }
        for name, value in required.items():
            if not value:
                raise ConfigError(f"{name} is required")

        if self.watcher.max_retries < 1:
            raise ConfigError("watcher.maxRetries must be at least 1")
        if self.watcher.settle_time < 0:
            raise ConfigError("watcher.settleTime must not be negative")

        for path in (self.watcher.watch_path, self.watcher.done_path, self.watcher.failed_path):
            if path:
                try:
                    Path(path).mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise ConfigError(f"creating directory {path}: {e}") from e

    def credential_source(self) -> str:
        """Describe where the PeerTube credentials came from."""
        username = os.getenv(ENV_USERNAME)
        password = os.getenv(ENV_PASSWORD)

        if username and password:
            return "environment variables"
        if username or password:
            return "mixed (config file + environment variables)"
        return "config file"


def load_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """
    Load configuration from a JSON file.

    Missing settle time, retry count and extensions fall back to defaults.
    PEERTUBE_URL, PEERTUBE_USERNAME and PEERTUBE_PASSWORD override the file.
    Relative folder paths are made absolute.

    Raises:
        ConfigError: If the file can't be read or parsed.
    """
    load_dotenv()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"reading config file: {e}") from e
    except ValueError as e:
        raise ConfigError(f"parsing config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("parsing config file: top level must be an object")

    try:
        cfg = Config(
            peertube=_peertube_config(data.get("peertube") or {}),
            watcher=_watcher_config(data.get("watcher") or {}),
            logging=_logging_config(data.get("logging") or {}),
        )
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigError(f"parsing config file: {e}") from e

    _apply_env_overrides(cfg)

    for attr in ("watch_path", "done_path", "failed_path"):
        value = getattr(cfg.watcher, attr)
        if value and not os.path.isabs(value):
            setattr(cfg.watcher, attr, os.path.abspath(value))

    return cfg


# Module-level cache for configuration
_config_instance: Config | None = None


def get_config(path: Optional[str] = None) -> Config:
    """
    Get application configuration (singleton pattern).

    The file path defaults to PEERTUBE_MONITOR_CONFIG or config.json.
    """
    global _config_instance

    if _config_instance is not None:
        return _config_instance

    path = path or os.getenv("PEERTUBE_MONITOR_CONFIG", DEFAULT_CONFIG_FILE)
    _config_instance = load_config(path)
    return _config_instance


def _peertube_config(data: dict[str, Any]) -> PeerTubeConfig:
    defaults = data.get("defaults") or {}
    channel_id = defaults.get("channelId")
    return PeerTubeConfig(
        url=data.get("url", ""),
        username=data.get("username", ""),
        password=data.get("password", ""),
        defaults=VideoDefaults(
            category=int(defaults.get("category", 0)),
            licence=int(defaults.get("licence", 0)),
            language=defaults.get("language", ""),
            privacy=int(defaults.get("privacy", 1)),
            description=defaults.get("description", ""),
            tags=list(defaults.get("tags") or []),
            download_enabled=bool(defaults.get("downloadEnabled", True)),
            comments_enabled=bool(defaults.get("commentsEnabled", True)),
            wait_transcoding=bool(defaults.get("waitTranscoding", True)),
            nsfw=bool(defaults.get("nsfw", False)),
            channel_id=int(channel_id) if channel_id is not None else None,
        ),
    )


def _watcher_config(data: dict[str, Any]) -> WatcherConfig:
    # Zero means "not set", as in the documented config file format
    return WatcherConfig(
        watch_path=data.get("watchPath", ""),
        done_path=data.get("donePath", ""),
        failed_path=data.get("failedPath", ""),
        video_extensions=list(data.get("videoExtensions") or DEFAULT_VIDEO_EXTENSIONS),
        settle_time=float(data.get("settleTime") or DEFAULT_SETTLE_TIME),
        max_retries=int(data.get("maxRetries") or DEFAULT_MAX_RETRIES),
        workers=int(data.get("workers") or DEFAULT_WORKERS),
    )


def _logging_config(data: dict[str, Any]) -> LoggingConfig:
    return LoggingConfig(
        log_file=data.get("logFile", ""),
        verbose=bool(data.get("verbose", False)),
    )


def _apply_env_overrides(cfg: Config) -> None:
    username = os.getenv(ENV_USERNAME)
    if username:
        cfg.peertube.username = username

    password = os.getenv(ENV_PASSWORD)
    if password:
        cfg.peertube.password = password

    url = os.getenv(ENV_URL)
    if url:
        cfg.peertube.url = url
