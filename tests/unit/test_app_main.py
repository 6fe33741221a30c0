"""
Unit tests for the monitor entry point wiring.

Tests that configuration reaches the watch service and its adapters, and
that shutdown signals stop the service off the signal handler.
"""

import signal
import sys
import time
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app import main as app_main
from adapters.watchdog_event_source import WatchdogEventSource
from domain.watch_service import WatchService
from ports.media_uploader import MediaUploader
from src.core.config import Config, PeerTubeConfig, WatcherConfig


@pytest.fixture
def watch_config(tmp_path):
    watch_dir = tmp_path / "in"
    watch_dir.mkdir()
    return Config(
        peertube=PeerTubeConfig(url="https://peertube.example.org", username="alice", password="pw"),
        watcher=WatcherConfig(
            watch_path=str(watch_dir),
            done_path=str(tmp_path / "done"),
            failed_path="",
            video_extensions=[".mkv"],
            settle_time=7,
            max_retries=5,
            workers=4,
        ),
    )


@pytest.mark.unit
def test_create_watch_service_applies_config(watch_config, tmp_path):
    uploader = Mock(spec=MediaUploader)

    service = app_main.create_watch_service(watch_config, uploader)
    try:
        assert service.disposer.uploader is uploader
        assert service.disposer.done_dir == str(tmp_path / "done")
        assert service.disposer.failed_dir is None
        assert service.disposer.max_retries == 5
        assert service.target.settle_seconds == 7.0
        assert service.target.extensions == frozenset([".mkv"])
        assert service._executor._max_workers == 4
        assert (tmp_path / "done").is_dir()

        assert isinstance(service.event_source, WatchdogEventSource)
        assert service.event_source.watch_path == str(tmp_path / "in")
    finally:
        service.stop()


@pytest.mark.unit
def test_create_watch_service_shares_retry_ledger(watch_config):
    service = app_main.create_watch_service(watch_config, Mock(spec=MediaUploader))
    try:
        assert service.retry_ledger is service.disposer.retry_ledger
    finally:
        service.stop()


@pytest.mark.unit
def test_signal_handlers_stop_service(monkeypatch):
    handlers = {}
    monkeypatch.setattr(app_main.signal, "signal", lambda signum, handler: handlers.update({signum: handler}))
    service = Mock(spec=WatchService)

    app_main.install_signal_handlers(service)

    assert set(handlers) == {signal.SIGINT, signal.SIGTERM}

    handlers[signal.SIGTERM](signal.SIGTERM, None)
    for _ in range(50):
        if service.stop.called:
            break
        time.sleep(0.05)

    service.stop.assert_called_once_with()
