"""Main CLI application for PeerTube folder monitoring."""
import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

from dotenv import load_dotenv

from adapters.local_media_file_store import LocalMediaFileStore
from adapters.peertube_media_uploader import PeerTubeMediaUploader
from adapters.timer_scheduler import TimerScheduler
from adapters.watchdog_event_source import WatchdogEventSource
from domain.retry_ledger import RetryLedger
from domain.upload_disposer import UploadDisposer
from domain.watch_service import WatchService
from ports.adapter_error import WatchSetupError
from ports.media_uploader import AuthError
from src.core.config import Config, ConfigError, DEFAULT_CONFIG_FILE, load_config

VERSION = "1.0.0"


def setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    """
    Configure logging.

    Args:
        verbose: Enable debug logging with source locations if True.
        log_file: Append to this file instead of writing to stderr.
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    if verbose:
        log_format = "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
    else:
        log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    handlers = None
    if log_file:
        handlers = [logging.FileHandler(log_file, mode="a", encoding="utf-8")]

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )

    # Reduce noise from HTTP and filesystem libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("watchdog").setLevel(logging.WARNING)


def create_watch_service(cfg: Config, uploader: PeerTubeMediaUploader) -> WatchService:
    """
    Wire up WatchService with its adapters.

    Args:
        cfg: Validated configuration.
        uploader: Authenticated PeerTube uploader.

    Returns:
        Configured WatchService instance.
    """
    target = cfg.watch_target()
    file_store = LocalMediaFileStore(cfg.watcher.done_path, cfg.watcher.failed_path)

    disposer = UploadDisposer(
        uploader=uploader,
        file_store=file_store,
        retry_ledger=RetryLedger(),
        defaults=cfg.peertube.defaults,
        max_retries=target.max_retries,
        done_dir=cfg.watcher.done_path or None,
        failed_dir=cfg.watcher.failed_path or None,
    )

    return WatchService(
        target=target,
        event_source=WatchdogEventSource(target.path),
        disposer=disposer,
        scheduler=TimerScheduler(),
        stat=file_store.stat,
        max_workers=cfg.watcher.workers,
    )


def install_signal_handlers(service: WatchService) -> None:
    """Stop the service on SIGINT/SIGTERM."""
    logger = logging.getLogger(__name__)

    def _handler(signum, _frame):
        logger.info("Shutdown signal received, stopping...")
        # stop() must not run inside the handler; see WatchService.stop
        threading.Thread(target=service.stop, name="shutdown", daemon=True).start()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="PeerTube Monitor - Upload videos dropped into a folder to PeerTube",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  PEERTUBE_URL        PeerTube server URL (overrides config file)
  PEERTUBE_USERNAME   PeerTube user name (overrides config file)
  PEERTUBE_PASSWORD   PeerTube password (overrides config file)

Examples:
  # Watch using ./config.json
  python -m app.main

  # Custom configuration file, verbose logging
  python -m app.main --config /etc/peertube-monitor/config.json --verbose
        """,
    )

    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_FILE})",
    )

    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose debug logging",
    )

    args = parser.parse_args(argv)

    if args.version:
        print(f"PeerTube Monitor v{VERSION}")
        sys.exit(0)

    # Load environment variables
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)
        print(f"Loaded environment from {env_file}")

    try:
        cfg = load_config(args.config)
        cfg.validate()
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(verbose=args.verbose or cfg.logging.verbose, log_file=cfg.logging.log_file or None)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info(f"PeerTube Monitor v{VERSION} starting...")
    logger.info("=" * 60)
    logger.info(f"Configuration loaded from: {args.config}")
    logger.info(f"Credentials loaded from: {cfg.credential_source()}")

    uploader = PeerTubeMediaUploader(
        base_url=cfg.peertube.url,
        username=cfg.peertube.username,
        password=cfg.peertube.password,
    )

    logger.info(f"Authenticating with PeerTube server: {cfg.peertube.url}")
    try:
        uploader.authenticate()
    except AuthError as e:
        logger.error(f"Authentication failed: {e}")
        sys.exit(1)
    logger.info("Authentication successful")

    service = create_watch_service(cfg, uploader)

    logger.info(f"Monitoring folder: {cfg.watcher.watch_path}")
    if cfg.watcher.done_path:
        logger.info(f"Success folder: {cfg.watcher.done_path}")
    else:
        logger.info("Success action: Delete files")
    if cfg.watcher.failed_path:
        logger.info(f"Failed folder: {cfg.watcher.failed_path}")
    else:
        logger.info(f"Failed action: Rename with {service.disposer.failed_suffix} extension")

    install_signal_handlers(service)

    try:
        service.run()
    except WatchSetupError as e:
        logger.error(f"Failed to create watcher: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Watcher error: {e}")
        sys.exit(1)
    finally:
        service.stop()

    logger.info("PeerTube Monitor stopped")


if __name__ == "__main__":
    main()
