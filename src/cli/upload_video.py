"""
CLI script for uploading a single video to PeerTube.

Useful for retrying a file left in the watch folder after a failed upload.

Usage:
    python -m src.cli.upload_video --file video.mp4 --title "My Video"
"""

import argparse
import os
import sys

from adapters.peertube_media_uploader import PeerTubeMediaUploader
from domain.models import VideoAttributes
from ports.media_uploader import MediaUploaderError
from src.core.config import ConfigError, DEFAULT_CONFIG_FILE, get_config


def parse_args(argv: list[str] | None = None):
    """
    Parse command-line arguments for video upload.

    Args:
        argv: List of command-line arguments (defaults to sys.argv)

    Returns:
        Parsed arguments object
    """
    parser = argparse.ArgumentParser(
        description="Upload a video to PeerTube using the monitor's configured defaults",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src.cli.upload_video --file video.mp4
  python -m src.cli.upload_video --file video.mp4 --title "My Video"
  python -m src.cli.upload_video --file video.mp4 --config /etc/peertube-monitor/config.json
        """
    )

    parser.add_argument(
        "--file",
        required=True,
        help="Path to video file to upload"
    )

    parser.add_argument(
        "--title",
        default=None,
        help="Video title (default: file name without extension)"
    )

    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_FILE})"
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None):
    """
    Main entry point for video upload CLI.

    Args:
        argv: List of command-line arguments (defaults to sys.argv)
    """
    args = parse_args(argv)

    if not os.path.isfile(args.file):
        print(f"Error: video file not found: {args.file}", file=sys.stderr)
        sys.exit(1)

    title = args.title or os.path.splitext(os.path.basename(args.file))[0]

    try:
        config = get_config(args.config)

        uploader = PeerTubeMediaUploader(
            base_url=config.peertube.url,
            username=config.peertube.username,
            password=config.peertube.password,
        )

        attributes = VideoAttributes.from_defaults(title, config.peertube.defaults)
        result = uploader.upload(os.path.abspath(args.file), attributes)

        print(f"Uploaded video successfully. id={result.identifier}")
        print(f"Watch at: {config.peertube.url.rstrip('/')}/w/{result.identifier}")

    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except MediaUploaderError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
