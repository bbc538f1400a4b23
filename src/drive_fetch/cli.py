"""Command-line entry point — one subcommand per library operation."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Sequence
from typing import Any

from drive_fetch import __version__
from drive_fetch.config import TransferConfig, apply_overrides, load_config
from drive_fetch.drive.client import transfer_client_from_config
from drive_fetch.drive.urls import parse_url
from drive_fetch.errors import ConfigError, DriveFetchError
from drive_fetch.extract import extractall
from drive_fetch.orchestration.processor import folder_processor_from_config
from drive_fetch.transfer.cache import content_cache_from_config
from drive_fetch.transfer.download import Downloader

logger = logging.getLogger(__name__)

# Transfer flags as (flag, argparse kwargs); dest names map to config settings.
_TRANSFER_FLAGS: tuple[tuple[str, dict[str, Any]], ...] = (
    ("--proxy", {"help": "Proxy URL (e.g. http://host:port)"}),
    ("--speed", {"type": int, "help": "Download speed limit in bytes/sec (0 means unlimited)"}),
    ("--no-cookies", {"action": "store_true", "default": None, "help": "Do not use cookies"}),
    ("--no-verify", {"action": "store_true", "default": None, "help": "Do not verify TLS"}),
    ("--resume", {"action": "store_true", "default": None, "help": "Resume interrupted downloads"}),
    ("--user-agent", {"help": "User-Agent to use for requests"}),
    ("--cache-root", {"help": "Cache directory (default: ~/.cache/drive-fetch)"}),
)

_OVERRIDE_SETTINGS = (
    "proxy",
    "speed",
    "no-cookies",
    "no-verify",
    "resume",
    "fuzzy",
    "format",
    "user-agent",
    "quiet",
    "cache-root",
)


def _common_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("--config", help="YAML config file with default flag values")
    parent.add_argument("--quiet", action="store_true", default=None, help="Suppress logging")
    return parent


def _transfer_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    for flag, kwargs in _TRANSFER_FLAGS:
        parent.add_argument(flag, **kwargs)
    return parent


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Collect the transfer settings given explicitly on the command line."""
    overrides: dict[str, Any] = {}
    for setting in _OVERRIDE_SETTINGS:
        value = getattr(args, setting.replace("-", "_"), None)
        if value is not None:
            overrides[setting] = value
    return overrides


def _require(value: str | None, flag: str) -> str:
    if not value:
        raise ConfigError(f"flag {flag} is required")
    return value


def _cmd_version(args: argparse.Namespace, config: TransferConfig) -> int:
    print(__version__)
    return 0


def _cmd_download(args: argparse.Namespace, config: TransferConfig) -> int:
    url = _require(args.url, "--url")
    downloader = Downloader(transfer_client_from_config(config))
    result = downloader.download(url, args.output or "")
    print(f"Downloaded file saved to: {result}")
    return 0


def _cmd_cachedownload(args: argparse.Namespace, config: TransferConfig) -> int:
    url = _require(args.url, "--url")
    cache = content_cache_from_config(transfer_client_from_config(config))
    postprocess: Callable[[str], object] | None = extractall if args.extract else None
    result = cache.cached_download(url, args.output or "", args.hash or "", postprocess)
    print(f"Cached download complete. File saved to: {result}")
    return 0


def _cmd_downloadfolder(args: argparse.Namespace, config: TransferConfig) -> int:
    processor = folder_processor_from_config(config, allow_large=args.remaining_ok)
    files = processor.download_folder(url=args.url, folder_id=args.id, output=args.output or "")
    print("Downloaded files:")
    for path in files:
        print(f"  - {path}")
    return 0


def _cmd_listfolder(args: argparse.Namespace, config: TransferConfig) -> int:
    processor = folder_processor_from_config(config, allow_large=args.remaining_ok)
    entries = processor.list_folder(url=args.url, folder_id=args.id)
    print("Folder contents:")
    for entry in entries:
        if entry.is_folder:
            print(f"  Folder: {entry.path}")
        else:
            print(f"  File: {entry.path}")
            print(f"    Download URL: {entry.download_url}")
    return 0


def _cmd_extractall(args: argparse.Namespace, config: TransferConfig) -> int:
    archive = _require(args.archive, "--archive")
    files = extractall(archive, args.to or None)
    print("Extracted files:")
    for path in files:
        print(f"  - {path}")
    return 0


def _cmd_parseurl(args: argparse.Namespace, config: TransferConfig) -> int:
    url = _require(args.url, "--url")
    file_id, is_download_link = parse_url(url, warning=args.warn)
    print(f"File ID: {file_id}")
    print(f"Is Download Link: {str(is_download_link).lower()}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    common = _common_parent()
    transfer = _transfer_parent()

    parser = argparse.ArgumentParser(
        prog="drive-fetch",
        description="Download files and folders from Google Drive.",
    )
    sub = parser.add_subparsers(dest="command", metavar="<subcommand>")

    p = sub.add_parser("version", parents=[common], help="Print version information")
    p.set_defaults(handler=_cmd_version)

    p = sub.add_parser("download", parents=[common, transfer], help="Download a single file")
    p.add_argument("--url", help="URL of file to download (required)")
    p.add_argument("--output", help="Output file or directory")
    p.add_argument(
        "--fuzzy",
        action="store_true",
        default=None,
        help="Extract the file ID from any Drive URL",
    )
    p.add_argument("--format", help="Export format of Google Docs/Sheets/Slides (e.g. docx)")
    p.set_defaults(handler=_cmd_download)

    p = sub.add_parser(
        "cachedownload", parents=[common, transfer], help="Download a file using the cache"
    )
    p.add_argument("--url", help="URL of file to download (required)")
    p.add_argument("--output", help="Output path (default: a file under the cache root)")
    p.add_argument("--hash", help="Expected hash in the format <algo>:<hash_value>")
    p.add_argument("--extract", action="store_true", help="Extract the archive after downloading")
    p.set_defaults(handler=_cmd_cachedownload)

    for name, handler, help_text in (
        ("downloadfolder", _cmd_downloadfolder, "Download an entire Google Drive folder"),
        ("listfolder", _cmd_listfolder, "List contents of a Google Drive folder"),
    ):
        p = sub.add_parser(name, parents=[common, transfer], help=help_text)
        p.add_argument("--url", help="Folder URL (if empty, use --id)")
        p.add_argument("--id", help="Folder ID (if --url is empty)")
        p.add_argument(
            "--remaining-ok",
            action="store_true",
            help="Allow folder contents to reach the maximum listing size",
        )
        if name == "downloadfolder":
            p.add_argument("--output", help="Output directory")
        p.set_defaults(handler=handler)

    p = sub.add_parser("extractall", parents=[common], help="Extract a zip or tar archive")
    p.add_argument("--archive", help="Path to archive file to extract (required)")
    p.add_argument("--to", help="Destination directory (default: the archive's directory)")
    p.set_defaults(handler=_cmd_extractall)

    p = sub.add_parser("parseurl", parents=[common], help="Extract a file ID from a Drive URL")
    p.add_argument("--url", help="URL to parse (required)")
    p.add_argument(
        "--warn",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Warn if the URL is not a download link",
    )
    p.set_defaults(handler=_cmd_parseurl)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "handler", None):
        parser.print_help()
        return 2

    try:
        config = apply_overrides(load_config(args.config), _overrides(args))
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.WARNING if config.quiet else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return int(args.handler(args, config))
    except DriveFetchError as exc:
        logger.error("[main] %s failed: %s", args.command, exc)
        return 1
    except KeyboardInterrupt:
        logger.warning("[main] interrupted")
        return 130
