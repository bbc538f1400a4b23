"""Google Drive URL classification and file ID extraction."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING
from urllib.parse import parse_qs, urlencode, urlparse

if TYPE_CHECKING:
    from drive_fetch.config import TransferConfig

logger = logging.getLogger(__name__)

DRIVE_HOSTS = frozenset({"drive.google.com", "docs.google.com"})
DOWNLOAD_PATH_SUFFIX = "/uc"
FILE_DOWNLOAD_URL = "https://drive.google.com/uc"
FOLDER_URL = "https://drive.google.com/drive/folders/"
DOCS_BASE_URL = "https://docs.google.com"

# Native document kinds and the format they export to when none is requested.
EXPORT_DEFAULT_FORMATS: dict[str, str] = {
    "document": "docx",
    "spreadsheets": "xlsx",
    "presentation": "pptx",
}

# Ordered path templates; the first match wins. The id capture is non-greedy.
_PATH_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("file", re.compile(r"^/file/d/(.*?)/(edit|view)$")),
    ("file", re.compile(r"^/file/u/[0-9]+/d/(.*?)/(edit|view)$")),
    ("document", re.compile(r"^/document/d/(.*?)/(edit|htmlview|view)$")),
    ("document", re.compile(r"^/document/u/[0-9]+/d/(.*?)/(edit|htmlview|view)$")),
    ("presentation", re.compile(r"^/presentation/d/(.*?)/(edit|htmlview|view)$")),
    ("presentation", re.compile(r"^/presentation/u/[0-9]+/d/(.*?)/(edit|htmlview|view)$")),
    ("spreadsheets", re.compile(r"^/spreadsheets/d/(.*?)/(edit|htmlview|view)$")),
    ("spreadsheets", re.compile(r"^/spreadsheets/u/[0-9]+/d/(.*?)/(edit|htmlview|view)$")),
)


def is_drive_url(url: str) -> bool:
    """Return True when the URL's host is one of the Google Drive hosts."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return False
    return host in DRIVE_HOSTS


def _match_path(path: str) -> tuple[str, str]:
    """Return ``(kind, file_id)`` for the first matching path template, or ``("", "")``."""
    for kind, pattern in _PATH_PATTERNS:
        match = pattern.match(path)
        if match:
            return kind, match.group(1)
    return "", ""


def parse_url(url: str, warning: bool = True) -> tuple[str, bool]:
    """Extract a file ID from a Google Drive URL.

    An explicit ``id`` query parameter takes precedence over the path. A URL
    whose host is not a Drive host yields an empty ID; that is not an error.

    Args:
        url: URL to inspect.
        warning: Log an advisory when the URL is a recognised Drive link
            that is not a direct download link.

    Returns:
        A tuple ``(file_id, is_download_link)``. ``file_id`` is ``""`` when
        none could be extracted.
    """
    if not is_drive_url(url):
        return "", False
    parsed = urlparse(url)

    is_download_link = parsed.path.endswith(DOWNLOAD_PATH_SUFFIX)
    query = parse_qs(parsed.query)
    if "id" in query:
        return query["id"][0], is_download_link

    _, file_id = _match_path(parsed.path)
    if warning and file_id and not is_download_link:
        logger.warning(
            "[parse_url] link is not a direct download link, consider fuzzy resolution;"
            " url:%s",
            url,
        )
    return file_id, is_download_link


def file_download_url(file_id: str) -> str:
    """Return the direct download URL for a file ID."""
    return f"{FILE_DOWNLOAD_URL}?{urlencode({'id': file_id})}"


def folder_url(folder_id: str) -> str:
    """Return the browsable folder page URL for a folder ID."""
    return FOLDER_URL + folder_id


def download_url_for(url: str, config: TransferConfig) -> str:
    """Rewrite a user-supplied URL into the URL that yields the file's bytes.

    With fuzzy resolution, any recognised Drive link becomes a direct
    download link. Google Docs/Sheets/Slides links are rewritten to the
    export endpoint when fuzzy resolution is on or an export format was
    requested. Anything else is returned unchanged.

    Args:
        url: URL supplied by the caller.
        config: Transfer configuration (fuzzy, format).

    Returns:
        The URL to request.
    """
    if not (config.fuzzy or config.format) or not is_drive_url(url):
        return url

    parsed = urlparse(url)
    kind, path_id = _match_path(parsed.path)
    if kind in EXPORT_DEFAULT_FORMATS:
        export_format = config.format or EXPORT_DEFAULT_FORMATS[kind]
        query = urlencode({"format": export_format})
        logger.info(
            "[download_url_for] exporting native document; kind:%s;format:%s",
            kind,
            export_format,
        )
        return f"{DOCS_BASE_URL}/{kind}/d/{path_id}/export?{query}"

    if config.format:
        logger.warning("[download_url_for] export format ignored for non-document URL; url:%s", url)
    if not config.fuzzy:
        return url

    file_id, is_download_link = parse_url(url, warning=False)
    if not file_id or is_download_link:
        return url
    return file_download_url(file_id)
