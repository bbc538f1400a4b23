"""Folder manifest extraction from Google Drive folder pages.

Drive has no unauthenticated listing API. A folder page instead embeds its
children as a JSON document, escaped into a single-quoted JavaScript string
literal inside an inline ``<script>`` block marked with ``_DRIVE_ivd``. This
module locates that literal, undoes the JavaScript escaping and decodes the
rows into a :class:`FolderManifest`.
"""

from __future__ import annotations

import html
import json
import logging
import re
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from bs4 import BeautifulSoup

from drive_fetch.drive.models import (
    ROW_ID,
    ROW_MIME_TYPE,
    ROW_MIN_LENGTH,
    ROW_NAME,
    FolderManifest,
    ManifestRow,
)
from drive_fetch.drive.urls import is_drive_url
from drive_fetch.errors import FolderParseError, TransferError

if TYPE_CHECKING:
    from drive_fetch.drive.client import TransferClient

logger = logging.getLogger(__name__)

MANIFEST_MARKER = "_DRIVE_ivd"
TITLE_SEPARATOR = " - "
LANGUAGE_PARAM = "hl"
LANGUAGE_VALUE = "en"

_QUOTED_LITERAL = re.compile(r"'((?:[^'\\]|\\.)*)'")
# Escaped backslash, \xHH hex escape or \' quote escape, scanned left to right.
_JS_ESCAPE = re.compile(r"\\(?:(\\)|x([0-9A-Fa-f]{2})|('))")


class ManifestSource(Protocol):
    """Anything that can turn a folder URL into its manifest."""

    def fetch(self, url: str) -> FolderManifest: ...


def _rewrite_js_escape(match: re.Match[str]) -> str:
    if match.group(1):
        return "\\\\"
    if match.group(2):
        return "\\u00" + match.group(2)
    return "'"


def decode_js_string(literal: str) -> str:
    """Decode the body of a single-quoted JavaScript string literal.

    ``\\xHH`` escapes are not valid JSON, so they are rewritten to
    ``\\u00HH`` (and ``\\'`` to a bare quote) before the literal is decoded
    as a JSON string.

    Raises:
        FolderParseError: If the literal still is not a valid string.
    """
    normalized = _JS_ESCAPE.sub(_rewrite_js_escape, literal)
    try:
        return json.loads('"' + normalized + '"')  # type: ignore[no-any-return]
    except json.JSONDecodeError as exc:
        raise FolderParseError(f"Cannot decode folder manifest string: {exc}") from exc


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _find_encoded_manifest(soup: BeautifulSoup) -> str | None:
    """Return the second quoted literal of the script block carrying the marker."""
    for script in soup.find_all("script"):
        content = html.unescape(script.get_text())
        if MANIFEST_MARKER not in content:
            continue
        literals = _QUOTED_LITERAL.findall(content)
        if len(literals) >= 2:
            return literals[1]  # type: ignore[no-any-return]
    return None


def _parse_rows(decoded: str) -> list[ManifestRow]:
    try:
        data = json.loads(decoded)
    except json.JSONDecodeError as exc:
        raise FolderParseError(f"Folder manifest is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise FolderParseError("Folder manifest is not a JSON array")

    raw_rows = data[0] if data and isinstance(data[0], list) else []
    rows: list[ManifestRow] = []
    for raw in raw_rows:
        if not isinstance(raw, list) or len(raw) < ROW_MIN_LENGTH:
            continue
        row_id = _as_str(raw[ROW_ID])
        if not row_id:
            logger.warning("[parse_folder_page] skipping manifest row without id; row:%r", raw)
            continue
        rows.append(
            ManifestRow(
                id=row_id,
                name=_as_str(raw[ROW_NAME]),
                mime_type=_as_str(raw[ROW_MIME_TYPE]),
            )
        )
    return rows


def _folder_name_from_title(soup: BeautifulSoup) -> str:
    title = soup.title.get_text() if soup.title else ""
    parts = title.split(TITLE_SEPARATOR)
    if len(parts) < 2:
        raise FolderParseError(f"Folder name cannot be extracted from title: {title!r}")
    return TITLE_SEPARATOR.join(parts[:-1])


def folder_id_from_url(url: str) -> str:
    """Return the last path segment of a folder URL."""
    path = urlparse(url).path.rstrip("/")
    return path.rsplit("/", 1)[-1]


def parse_folder_page(content: str, url: str) -> FolderManifest:
    """Decode a folder page into its name and ordered child rows.

    Args:
        content: Raw HTML of the folder page.
        url: URL the page was fetched from; its last path segment is the folder ID.

    Returns:
        FolderManifest with rows in page order.

    Raises:
        FolderParseError: If the marker script, the manifest JSON or the
            title separator is missing.
    """
    soup = BeautifulSoup(content, "html.parser")
    encoded = _find_encoded_manifest(soup)
    if encoded is None:
        raise FolderParseError("Could not find the folder manifest in the page")
    rows = _parse_rows(decode_js_string(encoded))
    name = _folder_name_from_title(soup)
    return FolderManifest(folder_id=folder_id_from_url(url), name=name, rows=rows)


def with_language_hint(url: str) -> str:
    """Force the English page locale; title parsing depends on it."""
    parsed = urlparse(url)
    query = [
        (k, v)
        for k, v in parse_qsl(parsed.query, keep_blank_values=True)
        if k != LANGUAGE_PARAM
    ]
    query.append((LANGUAGE_PARAM, LANGUAGE_VALUE))
    return urlunparse(parsed._replace(query=urlencode(query)))


class HtmlManifestSource:
    """Fetches folder pages over HTTP and parses their embedded manifest."""

    def __init__(self, client: TransferClient) -> None:
        """Initialise the manifest source.

        Args:
            client: TransferClient used to fetch folder pages.
        """
        self._client = client

    def fetch(self, url: str) -> FolderManifest:
        """Fetch a folder page and decode its manifest.

        Raises:
            TransferError: If the page is not returned with status 200.
            FolderParseError: If the page cannot be decoded.
        """
        page_url = with_language_hint(url) if is_drive_url(url) else url
        status, content = self._client.get_text(page_url)
        if status != 200:
            raise TransferError(status, f"failed to retrieve folder contents from {page_url}")
        manifest = parse_folder_page(content, page_url)
        logger.debug(
            "[fetch] decoded folder page; folder_id:%s;row_count:%d",
            manifest.folder_id,
            len(manifest.rows),
        )
        return manifest
