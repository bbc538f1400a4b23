"""Resumable, throttled streaming download of a single file."""

from __future__ import annotations

import logging
import os
import posixpath
import re
import time
from collections.abc import Callable
from email.message import Message
from typing import IO, TYPE_CHECKING
from urllib.parse import unquote, urlparse

from tqdm import tqdm

from drive_fetch.config import TransferConfig
from drive_fetch.drive.client import TransferClient
from drive_fetch.drive.urls import download_url_for
from drive_fetch.errors import FileURLRetrievalError
from drive_fetch.paths import sanitize_filename
from drive_fetch.transfer.confirm import get_url_from_confirmation

if TYPE_CHECKING:
    from http.client import HTTPResponse

logger = logging.getLogger(__name__)

CHUNK_SIZE = 512 * 1024
FALLBACK_FILENAME = "downloaded_file"
HTTP_PARTIAL_CONTENT = 206

_EXTENDED_FILENAME = re.compile(r"filename\*=UTF-8''([^;]+)", re.IGNORECASE)
_BASIC_FILENAME = re.compile(r'filename="(.*?)"', re.IGNORECASE)


class ThrottledWriter:
    """File wrapper that keeps the long-run average write rate under a ceiling.

    After each write it compares the time elapsed since the first byte with
    the time the bytes written so far *should* have taken at ``speed``, and
    sleeps for the difference. Short bursts are allowed.
    """

    def __init__(
        self,
        fh: IO[bytes],
        speed: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._fh = fh
        self._speed = speed
        self._clock = clock
        self._sleep = sleep
        self._start = clock()
        self.written = 0

    def write(self, data: bytes) -> int:
        n = self._fh.write(data)
        self.written += n
        elapsed = self._clock() - self._start
        expected = self.written / self._speed
        if expected > elapsed:
            self._sleep(expected - elapsed)
        return n


def filename_from_headers(headers: Message) -> str:
    """Derive a local filename from a response's Content-Disposition header.

    Prefers the RFC 5987 ``filename*=UTF-8''...`` form, then the quoted
    ``filename="..."`` form, then a fixed fallback name.
    """
    disposition = headers.get("Content-Disposition", "")
    if disposition:
        match = _EXTENDED_FILENAME.search(disposition)
        if match:
            return sanitize_filename(unquote(match.group(1).strip()))
        match = _BASIC_FILENAME.search(disposition)
        if match:
            return sanitize_filename(match.group(1))
    return FALLBACK_FILENAME


def _existing_size(path: str) -> int:
    if path and os.path.isfile(path):
        return os.path.getsize(path)
    return 0


def _content_length(headers: Message) -> int | None:
    try:
        return int(headers.get("Content-Length", ""))
    except ValueError:
        return None


class Downloader:
    """Streams a URL's bytes to a local path, resolving confirmation pages."""

    def __init__(self, client: TransferClient) -> None:
        """Initialise the downloader.

        Args:
            client: TransferClient whose configuration controls resume,
                throttling, progress output and URL rewriting.
        """
        self._client = client
        self._config = client.config

    def download(self, url: str, output: str = "") -> str:
        """Download ``url`` to ``output`` and return the path written.

        Each attempt sends the configured user agent and, when resuming onto
        an existing file, a ``Range`` header starting at its size. An HTML
        response is treated as a confirmation page: the real URL is
        extracted and requested next. A page leading back to a URL already
        requested is an error, and the destination is left untouched.

        A partial file is never removed on failure so it can be resumed.

        Args:
            url: URL to download (rewritten first for fuzzy/export handling).
            output: Destination file or directory. Empty means the URL's
                basename; an existing directory (or a path ending in a
                separator) receives the server-provided filename.

        Returns:
            Path of the written file.

        Raises:
            TransferError: If a request fails or returns status >= 400.
            FileURLRetrievalError: If a confirmation page has no download link
                or its links loop back to a URL already requested.
        """
        current = download_url_for(url, self._config)
        visited = {current}
        while True:
            start = _existing_size(output) if self._config.resume else 0
            headers = {"Range": f"bytes={start}-"} if start else {}
            with self._client.open(current, headers) as resp:
                content_type = resp.headers.get("Content-Type", "")
                if not content_type.startswith("text/html"):
                    return self._save(current, output, resp, start)

                body = resp.read()
                next_url = get_url_from_confirmation(body.decode("utf-8", errors="replace"))
                if next_url not in visited:
                    logger.info("[download] following confirmation page; url:%s", next_url)
                    visited.add(next_url)
                    current = next_url
                    continue

                logger.error(
                    "[download] confirmation page leads back to a requested URL; url:%s",
                    next_url,
                )
                raise FileURLRetrievalError(f"Confirmation page loops back to {next_url}")

    def _resolve_output(self, url: str, output: str, resp: HTTPResponse) -> str:
        if not output:
            output = posixpath.basename(urlparse(url).path) or FALLBACK_FILENAME
        elif output.endswith(os.sep) and not os.path.isdir(output):
            os.makedirs(output, exist_ok=True)
        if os.path.isdir(output):
            output = os.path.join(output, filename_from_headers(resp.headers))
        return output

    def _save(
        self,
        url: str,
        output: str,
        resp: HTTPResponse,
        start: int,
    ) -> str:
        output = self._resolve_output(url, output, resp)

        resuming = start > 0 and resp.status == HTTP_PARTIAL_CONTENT
        if start > 0 and not resuming:
            logger.info("[download] server ignored range request; restarting; output:%s", output)
        offset = start if resuming else 0

        length = _content_length(resp.headers)
        total = offset + length if length is not None else None
        logger.info("[download] downloading; url:%s;output:%s", url, output)

        with open(output, "ab" if resuming else "wb") as fh:
            writer: IO[bytes] | ThrottledWriter = fh
            if self._config.speed > 0:
                writer = ThrottledWriter(fh, self._config.speed)
            with tqdm(
                total=total,
                initial=offset,
                unit="B",
                unit_scale=True,
                desc=os.path.basename(output),
                disable=self._config.quiet,
            ) as progress:
                while chunk := resp.read(CHUNK_SIZE):
                    writer.write(chunk)
                    progress.update(len(chunk))
        return output


def download(
    url: str,
    output: str = "",
    config: TransferConfig | None = None,
    client: TransferClient | None = None,
) -> str:
    """Download a single file.

    Args:
        url: URL of the file.
        output: Destination file or directory.
        config: Transfer configuration; defaults are used when omitted.
        client: Existing TransferClient to reuse (its config wins).

    Returns:
        Path of the written file.
    """
    if client is None:
        client = TransferClient(config or TransferConfig())
    return Downloader(client).download(url, output)
