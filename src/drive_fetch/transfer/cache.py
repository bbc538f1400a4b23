"""Content cache keyed by source URL, backed by a local directory."""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from collections.abc import Callable

from drive_fetch.config import TransferConfig
from drive_fetch.drive.client import TransferClient
from drive_fetch.errors import (
    HashMismatchError,
    InvalidHashSpecError,
    UnsupportedHashAlgorithmError,
)
from drive_fetch.transfer.download import Downloader

logger = logging.getLogger(__name__)

SUPPORTED_HASH_ALGORITHMS = frozenset({"md5", "sha1", "sha256", "sha512"})
HASH_READ_SIZE = 1024 * 1024
TEMP_PREFIX = "dl"

# Reversible character substitutions turning a URL into a single filename.
_KEY_SUBSTITUTIONS = (
    ("/", "-SLASH-"),
    (":", "-COLON-"),
    ("=", "-EQUAL-"),
    ("?", "-QUESTION-"),
)


def cache_key(url: str) -> str:
    """Derive the cache filename for ``url``.

    This is a character substitution, not a hash: URLs that differ only in
    text matching a substitution marker can map to the same key.
    """
    key = url
    for char, replacement in _KEY_SUBSTITUTIONS:
        key = key.replace(char, replacement)
    return key


def parse_hash_spec(expected_hash: str) -> tuple[str, str]:
    """Split an ``<algorithm>:<hex-digest>`` spec.

    Raises:
        InvalidHashSpecError: If the separator or either part is missing.
        UnsupportedHashAlgorithmError: If the algorithm is not supported.
    """
    algorithm, sep, digest = expected_hash.partition(":")
    if not sep or not algorithm or not digest:
        raise InvalidHashSpecError(f"Invalid hash format: {expected_hash!r}")
    algorithm = algorithm.lower()
    if algorithm not in SUPPORTED_HASH_ALGORITHMS:
        raise UnsupportedHashAlgorithmError(f"Unsupported hash algorithm: {algorithm}")
    return algorithm, digest.lower()


def file_digest(path: str, algorithm: str) -> str:
    """Return the lowercase hex digest of the file at ``path``."""
    hasher = hashlib.new(algorithm)
    with open(path, "rb") as fh:
        while block := fh.read(HASH_READ_SIZE):
            hasher.update(block)
    return hasher.hexdigest()


def assert_file_hash(path: str, expected_hash: str) -> None:
    """Verify the file at ``path`` against an ``<algorithm>:<hex-digest>`` spec.

    Raises:
        InvalidHashSpecError: If the spec is malformed.
        UnsupportedHashAlgorithmError: If the algorithm is not supported.
        HashMismatchError: If the digest differs.
    """
    algorithm, expected = parse_hash_spec(expected_hash)
    actual = file_digest(path, algorithm)
    if actual != expected:
        raise HashMismatchError(path, actual, expected)
    logger.info("[assert_file_hash] hash matches; path:%s;algorithm:%s", path, algorithm)


def _device(path: str) -> int:
    return os.stat(path).st_dev


class ContentCache:
    """Idempotent, optionally hash-verified downloads into a cache directory.

    Files are stored as ``<cache_root>/<cache_key(url)>`` unless the caller
    names an explicit path. An existing file (and, when requested, a
    matching hash) is the only validity signal; there is no expiry.
    """

    def __init__(self, downloader: Downloader, cache_root: str) -> None:
        """Initialise the cache.

        Args:
            downloader: Downloader used on a cache miss.
            cache_root: Directory holding cached files and temporary downloads.
        """
        self._downloader = downloader
        self._cache_root = cache_root

    @property
    def cache_root(self) -> str:
        return self._cache_root

    def path_for(self, url: str) -> str:
        """Return the cache path used for ``url`` when no path is given."""
        return os.path.join(self._cache_root, cache_key(url))

    def _staging_root(self, path: str) -> str:
        """Return the directory temporary downloads for ``path`` are staged in.

        The cache root is used unless the destination lives on another
        filesystem, where the final rename must happen next to it instead.
        """
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)
        if _device(parent) == _device(self._cache_root):
            return self._cache_root
        return parent

    def cached_download(
        self,
        url: str,
        path: str = "",
        expected_hash: str = "",
        postprocess: Callable[[str], object] | None = None,
    ) -> str:
        """Return a local copy of ``url``, downloading only when needed.

        A cache miss downloads into a fresh private temporary directory and
        renames the result into place, so the final path never holds a
        partial file. The temporary directory is always removed.

        Args:
            url: URL to download.
            path: Explicit destination; defaults to the cache path for ``url``.
            expected_hash: Optional ``<algorithm>:<hex-digest>`` to verify.
            postprocess: Optional callable invoked with the final path.

        Returns:
            Path of the cached file.

        Raises:
            InvalidHashSpecError: If ``expected_hash`` is malformed.
            UnsupportedHashAlgorithmError: If its algorithm is not supported.
            HashMismatchError: If the freshly downloaded file does not match.
            TransferError: If the download fails.
        """
        if expected_hash:
            parse_hash_spec(expected_hash)

        os.makedirs(self._cache_root, exist_ok=True)
        path = path or self.path_for(url)

        if os.path.isfile(path):
            if not expected_hash:
                logger.info("[cached_download] cache hit; path:%s", path)
                return path
            try:
                assert_file_hash(path, expected_hash)
                logger.info("[cached_download] cache hit; hash verified; path:%s", path)
                return path
            except HashMismatchError as exc:
                logger.warning(
                    "[cached_download] hash mismatch, redownloading; path:%s;actual:%s",
                    path,
                    exc.actual,
                )

        logger.info("[cached_download] cache miss; url:%s;path:%s", url, path)
        with tempfile.TemporaryDirectory(
            prefix=TEMP_PREFIX, dir=self._staging_root(path)
        ) as tmp_dir:
            downloaded = self._downloader.download(url, os.path.join(tmp_dir, TEMP_PREFIX))
            os.replace(downloaded, path)

        if expected_hash:
            assert_file_hash(path, expected_hash)
        if postprocess is not None:
            postprocess(path)
        return path


def cached_download(
    url: str,
    path: str = "",
    expected_hash: str = "",
    postprocess: Callable[[str], object] | None = None,
    config: TransferConfig | None = None,
    client: TransferClient | None = None,
) -> str:
    """Download ``url`` through the content cache.

    Args:
        url: URL to download.
        path: Explicit destination; defaults to a path under the cache root.
        expected_hash: Optional ``<algorithm>:<hex-digest>`` to verify.
        postprocess: Optional callable invoked with the final path.
        config: Transfer configuration; defaults are used when omitted.
        client: Existing TransferClient to reuse (its config wins).

    Returns:
        Path of the cached file.
    """
    if client is None:
        client = TransferClient(config or TransferConfig())
    return content_cache_from_config(client).cached_download(url, path, expected_hash, postprocess)


def content_cache_from_config(client: TransferClient) -> ContentCache:
    """Construct a ContentCache rooted at the client's configured cache directory.

    Args:
        client: TransferClient used for downloads on a cache miss.

    Returns:
        Configured ContentCache instance.
    """
    return ContentCache(Downloader(client), client.config.resolved_cache_root)
