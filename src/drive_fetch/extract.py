"""Archive extraction for downloaded zip and tar files."""

from __future__ import annotations

import logging
import os
import tarfile
import zipfile

from drive_fetch.errors import UnsupportedArchiveError

logger = logging.getLogger(__name__)

TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz")


def _extract_zip(path: str, to: str) -> list[str]:
    with zipfile.ZipFile(path) as archive:
        names = [info.filename for info in archive.infolist() if not info.is_dir()]
        archive.extractall(to)
    return [os.path.join(to, name) for name in names]


def _extract_tar(path: str, to: str) -> list[str]:
    with tarfile.open(path) as archive:
        names = [member.name for member in archive.getmembers() if member.isfile()]
        if hasattr(tarfile, "data_filter"):
            archive.extractall(to, filter="data")
        else:
            archive.extractall(to)
    return [os.path.join(to, name) for name in names]


def extractall(path: str, to: str | None = None) -> list[str]:
    """Extract an archive and return the paths of the extracted files.

    Args:
        path: Archive path ending in ``.zip``, ``.tar``, ``.tar.gz`` or ``.tgz``.
        to: Destination directory; defaults to the archive's directory.

    Returns:
        Paths of extracted regular files (directories are not listed).

    Raises:
        UnsupportedArchiveError: If the extension is not supported.
    """
    if to is None:
        to = os.path.dirname(path)
    if path.endswith(".zip"):
        files = _extract_zip(path, to)
    elif path.endswith(TAR_SUFFIXES):
        files = _extract_tar(path, to)
    else:
        raise UnsupportedArchiveError(f"Unsupported archive format: {path}")
    logger.info("[extractall] extracted archive; path:%s;file_count:%d", path, len(files))
    return files
