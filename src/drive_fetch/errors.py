"""Exception hierarchy shared by URL resolution, transfer, caching and folder traversal.

Callers can react to a whole category (for example any ``IntegrityError``)
or to a specific failure such as ``HashMismatchError``.
"""

from __future__ import annotations


class DriveFetchError(Exception):
    """Base exception for every failure raised by drive-fetch."""


class ConfigError(DriveFetchError):
    """Raised when configuration inputs are malformed. Never retried."""


class InvalidHashSpecError(ConfigError):
    """Raised when an expected hash is not in ``<algorithm>:<hex-digest>`` form."""


class TransferError(DriveFetchError):
    """Raised when an HTTP request fails or returns an error status."""

    def __init__(self, status_code: int | None, message: str) -> None:
        if status_code is None:
            super().__init__(f"Transfer failed: {message}")
        else:
            super().__init__(f"HTTP error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class FileURLRetrievalError(DriveFetchError):
    """Raised when a confirmation page does not reveal the real download URL."""


class ParseError(DriveFetchError):
    """Raised when provider content cannot be interpreted."""


class FolderParseError(ParseError):
    """Raised when a folder page lacks its manifest or has an unexpected shape."""


class UnsupportedArchiveError(ParseError):
    """Raised when an archive extension is not one of the supported formats."""


class IntegrityError(DriveFetchError):
    """Raised when downloaded content cannot be verified."""


class HashMismatchError(IntegrityError):
    """Raised when a file's digest differs from the expected digest."""

    def __init__(self, path: str, actual: str, expected: str) -> None:
        super().__init__(f"Hash mismatch for {path}: actual {actual}, expected {expected}")
        self.path = path
        self.actual = actual
        self.expected = expected


class UnsupportedHashAlgorithmError(IntegrityError):
    """Raised when an expected hash names an algorithm that is not supported."""


class PolicyError(DriveFetchError):
    """Raised when results would be incomplete or unsafe to use."""


class FolderTooLargeError(PolicyError):
    """Raised when a folder listing hits the provider's page size ceiling."""


class FolderCycleError(PolicyError):
    """Raised when folder traversal revisits a folder or nests too deeply."""
