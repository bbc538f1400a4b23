"""Data models for Google Drive folder manifests, trees and flattened listings."""

from __future__ import annotations

from dataclasses import dataclass, field

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

# Positions within a manifest row: [id, ?, name, mimeType, ...]
ROW_ID = 0
ROW_NAME = 2
ROW_MIME_TYPE = 3
ROW_MIN_LENGTH = 4


@dataclass(frozen=True)
class ManifestRow:
    """One child entry decoded from a folder page manifest."""

    id: str
    name: str
    mime_type: str

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


@dataclass
class FolderManifest:
    """The decoded contents of a single folder page."""

    folder_id: str
    name: str
    rows: list[ManifestRow] = field(default_factory=list)


@dataclass
class DriveNode:
    """A file or folder discovered during folder traversal.

    Children keep manifest order. A node owns its children outright; there
    are no parent references.
    """

    id: str
    name: str
    mime_type: str
    children: list[DriveNode] = field(default_factory=list)

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


@dataclass(frozen=True)
class FlattenedEntry:
    """One row of a linearized folder tree.

    Attributes:
        path: Path relative to the root folder, built from sanitized names.
        id: Drive file ID, or ``""`` for a directory placeholder.
    """

    path: str
    id: str = ""

    @property
    def is_folder(self) -> bool:
        return self.id == ""


@dataclass(frozen=True)
class FolderEntry:
    """A folder listing row as returned to callers.

    Attributes:
        path: Path relative to the root folder.
        id: Drive file ID, or ``""`` for folders.
        download_url: Direct download URL for files, ``""`` for folders.
        is_folder: True for directory entries.
    """

    path: str
    id: str
    download_url: str
    is_folder: bool
