"""Recursive folder tree resolution over a manifest source."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from drive_fetch.drive.manifest import HtmlManifestSource, ManifestSource
from drive_fetch.drive.models import FOLDER_MIME_TYPE, DriveNode
from drive_fetch.drive.urls import folder_url
from drive_fetch.errors import FolderCycleError, FolderTooLargeError

if TYPE_CHECKING:
    from drive_fetch.drive.client import TransferClient

logger = logging.getLogger(__name__)

# Drive pages list at most this many children; a full page means truncation.
MAX_NUMBER_FILES = 50
MAX_FOLDER_DEPTH = 64


class FolderTreeResolver:
    """Builds a DriveNode tree by fetching folder pages one at a time."""

    def __init__(self, source: ManifestSource, allow_large: bool = False) -> None:
        """Initialise the resolver.

        Args:
            source: Where folder manifests come from (HTTP pages or fixtures).
            allow_large: Accept folders whose listing hit the page size
                ceiling, knowing the result may be incomplete.
        """
        self._source = source
        self._allow_large = allow_large

    def resolve(self, url: str) -> DriveNode:
        """Resolve the folder at ``url`` and all of its subfolders.

        Subfolders are fetched depth-first, immediately when encountered,
        with one request in flight at a time.

        Args:
            url: Folder page URL.

        Returns:
            Root DriveNode with children in manifest order.

        Raises:
            TransferError: If a folder page cannot be fetched.
            FolderParseError: If a folder page cannot be decoded.
            FolderTooLargeError: If a folder has exactly MAX_NUMBER_FILES
                direct children and large folders are not allowed.
            FolderCycleError: If a folder ID repeats on the current path or
                nesting exceeds MAX_FOLDER_DEPTH.
        """
        return self._resolve(url, ancestors=())

    def _resolve(self, url: str, ancestors: tuple[str, ...]) -> DriveNode:
        if len(ancestors) >= MAX_FOLDER_DEPTH:
            raise FolderCycleError(f"Folder nesting exceeds {MAX_FOLDER_DEPTH} levels at {url}")

        manifest = self._source.fetch(url)
        if manifest.folder_id in ancestors:
            raise FolderCycleError(f"Folder {manifest.folder_id} contains itself")
        path = (*ancestors, manifest.folder_id)

        node = DriveNode(id=manifest.folder_id, name=manifest.name, mime_type=FOLDER_MIME_TYPE)
        for row in manifest.rows:
            if row.is_folder:
                logger.info("[resolve] retrieving folder; id:%s;name:%s", row.id, row.name)
                node.children.append(self._resolve(folder_url(row.id), path))
            else:
                logger.info("[resolve] processing file; id:%s;name:%s", row.id, row.name)
                node.children.append(DriveNode(id=row.id, name=row.name, mime_type=row.mime_type))

        if len(node.children) == MAX_NUMBER_FILES and not self._allow_large:
            raise FolderTooLargeError(
                f"Folder {node.name!r} has at least {MAX_NUMBER_FILES} files; the listing is"
                " incomplete. Allow large folders to accept the partial result."
            )
        return node


def resolve_folder(url: str, client: TransferClient, allow_large: bool = False) -> DriveNode:
    """Resolve a folder tree over HTTP with the given client.

    Args:
        url: Folder page URL.
        client: TransferClient carrying proxy, TLS and cookie settings.
        allow_large: Accept folders at the page size ceiling.

    Returns:
        Root DriveNode of the folder tree.
    """
    return FolderTreeResolver(HtmlManifestSource(client), allow_large=allow_large).resolve(url)
