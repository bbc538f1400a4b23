"""Folder processor — orchestrates folder resolution, listing and bulk download."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from drive_fetch.drive.client import TransferClient
from drive_fetch.drive.folder import FolderTreeResolver
from drive_fetch.drive.manifest import HtmlManifestSource
from drive_fetch.drive.models import DriveNode, FlattenedEntry, FolderEntry
from drive_fetch.drive.tree import flatten
from drive_fetch.drive.urls import file_download_url, folder_url
from drive_fetch.errors import ConfigError
from drive_fetch.paths import sanitize_filename
from drive_fetch.transfer.download import Downloader

if TYPE_CHECKING:
    from drive_fetch.config import TransferConfig

logger = logging.getLogger(__name__)


def _folder_target(url: str | None, folder_id: str | None) -> str:
    """Return the folder URL for exactly one of ``url`` or ``folder_id``.

    Raises:
        ConfigError: If both or neither are given.
    """
    if bool(url) == bool(folder_id):
        raise ConfigError("Either url or id must be specified, but not both")
    return url if url else folder_url(folder_id)  # type: ignore[arg-type]


class FolderProcessor:
    """Lists and downloads whole Drive folders."""

    def __init__(
        self,
        resolver: FolderTreeResolver,
        downloader: Downloader,
        resume: bool = False,
    ) -> None:
        """Initialise the folder processor.

        Args:
            resolver: FolderTreeResolver used to discover the folder tree.
            downloader: Downloader used for each file in the tree.
            resume: Skip files that already exist locally.
        """
        self._resolver = resolver
        self._downloader = downloader
        self._resume = resume

    def resolve_tree(
        self,
        url: str | None = None,
        folder_id: str | None = None,
    ) -> tuple[DriveNode, list[FlattenedEntry]]:
        """Resolve a folder and flatten it into relative paths.

        Args:
            url: Folder URL (mutually exclusive with ``folder_id``).
            folder_id: Folder ID (mutually exclusive with ``url``).

        Returns:
            A tuple of (root node, flattened entries).
        """
        target = _folder_target(url, folder_id)
        logger.info("[resolve_tree] retrieving folder contents; url:%s", target)
        root = self._resolver.resolve(target)
        entries = flatten(root)
        logger.info("[resolve_tree] built directory structure; entry_count:%d", len(entries))
        return root, entries

    def list_folder(
        self,
        url: str | None = None,
        folder_id: str | None = None,
    ) -> list[FolderEntry]:
        """List every file and subfolder of a Drive folder.

        Args:
            url: Folder URL (mutually exclusive with ``folder_id``).
            folder_id: Folder ID (mutually exclusive with ``url``).

        Returns:
            FolderEntry rows in depth-first order; files carry a direct
            download URL.
        """
        _, entries = self.resolve_tree(url, folder_id)
        return [
            FolderEntry(
                path=entry.path,
                id=entry.id,
                download_url="" if entry.is_folder else file_download_url(entry.id),
                is_folder=entry.is_folder,
            )
            for entry in entries
        ]

    def download_folder(
        self,
        url: str | None = None,
        folder_id: str | None = None,
        output: str = "",
    ) -> list[str]:
        """Download a Drive folder tree to the local filesystem.

        Steps:
            1. Resolve and flatten the folder tree.
            2. Pick the root directory: ``output`` itself, or
               ``output/<folder name>`` when ``output`` is empty (current
               directory) or ends with a path separator.
            3. Create each directory placeholder and download each file,
               skipping existing files when resuming.

        Args:
            url: Folder URL (mutually exclusive with ``folder_id``).
            folder_id: Folder ID (mutually exclusive with ``url``).
            output: Destination directory.

        Returns:
            Local paths of the downloaded (or already present) files.
        """
        root, entries = self.resolve_tree(url, folder_id)

        if not output:
            output = os.getcwd() + os.sep
        if output.endswith(os.sep):
            root_dir = os.path.join(output, sanitize_filename(root.name))
        else:
            root_dir = output
        logger.info("[download_folder] creating directory; path:%s", root_dir)
        os.makedirs(root_dir, exist_ok=True)

        downloaded: list[str] = []
        for entry in entries:
            local_path = os.path.join(root_dir, entry.path)
            if entry.is_folder:
                os.makedirs(local_path, exist_ok=True)
                continue
            if self._resume and os.path.isfile(local_path):
                logger.info(
                    "[download_folder] skipping already downloaded file; path:%s", local_path
                )
                downloaded.append(local_path)
                continue
            downloaded.append(self._downloader.download(file_download_url(entry.id), local_path))

        logger.info("[download_folder] download completed; file_count:%d", len(downloaded))
        return downloaded


def folder_processor_from_config(
    config: TransferConfig,
    allow_large: bool = False,
) -> FolderProcessor:
    """Construct a FolderProcessor from transfer configuration.

    Creates one TransferClient shared by the folder page source and the
    downloader, then wires them into a FolderProcessor.

    Args:
        config: Transfer configuration instance.
        allow_large: Accept folders whose listing hit the page size ceiling.

    Returns:
        Configured FolderProcessor instance.
    """
    client = TransferClient(config)
    resolver = FolderTreeResolver(HtmlManifestSource(client), allow_large=allow_large)
    return FolderProcessor(
        resolver=resolver,
        downloader=Downloader(client),
        resume=config.resume,
    )
