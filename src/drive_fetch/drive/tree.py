"""Linearize a resolved folder tree into relative paths."""

from __future__ import annotations

import os

from drive_fetch.drive.models import DriveNode, FlattenedEntry
from drive_fetch.paths import sanitize_filename


def flatten(root: DriveNode, prefix: str = "") -> list[FlattenedEntry]:
    """Walk ``root`` depth-first and return one entry per descendant.

    A subfolder yields a directory placeholder followed immediately by its
    own descendants, so every file's ancestor directories appear before it.
    The root itself is not emitted.

    Args:
        root: Folder node to walk.
        prefix: Relative path the root's children are placed under.

    Returns:
        Entries in pre-order.
    """
    entries: list[FlattenedEntry] = []
    for child in root.children:
        path = os.path.join(prefix, sanitize_filename(child.name))
        if child.is_folder:
            entries.append(FlattenedEntry(path=path))
            entries.extend(flatten(child, path))
        else:
            entries.append(FlattenedEntry(path=path, id=child.id))
    return entries
