"""Filename helpers shared by downloads and folder listings."""

import os

# Characters that cannot appear inside a single path component.
_ILLEGAL_CHARS = frozenset(c for c in ("/", os.sep, os.altsep, "\0") if c)
# Names that resolve to the current or parent directory instead of a child.
_RESERVED_NAMES = {"": "_", os.curdir: "_", os.pardir: "__"}


def sanitize_filename(name: str) -> str:
    """Turn a remote name into a single path component.

    Path separators and NUL bytes become underscores, and the empty name
    and the ``.`` and ``..`` components are replaced by underscores.
    """
    if name in _RESERVED_NAMES:
        return _RESERVED_NAMES[name]
    return "".join("_" if c in _ILLEGAL_CHARS else c for c in name)
