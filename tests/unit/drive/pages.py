"""Builders for synthetic Google Drive folder pages used across drive tests."""

import json

FOLDER_MIME = "application/vnd.google-apps.folder"

# Characters the provider emits as \xHH escapes inside the manifest literal.
_ESCAPED = "\"'[]{}<>&=,"


def js_escape(text: str) -> str:
    """Escape ``text`` the way folder pages embed their manifest."""
    text = text.replace("\\", "\\\\")
    return "".join(f"\\x{ord(c):02x}" if c in _ESCAPED else c for c in text)


def folder_page(
    rows: list[list],
    title: str = "My Folder - Google Drive",
    marker: str = "_DRIVE_ivd",
) -> str:
    """Return an HTML folder page embedding ``rows`` as its manifest."""
    manifest = js_escape(json.dumps([rows, None, "trailing"]))
    return (
        "<!DOCTYPE html><html><head>"
        f"<title>{title}</title>"
        "<script>var unrelated = 'a'; var other = 'b';</script>"
        "</head><body>"
        f"<script nonce=\"n\">window['{marker}'] = '{manifest}'; init('x');</script>"
        "</body></html>"
    )


def file_row(file_id: str, name: str, mime: str = "text/plain") -> list:
    return [file_id, None, name, mime, 1234, "extra"]


def folder_row(folder_id: str, name: str) -> list:
    return [folder_id, None, name, FOLDER_MIME]
