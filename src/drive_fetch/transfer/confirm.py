"""Resolution of Google Drive download confirmation pages.

Large or frequently downloaded files are served behind an HTML interstitial
("can't scan this file for viruses") instead of their bytes. The page links
to the real download, either through an anchor or a ``download-form``.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode, urljoin

from bs4 import BeautifulSoup

from drive_fetch.errors import FileURLRetrievalError

logger = logging.getLogger(__name__)

CONFIRM_BASE_URL = "https://docs.google.com"
CONFIRM_HREF_PREFIX = "/uc?export=download"
DOWNLOAD_FORM_ID = "download-form"
ERROR_CAPTION_CLASS = "uc-error-subcaption"


def _anchor_url(soup: BeautifulSoup) -> str | None:
    # Attribute values come back with HTML entities (&amp;) already decoded.
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if href.startswith(CONFIRM_HREF_PREFIX):
            return CONFIRM_BASE_URL + href
    return None


def _form_url(soup: BeautifulSoup) -> str | None:
    form = soup.find("form", id=DOWNLOAD_FORM_ID)
    if form is None or not form.get("action"):
        return None
    params = [
        (field["name"], field.get("value", ""))
        for field in form.find_all("input", attrs={"type": "hidden"})
        if field.get("name")
    ]
    action = urljoin(CONFIRM_BASE_URL, form["action"])
    if not params:
        return action
    separator = "&" if "?" in action else "?"
    return action + separator + urlencode(params)


def get_url_from_confirmation(content: str) -> str:
    """Extract the real download URL from a confirmation page.

    Args:
        content: HTML body of the interstitial page.

    Returns:
        Fully qualified download URL with HTML escaping undone.

    Raises:
        FileURLRetrievalError: If the page carries no download link. The
            page's own error caption is included in the message when present.
    """
    soup = BeautifulSoup(content, "html.parser")
    url = _anchor_url(soup) or _form_url(soup)
    if url:
        return url

    caption = soup.find("p", class_=ERROR_CAPTION_CLASS)
    reason = caption.get_text(" ", strip=True) if caption else ""
    logger.error("[get_url_from_confirmation] no download link in confirmation page")
    message = "Failed to retrieve file URL"
    if reason:
        message = f"{message}: {reason}"
    raise FileURLRetrievalError(message)
