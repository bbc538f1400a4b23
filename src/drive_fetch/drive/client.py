"""HTTP client honouring proxy, TLS verification and cookie settings."""

from __future__ import annotations

import logging
import ssl
from http.client import HTTPResponse
from http.cookiejar import CookieJar
from typing import TYPE_CHECKING
from urllib import request as urllib_request
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse

from drive_fetch.errors import ConfigError, TransferError

if TYPE_CHECKING:
    from drive_fetch.config import TransferConfig

logger = logging.getLogger(__name__)


def _proxy_handler(proxy: str) -> urllib_request.ProxyHandler:
    """Build a ProxyHandler routing both schemes through ``proxy``.

    Raises:
        ConfigError: If the proxy URL has no scheme or host.
    """
    parsed = urlparse(proxy)
    if not parsed.scheme or not parsed.hostname:
        raise ConfigError(f"Malformed proxy URL: {proxy!r}")
    return urllib_request.ProxyHandler({"http": proxy, "https": proxy})


class TransferClient:
    """Shared network access for URL resolution, folder pages and downloads.

    One opener is built per client, so the cookie jar persists across every
    request made through the same instance. Confirmation cookies set by the
    provider on the first attempt are therefore replayed on the follow-up
    request.
    """

    def __init__(self, config: TransferConfig) -> None:
        """Build the urllib opener from the transfer configuration.

        Args:
            config: Transfer configuration (proxy, verify, use_cookies, user_agent).

        Raises:
            ConfigError: If the proxy URL is malformed.
        """
        self.config = config
        handlers: list[urllib_request.BaseHandler] = []
        if config.proxy:
            handlers.append(_proxy_handler(config.proxy))
        if not config.verify:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            handlers.append(urllib_request.HTTPSHandler(context=context))
        self.cookie_jar: CookieJar | None = None
        if config.use_cookies:
            self.cookie_jar = CookieJar()
            handlers.append(urllib_request.HTTPCookieProcessor(self.cookie_jar))
        self._opener = urllib_request.build_opener(*handlers)

    def open(self, url: str, headers: dict[str, str] | None = None) -> HTTPResponse:
        """Issue a GET request and return the open response.

        The caller owns the response and must close it (it is a context
        manager). Redirects are followed.

        Args:
            url: Absolute URL to fetch.
            headers: Extra request headers; ``User-Agent`` defaults to the
                configured user agent.

        Returns:
            The open HTTP response with a status below 400.

        Raises:
            TransferError: If the server answers with status >= 400 or the
                connection fails.
        """
        merged = {"User-Agent": self.config.user_agent}
        merged.update(headers or {})
        req = urllib_request.Request(url, headers=merged, method="GET")
        try:
            return self._opener.open(req)  # type: ignore[no-any-return]
        except HTTPError as exc:
            exc.close()
            logger.error("[open] request failed; url:%s;status:%d", url, exc.code)
            raise TransferError(exc.code, str(exc.reason)) from exc
        except URLError as exc:
            logger.error("[open] connection failed; url:%s;reason:%s", url, exc.reason)
            raise TransferError(None, str(exc.reason)) from exc

    def get_text(self, url: str) -> tuple[int, str]:
        """Fetch ``url`` and return its status and body decoded as text."""
        with self.open(url) as resp:
            charset = resp.headers.get_content_charset() or "utf-8"
            return resp.status, resp.read().decode(charset, errors="replace")


def transfer_client_from_config(config: TransferConfig) -> TransferClient:
    """Construct a TransferClient from transfer configuration.

    Args:
        config: Transfer configuration instance.

    Returns:
        Configured TransferClient instance.
    """
    return TransferClient(config)
