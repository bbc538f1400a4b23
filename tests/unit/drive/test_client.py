"""Unit tests for drive/client.py — opener construction and HTTP calls."""

import ssl
from io import BytesIO
from unittest.mock import MagicMock, patch
from urllib import request as urllib_request
from urllib.error import HTTPError, URLError

import pytest

from drive_fetch.config import DEFAULT_USER_AGENT, TransferConfig
from drive_fetch.drive.client import TransferClient, transfer_client_from_config
from drive_fetch.errors import ConfigError, TransferError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _handler_types(config: TransferConfig) -> list[type]:
    """Return the handler classes passed to build_opener for ``config``."""
    with patch("drive_fetch.drive.client.urllib_request.build_opener") as mock_build:
        TransferClient(config)
    return [type(h) for h in mock_build.call_args[0]]


def _make_client(config: TransferConfig | None = None) -> tuple[TransferClient, MagicMock]:
    """Return (client, mock_opener)."""
    mock_opener = MagicMock()
    with patch(
        "drive_fetch.drive.client.urllib_request.build_opener",
        return_value=mock_opener,
    ):
        client = TransferClient(config or TransferConfig())
    return client, mock_opener


# ---------------------------------------------------------------------------
# Constructor tests
# ---------------------------------------------------------------------------


class TestTransferClientInit:
    def test_default_config_uses_cookie_processor_only(self) -> None:
        assert _handler_types(TransferConfig()) == [urllib_request.HTTPCookieProcessor]

    def test_cookies_disabled(self) -> None:
        client, _ = _make_client(TransferConfig(use_cookies=False))
        assert client.cookie_jar is None

    def test_proxy_handler_added(self) -> None:
        with patch("drive_fetch.drive.client.urllib_request.build_opener") as mock_build:
            TransferClient(TransferConfig(proxy="http://proxy.local:3128"))
        proxy = mock_build.call_args[0][0]
        assert isinstance(proxy, urllib_request.ProxyHandler)
        assert proxy.proxies == {
            "http": "http://proxy.local:3128",
            "https": "http://proxy.local:3128",
        }

    @pytest.mark.parametrize("proxy", ["proxy.local:3128", "http://", "://nohost"])
    def test_malformed_proxy_raises_config_error(self, proxy: str) -> None:
        with pytest.raises(ConfigError, match="Malformed proxy URL"):
            TransferClient(TransferConfig(proxy=proxy))

    def test_no_verify_installs_unverified_context(self) -> None:
        with patch("drive_fetch.drive.client.urllib_request.build_opener") as mock_build:
            TransferClient(TransferConfig(verify=False))
        https = next(
            h for h in mock_build.call_args[0] if isinstance(h, urllib_request.HTTPSHandler)
        )
        assert https._context.verify_mode == ssl.CERT_NONE
        assert https._context.check_hostname is False

    def test_factory_builds_client_with_config(self) -> None:
        config = TransferConfig(user_agent="agent/1.0")
        client = transfer_client_from_config(config)
        assert client.config is config


# ---------------------------------------------------------------------------
# open() tests
# ---------------------------------------------------------------------------


class TestTransferClientOpen:
    def test_sends_configured_user_agent(self) -> None:
        client, mock_opener = _make_client()
        client.open("https://drive.google.com/uc?id=ABC")

        req = mock_opener.open.call_args[0][0]
        assert req.full_url == "https://drive.google.com/uc?id=ABC"
        assert req.get_header("User-agent") == DEFAULT_USER_AGENT
        assert req.get_method() == "GET"

    def test_merges_extra_headers(self) -> None:
        client, mock_opener = _make_client(TransferConfig(user_agent="custom/2"))
        client.open("https://example.com/f", {"Range": "bytes=10-"})

        req = mock_opener.open.call_args[0][0]
        assert req.get_header("Range") == "bytes=10-"
        assert req.get_header("User-agent") == "custom/2"

    def test_http_error_raises_transfer_error_with_status(self) -> None:
        client, mock_opener = _make_client()
        mock_opener.open.side_effect = HTTPError(
            url="https://example.com/missing",
            code=404,
            msg="Not Found",
            hdrs=MagicMock(),  # type: ignore[arg-type]
            fp=BytesIO(b""),
        )

        with pytest.raises(TransferError) as exc_info:
            client.open("https://example.com/missing")

        assert exc_info.value.status_code == 404
        assert "404" in str(exc_info.value)

    def test_connection_error_raises_transfer_error_without_status(self) -> None:
        client, mock_opener = _make_client()
        mock_opener.open.side_effect = URLError("connection refused")

        with pytest.raises(TransferError) as exc_info:
            client.open("https://example.com/")

        assert exc_info.value.status_code is None
        assert "connection refused" in str(exc_info.value)


class TestTransferClientGetText:
    def test_returns_status_and_decoded_body(self, make_response) -> None:
        client, mock_opener = _make_client()
        mock_opener.open.return_value = make_response(
            "héllo".encode(), headers={"Content-Type": "text/html; charset=utf-8"}
        )

        status, text = client.get_text("https://example.com/")

        assert status == 200
        assert text == "héllo"

    def test_honours_declared_charset(self, make_response) -> None:
        client, mock_opener = _make_client()
        mock_opener.open.return_value = make_response(
            "café".encode("latin-1"), headers={"Content-Type": "text/html; charset=latin-1"}
        )

        _, text = client.get_text("https://example.com/")

        assert text == "café"
