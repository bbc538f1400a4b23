"""Pytest configuration — adds src/ to sys.path and provides fake HTTP responses."""

import io
import os
import sys
from email.message import Message

import pytest

# Add src/ to Python path so tests can import from drive_fetch
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


class FakeResponse(io.BytesIO):
    """In-memory stand-in for an http.client.HTTPResponse."""

    def __init__(self, body: bytes = b"", status: int = 200, headers: dict | None = None) -> None:
        super().__init__(body)
        self.status = status
        self.headers = Message()
        for name, value in (headers or {}).items():
            self.headers[name] = value


@pytest.fixture
def make_response():
    """Return a factory building FakeResponse objects."""

    def _make(body: bytes = b"", status: int = 200, headers: dict | None = None) -> FakeResponse:
        return FakeResponse(body, status, headers)

    return _make
