"""Unit tests for paths.py — remote name sanitising."""

import pytest

from drive_fetch.paths import sanitize_filename


class TestSanitizeFilename:
    def test_plain_name_unchanged(self) -> None:
        assert sanitize_filename("report v2.pdf") == "report v2.pdf"

    def test_separators_and_nul_replaced(self) -> None:
        assert sanitize_filename("a/b\0c") == "a_b_c"

    @pytest.mark.parametrize(("name", "expected"), [("", "_"), (".", "_"), ("..", "__")])
    def test_directory_references_replaced(self, name: str, expected: str) -> None:
        assert sanitize_filename(name) == expected

    def test_dots_inside_names_kept(self) -> None:
        assert sanitize_filename("...") == "..."
        assert sanitize_filename(".hidden") == ".hidden"
