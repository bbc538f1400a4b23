"""Unit tests for drive/folder.py — recursive tree resolution."""

from unittest.mock import MagicMock, patch

import pytest

from drive_fetch.drive.folder import (
    MAX_FOLDER_DEPTH,
    MAX_NUMBER_FILES,
    FolderTreeResolver,
    resolve_folder,
)
from drive_fetch.drive.models import FOLDER_MIME_TYPE, FolderManifest, ManifestRow
from drive_fetch.errors import FolderCycleError, FolderParseError, FolderTooLargeError
from tests.unit.drive.pages import file_row, folder_page, folder_row

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _file(row_id: str, name: str) -> ManifestRow:
    return ManifestRow(id=row_id, name=name, mime_type="text/plain")


def _folder(row_id: str, name: str) -> ManifestRow:
    return ManifestRow(id=row_id, name=name, mime_type=FOLDER_MIME_TYPE)


class FixtureSource:
    """Manifest source serving recorded manifests keyed by folder ID."""

    def __init__(self, manifests: dict[str, FolderManifest]) -> None:
        self._manifests = manifests
        self.fetched: list[str] = []

    def fetch(self, url: str) -> FolderManifest:
        self.fetched.append(url)
        return self._manifests[url.rsplit("/", 1)[-1]]


def _manifest(folder_id: str, name: str, rows: list[ManifestRow]) -> FolderManifest:
    return FolderManifest(folder_id=folder_id, name=name, rows=rows)


# ---------------------------------------------------------------------------
# resolve tests
# ---------------------------------------------------------------------------


class TestResolve:
    def test_single_level_folder(self) -> None:
        source = FixtureSource(
            {"ROOT": _manifest("ROOT", "Root", [_file("id1", "report.txt"), _file("id2", "b.csv")])}
        )

        root = FolderTreeResolver(source).resolve("https://drive.google.com/drive/folders/ROOT")

        assert root.id == "ROOT"
        assert root.name == "Root"
        assert root.is_folder is True
        assert [(c.id, c.name, c.is_folder) for c in root.children] == [
            ("id1", "report.txt", False),
            ("id2", "b.csv", False),
        ]

    def test_recurses_into_subfolders_in_manifest_order(self) -> None:
        source = FixtureSource(
            {
                "ROOT": _manifest("ROOT", "Root", [_folder("A", "Alpha"), _file("f1", "z.txt")]),
                "A": _manifest("A", "Alpha", [_folder("B", "Beta"), _file("f2", "a.txt")]),
                "B": _manifest("B", "Beta", [_file("f3", "deep.txt")]),
            }
        )

        root = FolderTreeResolver(source).resolve("https://drive.google.com/drive/folders/ROOT")

        assert source.fetched == [
            "https://drive.google.com/drive/folders/ROOT",
            "https://drive.google.com/drive/folders/A",
            "https://drive.google.com/drive/folders/B",
        ]
        alpha = root.children[0]
        assert alpha.is_folder is True
        assert [c.name for c in alpha.children] == ["Beta", "a.txt"]
        assert alpha.children[0].children[0].id == "f3"
        assert root.children[1].name == "z.txt"

    def test_exactly_max_children_fails_without_allow_large(self) -> None:
        rows = [_file(f"id{i}", f"f{i}.txt") for i in range(MAX_NUMBER_FILES)]
        source = FixtureSource({"ROOT": _manifest("ROOT", "Root", rows)})

        with pytest.raises(FolderTooLargeError):
            FolderTreeResolver(source).resolve("https://drive.google.com/drive/folders/ROOT")

    def test_exactly_max_children_allowed_with_allow_large(self) -> None:
        rows = [_file(f"id{i}", f"f{i}.txt") for i in range(MAX_NUMBER_FILES)]
        source = FixtureSource({"ROOT": _manifest("ROOT", "Root", rows)})

        root = FolderTreeResolver(source, allow_large=True).resolve(
            "https://drive.google.com/drive/folders/ROOT"
        )

        assert len(root.children) == MAX_NUMBER_FILES

    def test_fewer_than_max_children_is_fine(self) -> None:
        rows = [_file(f"id{i}", f"f{i}.txt") for i in range(MAX_NUMBER_FILES - 1)]
        source = FixtureSource({"ROOT": _manifest("ROOT", "Root", rows)})

        root = FolderTreeResolver(source).resolve("https://drive.google.com/drive/folders/ROOT")

        assert len(root.children) == MAX_NUMBER_FILES - 1

    def test_full_subfolder_fails_whole_resolution(self) -> None:
        rows = [_file(f"id{i}", f"f{i}.txt") for i in range(MAX_NUMBER_FILES)]
        source = FixtureSource(
            {
                "ROOT": _manifest("ROOT", "Root", [_folder("A", "Alpha")]),
                "A": _manifest("A", "Alpha", rows),
            }
        )

        with pytest.raises(FolderTooLargeError):
            FolderTreeResolver(source).resolve("https://drive.google.com/drive/folders/ROOT")

    def test_folder_containing_itself_raises_cycle_error(self) -> None:
        source = FixtureSource(
            {
                "ROOT": _manifest("ROOT", "Root", [_folder("A", "Alpha")]),
                "A": _manifest("A", "Alpha", [_folder("ROOT", "Root")]),
            }
        )

        with pytest.raises(FolderCycleError, match="contains itself"):
            FolderTreeResolver(source).resolve("https://drive.google.com/drive/folders/ROOT")

    def test_same_folder_in_two_branches_is_not_a_cycle(self) -> None:
        source = FixtureSource(
            {
                "ROOT": _manifest("ROOT", "Root", [_folder("A", "Alpha"), _folder("B", "Beta")]),
                "A": _manifest("A", "Alpha", [_folder("S", "Shared")]),
                "B": _manifest("B", "Beta", [_folder("S", "Shared")]),
                "S": _manifest("S", "Shared", [_file("f1", "x.txt")]),
            }
        )

        root = FolderTreeResolver(source).resolve("https://drive.google.com/drive/folders/ROOT")

        assert root.children[0].children[0].children[0].id == "f1"
        assert root.children[1].children[0].children[0].id == "f1"

    def test_excessive_depth_raises_cycle_error(self) -> None:
        manifests = {
            f"D{i}": _manifest(f"D{i}", f"Level{i}", [_folder(f"D{i + 1}", f"Level{i + 1}")])
            for i in range(MAX_FOLDER_DEPTH + 1)
        }
        source = FixtureSource(manifests)

        with pytest.raises(FolderCycleError, match="exceeds"):
            FolderTreeResolver(source).resolve("https://drive.google.com/drive/folders/D0")

    def test_parse_error_in_subfolder_aborts(self) -> None:
        source = MagicMock()
        source.fetch.side_effect = [
            _manifest("ROOT", "Root", [_folder("A", "Alpha")]),
            FolderParseError("broken"),
        ]

        with pytest.raises(FolderParseError):
            FolderTreeResolver(source).resolve("https://drive.google.com/drive/folders/ROOT")


# ---------------------------------------------------------------------------
# resolve_folder (HTTP wiring) tests
# ---------------------------------------------------------------------------


class TestResolveFolder:
    def test_resolves_over_client_pages(self) -> None:
        pages = {
            "https://drive.google.com/drive/folders/ROOT?hl=en": folder_page(
                [folder_row("SUB", "Sub"), file_row("id1", "report.txt")],
                title="Root - Google Drive",
            ),
            "https://drive.google.com/drive/folders/SUB?hl=en": folder_page(
                [file_row("id2", "inner.txt")],
                title="Sub - Google Drive",
            ),
        }
        client = MagicMock()
        client.get_text.side_effect = lambda url: (200, pages[url])

        root = resolve_folder("https://drive.google.com/drive/folders/ROOT", client)

        assert root.name == "Root"
        assert root.children[0].id == "SUB"
        assert root.children[0].name == "Sub"
        assert root.children[0].children[0].name == "inner.txt"
        assert root.children[1].id == "id1"

    def test_allow_large_passed_through(self) -> None:
        with patch("drive_fetch.drive.folder.FolderTreeResolver") as mock_resolver_cls:
            resolve_folder("https://drive.google.com/drive/folders/F", MagicMock(), True)

        assert mock_resolver_cls.call_args.kwargs["allow_large"] is True
