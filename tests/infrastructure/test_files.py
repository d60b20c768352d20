"""Tests for FileOps: project-rooted reads, writes and glob discovery."""

from __future__ import annotations

from pathlib import Path

import pytest

from apexctl.infrastructure.files import FileOps


@pytest.fixture
def files(project_root: Path) -> FileOps:
    (project_root / "node_modules" / "dep").mkdir(parents=True)
    (project_root / "node_modules" / "dep" / "index.js").write_text("x")
    (project_root / "src" / "ui.js").write_text("y")
    return FileOps(project_root)


class TestReadWrite:
    def test_read_relative(self, files: FileOps) -> None:
        assert files.read("README.md").startswith("# Demo")

    def test_read_missing(self, files: FileOps) -> None:
        with pytest.raises(FileNotFoundError, match="File not found: missing.md"):
            files.read("missing.md")

    def test_read_directory_is_not_a_file(self, files: FileOps) -> None:
        with pytest.raises(FileNotFoundError):
            files.read("src")

    def test_write_creates_parents(self, files: FileOps, project_root: Path) -> None:
        target = files.write("docs/guide/intro.md", "hi")
        assert target == (project_root / "docs" / "guide" / "intro.md").resolve()
        assert target.read_text() == "hi"

    def test_absolute_path(self, files: FileOps, project_root: Path) -> None:
        assert files.resolve(project_root / "README.md") == (project_root / "README.md").resolve()


class TestFind:
    def test_extension_shorthand(self, files: FileOps) -> None:
        assert files.find("js") == ["src/ui.js"]
        assert files.find(".py") == ["src/app.py"]

    def test_glob(self, files: FileOps) -> None:
        assert files.find("src/*.py") == ["src/app.py"]

    def test_exact_name(self, files: FileOps) -> None:
        assert files.find("README.md") == ["README.md"]

    def test_skips_vendor_dirs(self, files: FileOps) -> None:
        assert "node_modules/dep/index.js" not in files.find("*.js")

    def test_limit(self, files: FileOps) -> None:
        assert len(files.find("*", limit=1)) == 1

    def test_walk_files_single_file_root(self, files: FileOps, project_root: Path) -> None:
        assert list(files.walk_files(["README.md"])) == [(project_root / "README.md").resolve()]
