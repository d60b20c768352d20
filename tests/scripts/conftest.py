"""Fixtures for subprocess-backed handler tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from apexctl.infrastructure.process import ProcessResult


class FakeProcesses:
    """Stand-in for ``run_process`` answering by argv prefix.

    Unscripted commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.cwds: list[Path | None] = []
        self._responses: list[tuple[tuple[str, ...], ProcessResult]] = []

    def on(self, *prefix: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        result = ProcessResult(argv=prefix, returncode=returncode, stdout=stdout, stderr=stderr)
        self._responses.insert(0, (prefix, result))

    async def __call__(self, *argv: str, cwd: Path | None = None, **kwargs: Any) -> ProcessResult:
        self.calls.append(argv)
        self.cwds.append(cwd)
        for prefix, result in self._responses:
            if argv[: len(prefix)] == prefix:
                return ProcessResult(
                    argv=argv,
                    returncode=result.returncode,
                    stdout=result.stdout,
                    stderr=result.stderr,
                )
        return ProcessResult(argv=argv, returncode=0, stdout="", stderr="")

    def ran(self, *prefix: str) -> bool:
        return any(call[: len(prefix)] == prefix for call in self.calls)


@pytest.fixture
def processes(monkeypatch: pytest.MonkeyPatch) -> FakeProcesses:
    fake = FakeProcesses()
    monkeypatch.setattr("apexctl.scripts.base.run_process", fake)
    return fake


@pytest.fixture
def python_project(project_root: Path) -> Path:
    (project_root / "pyproject.toml").write_text('[project]\nname = "demo"\n')
    return project_root


@pytest.fixture
def node_project(tmp_path: Path) -> Path:
    (tmp_path / "package.json").write_text('{"name": "demo"}')
    return tmp_path
