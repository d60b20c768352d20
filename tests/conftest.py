"""Shared pytest fixtures and test helpers for apexctl tests."""

from __future__ import annotations

import logging
from collections.abc import Generator, Mapping
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from apexctl.config.models import PatternRuleConfig
from apexctl.config.settings import ApexSettings
from apexctl.domain.catalog import Catalog
from apexctl.services.router import Router
from tests.fakes import reset_counters


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _reset_fakes() -> Generator[None]:
    reset_counters()
    yield
    reset_counters()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's APEX_* environment out of the tests."""
    monkeypatch.delenv("APEX_CONFIG", raising=False)


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Undo the root handler swap done by configure_logging()."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("apexctl").setLevel(logging.NOTSET)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Temporary project directory with a couple of files."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("def main():\n    return 'TODO: wire up'\n")
    (tmp_path / "README.md").write_text("# Demo\n\nA demo project.\n")
    return tmp_path


@pytest.fixture
def settings(project_root: Path) -> ApexSettings:
    return ApexSettings.from_cli(project_root=project_root)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def rules(*tables: dict[str, Any]) -> list[PatternRuleConfig]:
    """Validate rule tables, e.g. ``rules({"name": "x", "match": "y", "command": "z"})``."""
    return [PatternRuleConfig.model_validate(t) for t in tables]


def make_router(
    settings: ApexSettings,
    *,
    registry: Mapping[str, str | None] | None = None,
    recipes: Mapping[str, list[str]] | None = None,
    secondary: list[dict[str, Any]] | None = None,
    primary: list[dict[str, Any]] | None = None,
) -> Router:
    """Router over a hand-built catalog, independent of the packaged data."""
    catalog = Catalog.build(
        secondary=rules(*(secondary or [])),
        primary=rules(*(primary or [])),
        recipes=recipes or {},
        registry=registry or {},
    )
    return Router(catalog, settings=settings)
