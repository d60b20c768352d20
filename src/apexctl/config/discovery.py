"""Locating the project an apex invocation works on.

The project root anchors everything that touches the filesystem: the
``read``/``write`` built-ins, ``find``, content search, and the working
directory of every subprocess a handler runs. It is the directory that
holds ``apex.toml``, or the starting directory when no config exists.

Config lookup order: ``--config``, then ``APEX_CONFIG``, then a walk up
from the starting directory (the way git finds ``.git/``). An explicit
path that does not exist disables the walk-up.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

CONFIG_FILENAME = "apex.toml"
CONFIG_ENV_VAR = "APEX_CONFIG"

ConfigSource = Literal["flag", "env", "walk-up", "none"]


@dataclass(frozen=True)
class ProjectLocation:
    """Where the project lives and how its config was found."""

    project_root: Path
    config_path: Path | None
    source: ConfigSource

    def describe(self) -> str:
        """One-line summary for logs and ``--explain`` output.

        Examples:
            >>> ProjectLocation(Path("/w"), None, "none").describe()
            '/w (no apex.toml)'
        """
        if self.config_path is None:
            return f"{self.project_root} (no {CONFIG_FILENAME})"
        return f"{self.project_root} ({self.config_path.name} via {self.source})"


def _walk_up(start: Path) -> Path | None:
    current = start.resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        current = current.parent


def _explicit(path: str | Path) -> Path | None:
    candidate = Path(path).expanduser()
    return candidate if candidate.is_file() else None


def locate_project(
    start: Path | None = None,
    *,
    config_path: str | Path | None = None,
    project_root: Path | None = None,
) -> ProjectLocation:
    """Resolve the config file and project root for an invocation.

    *start* is where the walk-up begins (default: cwd). An explicit
    *project_root* wins over the config file's directory.
    """
    origin = project_root or start or Path.cwd()
    source: ConfigSource
    if config_path:
        found, source = _explicit(config_path), "flag"
    elif os.environ.get(CONFIG_ENV_VAR):
        found, source = _explicit(os.environ[CONFIG_ENV_VAR]), "env"
    else:
        found, source = _walk_up(origin), "walk-up"
    if found is None:
        source = "none"

    if project_root is None:
        project_root = found.parent if found is not None else origin
    return ProjectLocation(project_root=project_root, config_path=found, source=source)


def find_config(start: Path | None = None) -> Path | None:
    """The ``apex.toml`` that applies from *start*, honouring ``APEX_CONFIG``."""
    return locate_project(start).config_path
