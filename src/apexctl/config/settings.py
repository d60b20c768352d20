"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs: CLI flags passed by Click
  2. Env vars: ``APEX_*`` prefix
  3. TOML file: ``apex.toml`` discovered via walk-up
  4. Code defaults: baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` that
reuses the project lookup (``locate_project``) from
:mod:`apexctl.config.discovery`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from apexctl.config.discovery import ConfigSource, ProjectLocation, locate_project
from apexctl.config.models import (
    CiConfig,
    PatternsConfig,
    PluginsConfig,
    QualityConfig,
    RouterConfig,
    SearchConfig,
    SuiteConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from an ``apex.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class ApexSettings(BaseSettings):
    """Unified settings for the apex CLI and the dispatch engine.

    Attributes:
        project_root: Directory commands operate in (parent of ``apex.toml``,
            or CWD if no config found).
        config_path: The config file that was loaded, if any.
        recipes: Extra or replacement recipes, name -> ordered steps.
        commands: Extra or replacement registry entries, name -> handler ref.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "APEX_",
        "env_nested_delimiter": "__",
    }

    # --- Resolved path (derived from config location, not read from TOML) ---
    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None
    config_source: ConfigSource = "none"

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- Catalog additions ---
    recipes: dict[str, list[str]] = Field(default_factory=dict)
    commands: dict[str, str | None] = Field(default_factory=dict)
    patterns: PatternsConfig = Field(default_factory=PatternsConfig)

    # --- TOML sections ---
    router: RouterConfig = Field(default_factory=RouterConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    testing: SuiteConfig = Field(default_factory=SuiteConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    ci: CiConfig = Field(default_factory=CiConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> ApexSettings:
        """Construct settings from CLI invocation.

        :func:`~apexctl.config.discovery.locate_project` picks the config
        file and the project root; CLI flags are merged as highest-priority
        overrides.
        """
        location = locate_project(config_path=config_path, project_root=project_root)
        _tls.toml_path = location.config_path
        try:
            return cls(
                project_root=location.project_root,
                config_path=location.config_path,
                config_source=location.source,
                **cli_flags,
            )
        finally:
            _tls.toml_path = None

    @property
    def location(self) -> ProjectLocation:
        return ProjectLocation(self.project_root, self.config_path, self.config_source)

    def resolve_path(self, path: str | Path) -> Path:
        """Resolve *path* against the project root (absolute paths pass through)."""
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return (self.project_root / candidate).resolve()
