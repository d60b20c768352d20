"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, apex.toml only contains overrides.
The same rule-table shape is used by the packaged pattern data, by the
``[patterns]`` config section, and by plugin contributions.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, model_validator

# --- Catalog records ---


class ExtractConfig(BaseModel):
    """Derive a command invocation from regex capture groups.

    ``args`` maps an argument name to a capture group, given either as a
    group index (``1``) or a named group (``"query"``).
    """

    model_config = {"frozen": True}

    command: str
    args: dict[str, int | str] = Field(default_factory=dict)


class PatternRuleConfig(BaseModel):
    """One natural-language rule: a regex plus exactly one action."""

    model_config = {"frozen": True}

    name: str
    match: str
    recipe: str | None = None
    command: str | None = None
    extract: ExtractConfig | None = None

    @model_validator(mode="after")
    def _exactly_one_action(self) -> PatternRuleConfig:
        actions = [a for a in (self.recipe, self.command, self.extract) if a is not None]
        if len(actions) != 1:
            msg = f"rule '{self.name}' needs exactly one of recipe, command, extract"
            raise ValueError(msg)
        return self


# --- apex.toml sections ---


class RouterConfig(BaseModel):
    """[router] section."""

    model_config = {"frozen": True}

    max_recipe_depth: int = Field(default=8, ge=1)


class PatternsConfig(BaseModel):
    """[patterns] section. Rules here run before the packaged ones."""

    model_config = {"frozen": True}

    secondary: list[PatternRuleConfig] = Field(default_factory=list)
    primary: list[PatternRuleConfig] = Field(default_factory=list)


class SearchConfig(BaseModel):
    """[search] section."""

    model_config = {"frozen": True}

    paths: list[str] = Field(default_factory=lambda: ["."])
    limit: int = 20
    ignore_case: bool = True
    exclude: list[str] = Field(
        default_factory=lambda: [".git", "node_modules", ".venv", "__pycache__", "dist", "build"]
    )


class SuiteConfig(BaseModel):
    """[testing] section. Unset commands are auto-detected."""

    model_config = {"frozen": True}

    command: list[str] | None = None
    build_command: list[str] | None = None


class QualityConfig(BaseModel):
    """[quality] section. Unset commands are auto-detected."""

    model_config = {"frozen": True}

    lint_command: list[str] | None = None
    format_command: list[str] | None = None


class CiConfig(BaseModel):
    """[ci] section."""

    model_config = {"frozen": True}

    poll_interval: float = 10.0
    timeout: float = 900.0
    branch: str | None = None


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    local_dir: Path = Path(".apex/plugins")
