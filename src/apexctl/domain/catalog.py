"""Catalog: the immutable dispatch configuration.

Holds the two locale rule lists, the recipe dictionary, and the command
registry. Built once at startup from the packaged YAML data in
``apexctl/data/``, then layered with plugin contributions and finally
``apex.toml`` entries (config wins over plugins, plugins over packaged).

The catalog never changes after construction: rule lists and recipe
steps are tuples and the mappings are read-only proxies.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from importlib import resources
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from apexctl.config.models import PatternRuleConfig
from apexctl.domain.patterns import (
    CaptureExtractor,
    CommandRef,
    PatternMatcher,
    PatternRule,
    RecipeRef,
)
from apexctl.errors import CatalogError

if TYPE_CHECKING:
    from apexctl.config.settings import ApexSettings

PRIMARY_PATTERNS_FILE = "patterns-en.yaml"
SECONDARY_PATTERNS_FILE = "patterns-nl.yaml"
RECIPES_FILE = "recipes.yaml"
REGISTRY_FILE = "registry.yaml"


@dataclass(frozen=True)
class CatalogContribution:
    """Catalog entries from one source (a plugin or the config file)."""

    source: str
    commands: Mapping[str, str | None] = field(default_factory=dict)
    recipes: Mapping[str, Iterable[str]] = field(default_factory=dict)
    secondary: Iterable[PatternRuleConfig] = ()
    primary: Iterable[PatternRuleConfig] = ()


@dataclass(frozen=True)
class Catalog:
    secondary_rules: tuple[PatternRule, ...]
    primary_rules: tuple[PatternRule, ...]
    recipes: Mapping[str, tuple[str, ...]]
    registry: Mapping[str, str | None]

    @classmethod
    def build(
        cls,
        *,
        secondary: Iterable[PatternRuleConfig] = (),
        primary: Iterable[PatternRuleConfig] = (),
        recipes: Mapping[str, Iterable[str]] | None = None,
        registry: Mapping[str, str | None] | None = None,
    ) -> Catalog:
        """Compile rule configs and freeze the mappings."""
        return cls(
            secondary_rules=tuple(compile_rule(r) for r in secondary),
            primary_rules=tuple(compile_rule(r) for r in primary),
            recipes=MappingProxyType(
                {name: tuple(steps) for name, steps in (recipes or {}).items()}
            ),
            registry=MappingProxyType(dict(registry or {})),
        )

    def matcher(self) -> PatternMatcher:
        return PatternMatcher(self.secondary_rules, self.primary_rules)

    def has_recipe(self, name: str) -> bool:
        return name in self.recipes

    def has_command(self, name: str) -> bool:
        return name in self.registry


def compile_rule(rule: PatternRuleConfig) -> PatternRule:
    """Turn a validated rule table into a compiled :class:`PatternRule`."""
    if rule.recipe is not None:
        action: Any = RecipeRef(rule.recipe)
    elif rule.command is not None:
        action = CommandRef(rule.command)
    else:
        assert rule.extract is not None
        action = CaptureExtractor(rule.extract.command, dict(rule.extract.args))
    try:
        return PatternRule.compile(rule.name, rule.match, action)
    except re.error as exc:
        msg = f"Invalid regex in rule '{rule.name}': {exc}"
        raise CatalogError(msg, rule=rule.name) from exc


# ---------------------------------------------------------------------------
# Packaged data
# ---------------------------------------------------------------------------


def _load_data_file(filename: str) -> Any:
    resource = resources.files("apexctl").joinpath("data", filename)
    try:
        return YAML(typ="safe").load(resource.read_text(encoding="utf-8"))
    except (OSError, YAMLError) as exc:
        msg = f"Cannot read packaged catalog file {filename}: {exc}"
        raise CatalogError(msg, file=filename) from exc


def parse_rules(raw: Any, *, source: str) -> list[PatternRuleConfig]:
    """Validate a list of rule tables."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        msg = f"{source}: pattern rules must be a list"
        raise CatalogError(msg, source=source)
    try:
        return [PatternRuleConfig.model_validate(item) for item in raw]
    except ValidationError as exc:
        msg = f"{source}: invalid pattern rule: {exc}"
        raise CatalogError(msg, source=source) from exc


def _parse_mapping(raw: Any, *, source: str) -> dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        msg = f"{source}: expected a mapping"
        raise CatalogError(msg, source=source)
    return dict(raw)


def _parse_recipes(raw: Any, *, source: str) -> dict[str, tuple[str, ...]]:
    recipes: dict[str, tuple[str, ...]] = {}
    for name, steps in _parse_mapping(raw, source=source).items():
        if not isinstance(steps, list) or not all(isinstance(s, str) for s in steps):
            msg = f"{source}: recipe '{name}' must be a list of strings"
            raise CatalogError(msg, source=source, recipe=name)
        recipes[str(name)] = tuple(steps)
    return recipes


def packaged_contribution() -> CatalogContribution:
    """The catalog shipped with apexctl."""
    return CatalogContribution(
        source="packaged",
        commands=_parse_mapping(_load_data_file(REGISTRY_FILE), source=REGISTRY_FILE),
        recipes=_parse_recipes(_load_data_file(RECIPES_FILE), source=RECIPES_FILE),
        secondary=parse_rules(
            _load_data_file(SECONDARY_PATTERNS_FILE), source=SECONDARY_PATTERNS_FILE
        ),
        primary=parse_rules(_load_data_file(PRIMARY_PATTERNS_FILE), source=PRIMARY_PATTERNS_FILE),
    )


def settings_contribution(settings: ApexSettings) -> CatalogContribution:
    """Catalog entries declared in apex.toml / env vars."""
    return CatalogContribution(
        source="config",
        commands=dict(settings.commands),
        recipes={name: tuple(steps) for name, steps in settings.recipes.items()},
        secondary=list(settings.patterns.secondary),
        primary=list(settings.patterns.primary),
    )


def merge_contributions(layers: Iterable[CatalogContribution]) -> Catalog:
    """Merge contributions, lowest precedence first.

    Mapping entries from later layers replace earlier ones. Pattern rules
    from later layers are placed *in front of* earlier rules of the same
    locale, so higher-precedence sources match first.
    """
    commands: dict[str, str | None] = {}
    recipes: dict[str, tuple[str, ...]] = {}
    secondary: list[PatternRuleConfig] = []
    primary: list[PatternRuleConfig] = []
    for layer in layers:
        commands.update(layer.commands)
        recipes.update({name: tuple(steps) for name, steps in layer.recipes.items()})
        secondary[:0] = list(layer.secondary)
        primary[:0] = list(layer.primary)
    return Catalog.build(
        secondary=secondary,
        primary=primary,
        recipes=recipes,
        registry=commands,
    )


def load_catalog(
    settings: ApexSettings | None = None,
    *,
    plugin_layers: Iterable[CatalogContribution] = (),
) -> Catalog:
    """Build the startup catalog: packaged < plugins < config."""
    layers: list[CatalogContribution] = [packaged_contribution(), *plugin_layers]
    if settings is not None:
        layers.append(settings_contribution(settings))
    return merge_contributions(layers)
