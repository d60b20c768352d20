"""Tests for Catalog construction, packaged data and layering."""

from __future__ import annotations

from pathlib import Path

import pytest

from apexctl.config.settings import ApexSettings
from apexctl.domain.catalog import (
    Catalog,
    CatalogContribution,
    load_catalog,
    merge_contributions,
    packaged_contribution,
    parse_rules,
)
from apexctl.domain.patterns import CommandMatch, RecipeMatch
from apexctl.errors import CatalogError
from tests.conftest import rules


@pytest.fixture(scope="module")
def packaged() -> Catalog:
    return load_catalog()


class TestCatalogBuild:
    def test_mappings_are_read_only(self) -> None:
        catalog = Catalog.build(recipes={"r": ["a", "b"]}, registry={"a": "m:A"})
        assert catalog.recipes["r"] == ("a", "b")
        with pytest.raises(TypeError):
            catalog.recipes["other"] = ("x",)  # type: ignore[index]
        with pytest.raises(TypeError):
            catalog.registry["b"] = "m:B"  # type: ignore[index]

    def test_invalid_regex_raises_catalog_error(self) -> None:
        with pytest.raises(CatalogError, match="Invalid regex in rule 'bad'"):
            Catalog.build(primary=rules({"name": "bad", "match": "(", "command": "x"}))

    def test_has_recipe_and_command(self) -> None:
        catalog = Catalog.build(recipes={"r": []}, registry={"help": None})
        assert catalog.has_recipe("r")
        assert not catalog.has_recipe("help")
        assert catalog.has_command("help")


class TestParseRules:
    def test_none_is_empty(self) -> None:
        assert parse_rules(None, source="x") == []

    def test_not_a_list(self) -> None:
        with pytest.raises(CatalogError, match="must be a list"):
            parse_rules({"name": "x"}, source="plugin:demo")

    def test_rule_needs_exactly_one_action(self) -> None:
        with pytest.raises(CatalogError, match="invalid pattern rule"):
            parse_rules(
                [{"name": "both", "match": "x", "recipe": "a", "command": "b"}], source="cfg"
            )


class TestPackagedCatalog:
    def test_registry_and_recipes_loaded(self, packaged: Catalog) -> None:
        assert packaged.registry["git:commit"] == "apexctl.scripts.git:GitCommit"
        assert packaged.registry["help"] is None
        assert packaged.recipes["commit-push"] == ("git:commit", "ci:smart-push", "ci:monitor")
        assert packaged.recipes["fix-ci"][0] == "ci:parse"

    def test_recipe_steps_are_resolvable(self, packaged: Catalog) -> None:
        for name, steps in packaged.recipes.items():
            for step in steps:
                assert packaged.has_recipe(step) or packaged.has_command(step), (name, step)

    def test_dutch_fix_ci(self, packaged: Catalog) -> None:
        resolved = packaged.matcher().match("fix de ci")
        assert resolved == RecipeMatch(name="fix-ci", rule_id="fix-de-ci-nl")

    def test_dutch_rules_precede_english(self, packaged: Catalog) -> None:
        resolved = packaged.matcher().match("commit and push")
        assert isinstance(resolved, RecipeMatch)
        assert resolved.rule_id == "commit-en-push-nl"

    def test_english_search_extracts_query(self, packaged: Catalog) -> None:
        resolved = packaged.matcher().match("search for authentication")
        assert resolved == CommandMatch(
            command="search", args={"query": "authentication"}, rule_id="search-pattern"
        )

    def test_dutch_search(self, packaged: Catalog) -> None:
        resolved = packaged.matcher().match("zoek naar login")
        assert isinstance(resolved, CommandMatch)
        assert resolved.args == {"query": "login"}

    @pytest.mark.parametrize("step", ["test", "build", "git:commit", "git:pull", "ci:parse"])
    def test_recipe_steps_do_not_trip_phrases(self, packaged: Catalog, step: str) -> None:
        assert packaged.matcher().match(step) is None

    def test_packaged_contribution_source(self) -> None:
        assert packaged_contribution().source == "packaged"


class TestLayering:
    def test_later_layers_replace_entries(self) -> None:
        base = CatalogContribution(
            source="packaged", commands={"a": "m:A"}, recipes={"r": ("a",)}
        )
        override = CatalogContribution(
            source="config", commands={"a": "m:B"}, recipes={"r": ("a", "a")}
        )
        catalog = merge_contributions([base, override])
        assert catalog.registry["a"] == "m:B"
        assert catalog.recipes["r"] == ("a", "a")

    def test_later_layer_rules_match_first(self) -> None:
        base = CatalogContribution(
            source="packaged",
            primary=rules({"name": "base", "match": "deploy", "command": "build"}),
        )
        plugin = CatalogContribution(
            source="plugin:x",
            primary=rules({"name": "plugin", "match": "deploy", "recipe": "ship"}),
        )
        catalog = merge_contributions([base, plugin])
        assert [r.id for r in catalog.primary_rules] == ["plugin", "base"]

    def test_settings_layer_wins(self, tmp_path: Path) -> None:
        (tmp_path / "apex.toml").write_text(
            '[recipes]\ncommit-push = ["git:commit"]\n\n'
            '[commands]\n"deploy" = "tests.fakes:CountingScript"\n\n'
            "[[patterns.secondary]]\n"
            'name = "uitrollen"\nmatch = "rol.*uit"\ncommand = "deploy"\n'
        )
        settings = ApexSettings.from_cli(project_root=tmp_path)
        plugin = CatalogContribution(
            source="plugin:x", commands={"deploy": "tests.fakes:FailingScript"}
        )
        catalog = load_catalog(settings, plugin_layers=[plugin])
        assert catalog.recipes["commit-push"] == ("git:commit",)
        assert catalog.registry["deploy"] == "tests.fakes:CountingScript"
        assert catalog.secondary_rules[0].id == "uitrollen"
        # packaged entries survive
        assert "git:status" in catalog.registry
