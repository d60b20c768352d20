"""Tests for PatternRule and the first-match-wins PatternMatcher."""

from __future__ import annotations

import re

import pytest

from apexctl.domain.patterns import (
    CaptureExtractor,
    CommandMatch,
    CommandRef,
    PatternMatcher,
    PatternRule,
    RecipeMatch,
    RecipeRef,
)


def _rule(rule_id: str, pattern: str, action: object) -> PatternRule:
    return PatternRule.compile(rule_id, pattern, action)  # type: ignore[arg-type]


class TestPatternRule:
    def test_compile_is_case_insensitive(self) -> None:
        rule = _rule("r", r"fix.*ci", RecipeRef("fix-ci"))
        assert rule.expression.flags & re.IGNORECASE
        assert rule.expression.search("FIX the CI")

    def test_frozen(self) -> None:
        rule = _rule("r", "x", CommandRef("y"))
        with pytest.raises(AttributeError):
            rule.id = "other"  # type: ignore[misc]


class TestCaptureExtractor:
    def test_index_group_is_stripped(self) -> None:
        found = re.search(r"search\s+(?:for\s+)?(.+)", "search for  auth tokens  ")
        assert found is not None
        assert CaptureExtractor("search", {"query": 1})(found) == (
            "search",
            {"query": "auth tokens"},
        )

    def test_named_group(self) -> None:
        found = re.search(r"read (?P<file>\S+)", "read notes.md")
        assert found is not None
        assert CaptureExtractor("read", {"path": "file"})(found) == ("read", {"path": "notes.md"})

    def test_unmatched_optional_group_is_omitted(self) -> None:
        found = re.search(r"tag(?:\s+(v\S+))?", "tag")
        assert found is not None
        assert CaptureExtractor("git:tag", {"tag": 1})(found) == ("git:tag", {})


class TestPatternMatcher:
    def test_no_rules_no_match(self) -> None:
        assert PatternMatcher().match("anything") is None

    def test_recipe_rule(self) -> None:
        matcher = PatternMatcher(primary=[_rule("cp", r"commit.*push", RecipeRef("commit-push"))])
        assert matcher.match("commit and push") == RecipeMatch(name="commit-push", rule_id="cp")

    def test_command_rule_has_no_args(self) -> None:
        matcher = PatternMatcher(primary=[_rule("st", r"git.*status", CommandRef("git:status"))])
        assert matcher.match("show git status") == CommandMatch(
            command="git:status", args={}, rule_id="st"
        )

    def test_extractor_rule(self) -> None:
        extractor = CaptureExtractor("search", {"query": 1})
        matcher = PatternMatcher(primary=[_rule("s", r"search\s+(?:for\s+)?(.+)", extractor)])
        resolved = matcher.match("search for auth")
        assert isinstance(resolved, CommandMatch)
        assert resolved.command == "search"
        assert resolved.args == {"query": "auth"}

    def test_callable_extractor(self) -> None:
        def extractor(found: re.Match[str]) -> tuple[str, dict[str, object]]:
            return "git:branch", {"name": found.group(1).replace(" ", "-")}

        matcher = PatternMatcher(primary=[_rule("b", r"new branch (.+)", extractor)])
        resolved = matcher.match("new branch fix login")
        assert resolved == CommandMatch(
            command="git:branch", args={"name": "fix-login"}, rule_id="b"
        )

    def test_secondary_rules_run_first(self) -> None:
        matcher = PatternMatcher(
            secondary=[_rule("nl", r"fix\s+de\s+ci", RecipeRef("fix-ci"))],
            primary=[_rule("en", r"fix.*", CommandRef("quality:fix-all"))],
        )
        resolved = matcher.match("fix de ci")
        assert resolved == RecipeMatch(name="fix-ci", rule_id="nl")

    def test_first_match_wins_within_a_locale(self) -> None:
        matcher = PatternMatcher(
            primary=[
                _rule("first", r"status", CommandRef("git:status")),
                _rule("second", r"ci.*status", CommandRef("ci:status")),
            ]
        )
        resolved = matcher.match("ci status")
        assert isinstance(resolved, CommandMatch)
        assert resolved.rule_id == "first"

    def test_later_rules_not_evaluated(self) -> None:
        calls: list[str] = []

        def spy(found: re.Match[str]) -> tuple[str, dict[str, object]]:
            calls.append(found.group(0))
            return "never", {}

        matcher = PatternMatcher(
            primary=[
                _rule("hit", r"hello", CommandRef("greet")),
                _rule("spy", r"hello", spy),
            ]
        )
        matcher.match("hello")
        assert calls == []

    def test_search_not_fullmatch(self) -> None:
        matcher = PatternMatcher(primary=[_rule("r", r"lint", CommandRef("quality:lint"))])
        assert matcher.match("please lint everything") is not None

    def test_iteration_order(self) -> None:
        a = _rule("a", "a", CommandRef("a"))
        b = _rule("b", "b", CommandRef("b"))
        matcher = PatternMatcher(secondary=[b], primary=[a])
        assert [r.id for r in matcher] == ["b", "a"]
        assert len(matcher) == 2
