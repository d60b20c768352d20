"""Natural-language pattern rules and the first-match-wins matcher.

A rule pairs a case-insensitive regex with one action:

* :class:`RecipeRef`: run a named recipe,
* :class:`CommandRef`: run a literal command with no extracted args,
* an :data:`Extractor`: a pure function of the regex match returning
  ``(command, args)``.

INVARIANT: order is total. The matcher walks the secondary-locale rules,
then the primary-locale rules, and the first rule whose expression
matches wins. Later rules are never evaluated.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

Extractor = Callable[[re.Match[str]], tuple[str, dict[str, Any]]]


@dataclass(frozen=True)
class RecipeRef:
    name: str


@dataclass(frozen=True)
class CommandRef:
    name: str


@dataclass(frozen=True)
class CaptureExtractor:
    """Data-driven extractor mapping arg names to capture groups.

    Examples:
        >>> ex = CaptureExtractor("search", {"query": 1})
        >>> ex(re.search(r"search\\s+(?:for\\s+)?(.+)", "search for  auth "))
        ('search', {'query': 'auth'})
    """

    command: str
    groups: Mapping[str, int | str] = field(default_factory=dict)

    def __call__(self, match: re.Match[str]) -> tuple[str, dict[str, Any]]:
        args: dict[str, Any] = {}
        for arg_name, group in self.groups.items():
            value = match.group(group)
            if value is None:
                continue
            args[arg_name] = value.strip()
        return self.command, args


PatternAction = RecipeRef | CommandRef | Extractor


@dataclass(frozen=True)
class PatternRule:
    """A compiled rule. Build with :meth:`compile` to get IGNORECASE."""

    id: str
    expression: re.Pattern[str]
    action: PatternAction

    @classmethod
    def compile(cls, rule_id: str, pattern: str, action: PatternAction) -> PatternRule:
        return cls(id=rule_id, expression=re.compile(pattern, re.IGNORECASE), action=action)


# --- Resolved actions ---


@dataclass(frozen=True)
class RecipeMatch:
    """Input resolved to a recipe."""

    name: str
    rule_id: str


@dataclass(frozen=True)
class CommandMatch:
    """Input resolved to a command plus args extracted from the input."""

    command: str
    args: dict[str, Any]
    rule_id: str


ResolvedAction = RecipeMatch | CommandMatch


class PatternMatcher:
    """Apply the ordered rule list to raw input."""

    def __init__(
        self,
        secondary: Iterable[PatternRule] = (),
        primary: Iterable[PatternRule] = (),
    ) -> None:
        self._rules: tuple[PatternRule, ...] = (*secondary, *primary)

    def __iter__(self) -> Iterator[PatternRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def match(self, text: str) -> ResolvedAction | None:
        """Return the first matching rule's resolved action, or None."""
        for rule in self._rules:
            found = rule.expression.search(text)
            if found is None:
                continue
            return _resolve(rule, found)
        return None


def _resolve(rule: PatternRule, found: re.Match[str]) -> ResolvedAction:
    action = rule.action
    if isinstance(action, RecipeRef):
        return RecipeMatch(name=action.name, rule_id=rule.id)
    if isinstance(action, CommandRef):
        return CommandMatch(command=action.name, args={}, rule_id=rule.id)
    command, args = action(found)
    return CommandMatch(command=command, args=dict(args), rule_id=rule.id)
