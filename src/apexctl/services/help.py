"""Help text built from the command registry and recipe dictionary.

Pure read of the catalog: commands are grouped by their ``prefix:``
namespace, recipes are listed with their steps.
"""

from __future__ import annotations

from collections.abc import Mapping

BUILTIN_COMMANDS: dict[str, str] = {
    "help": "Show this help",
    "search <query>": "Search file contents",
    "read <file>": "Read file contents",
    "write <file>": "Write --arg content=... to a file",
}

_CATEGORY_TITLES: dict[str, str] = {
    "ci": "CI",
    "git": "Git",
    "quality": "Quality",
    "test": "Testing",
}

NL_EXAMPLES = (
    '"fix the CI"',
    '"search for authentication"',
    '"commit and push"',
    '"fix de ci"',
    '"wat is kapot?"',
)


def group_commands(registry: Mapping[str, str | None]) -> dict[str, list[str]]:
    """Group dispatchable commands by namespace prefix.

    Examples:
        >>> group_commands({"git:push": "m:A", "build": "m:B", "help": None})
        {'Core': ['build'], 'Git': ['git:push']}
    """
    groups: dict[str, list[str]] = {}
    for name, ref in registry.items():
        if ref is None:
            continue
        prefix = name.split(":", 1)[0] if ":" in name else ""
        title = _CATEGORY_TITLES.get(prefix, prefix.capitalize() or "Core")
        groups.setdefault(title, []).append(name)
    return {title: sorted(names) for title, names in sorted(groups.items())}


def build_help(
    registry: Mapping[str, str | None],
    recipes: Mapping[str, tuple[str, ...]],
) -> dict[str, object]:
    """Return a CommandResult carrying the rendered help and its structure."""
    groups = group_commands(registry)
    lines = [
        "Apex: developer automation hub",
        "",
        "Usage: apex <command|recipe|phrase> [args]",
        "",
        "Built-in:",
    ]
    lines.extend(f"  {usage:<18}{desc}" for usage, desc in BUILTIN_COMMANDS.items())
    for title, names in groups.items():
        lines.append("")
        lines.append(f"{title}:")
        lines.extend(f"  {name}" for name in names)

    if recipes:
        lines.append("")
        lines.append("Recipes:")
        for name in sorted(recipes):
            lines.append(f"  {name:<18}{' -> '.join(recipes[name])}")

    lines.append("")
    lines.append("Natural language (English and Dutch):")
    lines.extend(f"  apex {example}" for example in NL_EXAMPLES)

    return {
        "success": True,
        "message": "\n".join(lines),
        "data": {
            "commands": groups,
            "recipes": {name: list(steps) for name, steps in sorted(recipes.items())},
        },
    }
