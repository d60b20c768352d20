"""Code-quality handlers: lint, format, fix-all.

Commands come from ``[quality]`` in ``apex.toml`` when set, otherwise they
are picked by project flavour: ruff for Python projects, eslint and
prettier through npx for Node projects.
"""

from __future__ import annotations

import re
from typing import Any

from apexctl.scripts.base import BaseScript, is_dry_run

LINT_COMMANDS: dict[str, list[str]] = {
    "python": ["ruff", "check", "."],
    "node": ["npx", "eslint", "."],
}
FORMAT_COMMANDS: dict[str, list[str]] = {
    "python": ["ruff", "format", "."],
    "node": ["npx", "prettier", "--write", "."],
}
FIX_COMMANDS: dict[str, list[str]] = {
    "python": ["ruff", "check", "--fix", "."],
    "node": ["npx", "eslint", "--fix", "."],
}

_RUFF_FOUND = re.compile(r"Found (\d+) errors?")
_ESLINT_PROBLEMS = re.compile(r"(\d+) problems?")


def count_issues(output: str) -> int:
    """Number of findings reported by ruff or eslint, 0 when none are reported."""
    for pattern in (_RUFF_FOUND, _ESLINT_PROBLEMS):
        found = pattern.search(output)
        if found:
            return int(found.group(1))
    return 0


class QualityScript(BaseScript):
    def skipped(self) -> dict[str, Any]:
        return {
            "success": True,
            "skipped": True,
            "message": "No supported toolchain detected; nothing to do",
        }

    def lint_command(self) -> list[str] | None:
        if self.settings is not None and self.settings.quality.lint_command:
            return list(self.settings.quality.lint_command)
        return LINT_COMMANDS.get(self.toolchain() or "")

    def format_command(self) -> list[str] | None:
        if self.settings is not None and self.settings.quality.format_command:
            return list(self.settings.quality.format_command)
        return FORMAT_COMMANDS.get(self.toolchain() or "")


class Lint(QualityScript):
    """Run the linter and report findings.

    Findings are not an error: the result carries ``success=False`` and
    an ``issues`` count so recipes keep going.
    """

    name = "quality:lint"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        argv = self.lint_command()
        if argv is None:
            return self.skipped()
        if is_dry_run(args):
            return self.dry_run_result(argv)
        result = await self.exec(*argv)
        issues = count_issues(result.output)
        if result.ok:
            message = "No lint issues"
        else:
            message = f"{issues or 'Some'} lint issue(s) found"
        return {
            "success": result.ok,
            "issues": issues if not result.ok else 0,
            "message": message,
            "data": {"command": " ".join(argv), "output": result.output},
        }


class Format(QualityScript):
    name = "quality:format"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        argv = self.format_command()
        if argv is None:
            return self.skipped()
        if is_dry_run(args):
            return self.dry_run_result(argv)
        result = await self.exec(*argv, check=True)
        return {
            "success": True,
            "message": result.output.splitlines()[-1] if result.output else "Formatted",
            "data": {"command": " ".join(argv)},
        }


class FixAll(QualityScript):
    """Apply auto-fixes, then format."""

    name = "quality:fix-all"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        flavour = self.toolchain()
        commands = [cmd for cmd in (FIX_COMMANDS.get(flavour or ""), self.format_command()) if cmd]
        if not commands:
            return self.skipped()
        if is_dry_run(args):
            return self.dry_run_result(*commands)

        fix_result = None
        for argv in commands:
            result = await self.exec(*argv)
            if fix_result is None:
                fix_result = result
        remaining = count_issues(fix_result.output) if fix_result and not fix_result.ok else 0
        return {
            "success": True,
            "remaining": remaining,
            "message": (
                f"Applied fixes; {remaining} issue(s) need manual attention"
                if remaining
                else "Applied fixes and formatting"
            ),
            "data": {"commands": [" ".join(cmd) for cmd in commands]},
        }
