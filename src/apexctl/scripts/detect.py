"""``detect-issues``: a quick look at what needs attention before fixing."""

from __future__ import annotations

from typing import Any

from apexctl.infrastructure.process import tool_available
from apexctl.scripts.base import is_dry_run
from apexctl.scripts.git import parse_porcelain
from apexctl.scripts.quality import QualityScript, count_issues


class DetectIssues(QualityScript):
    """Aggregate uncommitted changes and lint findings."""

    name = "detect-issues"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        lint_argv = self.lint_command()
        if is_dry_run(args):
            commands = [["git", "status", "--porcelain"]]
            if lint_argv:
                commands.append(lint_argv)
            return self.dry_run_result(*commands)

        issues: list[dict[str, Any]] = []
        if tool_available("git"):
            status = await self.exec("git", "status", "--porcelain")
            if status.ok:
                changes = parse_porcelain(status.stdout)
                if changes:
                    issues.append(
                        {
                            "type": "uncommitted",
                            "count": len(changes),
                            "files": changes.all,
                        }
                    )
        if lint_argv and tool_available(lint_argv[0]):
            lint = await self.exec(*lint_argv)
            if not lint.ok:
                issues.append(
                    {
                        "type": "lint",
                        "count": count_issues(lint.output) or 1,
                        "command": " ".join(lint_argv),
                    }
                )

        summary = ", ".join(f"{i['count']} {i['type']}" for i in issues)
        return {
            "success": True,
            "issues": issues,
            "message": f"Found issues: {summary}" if issues else "No issues detected",
        }
