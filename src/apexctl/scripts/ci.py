"""CI handlers backed by the GitHub CLI (``gh``).

Run listings come from ``gh run list --json``; ``ci:parse`` pulls the log
of the latest failed run and keeps only error-looking lines.
"""

from __future__ import annotations

import asyncio
import json
import re
import time
from typing import Any

import structlog

from apexctl.infrastructure.process import tool_available
from apexctl.scripts.base import is_dry_run
from apexctl.scripts.git import GitScript

log = structlog.get_logger(__name__)

RUN_FIELDS = "databaseId,displayTitle,conclusion,status,workflowName,headBranch,createdAt,url"
FAILED_RUN_QUERY = (
    "gh", "run", "list", "--status", "failure", "--limit", "1", "--json", "databaseId"
)

_ERROR_LINE = re.compile(
    r"(\berror\b|\bfailed\b|\bfailure\b|Traceback|AssertionError|FAIL\b|✗|ERR!)",
    re.IGNORECASE,
)
# gh --log-failed prefixes: "<job>\t<step>\t<timestamp> <text>"
_LOG_PREFIX = re.compile(r"^[^\t]*\t[^\t]*\t(?:\S+Z )?")
_MAX_ERROR_LINES = 50


def summarize_runs(runs: list[dict[str, Any]]) -> dict[str, Any]:
    """Classify a ``gh run list`` payload as passing, failing or running."""
    failures = [r for r in runs if r.get("conclusion") == "failure"]
    running = [r for r in runs if r.get("status") in {"in_progress", "queued", "pending"}]
    passed = [r for r in runs if r.get("conclusion") == "success"]
    if failures:
        status = "failing"
        message = f"{len(failures)} workflow run(s) failing"
    elif running:
        status = "running"
        message = f"{len(running)} workflow run(s) in progress"
    elif runs:
        status = "passing"
        message = "All workflow runs passing"
    else:
        status = "unknown"
        message = "No workflow runs found"
    return {
        "status": status,
        "message": message,
        "summary": {
            "total": len(runs),
            "failed": len(failures),
            "running": len(running),
            "passed": len(passed),
        },
    }


def parse_error_lines(log_text: str, limit: int = _MAX_ERROR_LINES) -> list[str]:
    """Keep the lines of a CI log that look like errors, without gh prefixes."""
    errors: list[str] = []
    seen: set[str] = set()
    for raw in log_text.splitlines():
        line = _LOG_PREFIX.sub("", raw).strip()
        if not line or not _ERROR_LINE.search(line) or line in seen:
            continue
        seen.add(line)
        errors.append(line)
        if len(errors) >= limit:
            break
    return errors


class CiScript(GitScript):
    """Shared helpers for gh-backed handlers."""

    def unavailable(self) -> dict[str, Any]:
        return {
            "success": False,
            "status": "unavailable",
            "message": "GitHub CLI (gh) not installed",
        }

    async def branch(self, args: dict[str, Any]) -> str:
        configured = self.settings.ci.branch if self.settings is not None else None
        return str(args.get("branch") or configured or await self.current_branch())

    async def list_runs(
        self, *, branch: str | None = None, limit: int = 10
    ) -> list[dict[str, Any]]:
        argv = ["gh", "run", "list", "--limit", str(limit), "--json", RUN_FIELDS]
        if branch:
            argv.extend(["--branch", branch])
        result = await self.exec(*argv, check=True)
        return json.loads(result.stdout or "[]")


class CiStatus(CiScript):
    name = "ci:status"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        if is_dry_run(args):
            return self.dry_run_result(["gh", "run", "list", "--json", RUN_FIELDS])
        if not tool_available("gh"):
            return self.unavailable()
        branch = await self.branch(args)
        runs = await self.list_runs(branch=branch, limit=int(args.get("limit", 10)))
        result = summarize_runs(runs)
        result["success"] = True
        result["branch"] = branch
        result["latest"] = runs[0] if runs else None
        return result


class CiMonitor(CiScript):
    """Poll the latest run on the branch until it completes.

    Sets ``failed`` when the run concludes with anything but success or
    when the timeout is reached first.
    """

    name = "ci:monitor"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        interval = float(args.get("interval") or self._config_value("poll_interval", 10.0))
        timeout = float(args.get("timeout") or self._config_value("timeout", 900.0))
        if is_dry_run(args):
            return self.dry_run_result(["gh", "run", "list", "--limit", "1", "--json", RUN_FIELDS])
        if not tool_available("gh"):
            return self.unavailable()

        branch = await self.branch(args)
        deadline = time.monotonic() + timeout
        latest: dict[str, Any] | None = None
        while True:
            runs = await self.list_runs(branch=branch, limit=1)
            latest = runs[0] if runs else None
            if latest is not None and latest.get("status") == "completed":
                break
            if time.monotonic() >= deadline:
                log.info("ci.monitor_timeout", branch=branch, timeout=timeout)
                return {
                    "success": False,
                    "failed": True,
                    "status": "timeout",
                    "message": f"CI still running after {timeout:.0f}s",
                    "latest": latest,
                }
            log.debug("ci.monitor_poll", branch=branch, status=(latest or {}).get("status"))
            await asyncio.sleep(interval)

        conclusion = latest.get("conclusion")
        passed = conclusion == "success"
        return {
            "success": passed,
            "failed": not passed,
            "status": conclusion,
            "message": f"{latest.get('workflowName', 'CI')} {conclusion} on {branch}",
            "latest": latest,
        }

    def _config_value(self, key: str, default: float) -> float:
        if self.settings is None:
            return default
        return float(getattr(self.settings.ci, key))


class CiSmartPush(CiScript):
    """Push the current branch, then report the CI run it triggered."""

    name = "ci:smart-push"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        if is_dry_run(args):
            return self.dry_run_result(["git", "push"])
        branch = str(args.get("branch") or await self.current_branch())
        argv = ["git", "push"]
        if not await self.has_upstream():
            argv.extend(["--set-upstream", "origin", branch])

        await self.exec(*argv, check=True)
        result: dict[str, Any] = {
            "success": True,
            "message": f"Pushed {branch}",
            "data": {"branch": branch, "run": None},
        }
        if tool_available("gh"):
            runs = await self.list_runs(branch=branch, limit=1)
            if runs:
                run = runs[0]
                result["data"]["run"] = run
                run_id, status = run.get("databaseId"), run.get("status")
                result["message"] = f"Pushed {branch}; CI run {run_id} {status}"
        return result


class CiParse(CiScript):
    """Extract error lines from a failed run's log (``run_id`` or latest failure)."""

    name = "ci:parse"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        if args.get("logs"):
            errors = parse_error_lines(str(args["logs"]))
            return self._result(None, errors)
        if is_dry_run(args):
            return self.dry_run_result(["gh", "run", "view", "<run-id>", "--log-failed"])
        if not tool_available("gh"):
            return self.unavailable()

        run_id = args.get("run_id")
        if not run_id:
            found = await self.exec(*FAILED_RUN_QUERY, check=True)
            runs = json.loads(found.stdout or "[]")
            if not runs:
                return {
                    "success": True,
                    "status": "no-failures",
                    "message": "No recent failed runs found",
                    "errors": [],
                }
            run_id = runs[0]["databaseId"]

        log_output = await self.exec("gh", "run", "view", str(run_id), "--log-failed", check=True)
        return self._result(run_id, parse_error_lines(log_output.stdout))

    @staticmethod
    def _result(run_id: Any, errors: list[str]) -> dict[str, Any]:
        return {
            "success": True,
            "status": "parsed",
            "run_id": run_id,
            "errors": errors,
            "message": f"{len(errors)} error line(s) found" if errors else "No error lines found",
        }
