"""Test and build handlers.

The test runner is ``[testing] command`` when configured, otherwise
pytest for Python projects or ``npm test`` for Node projects. Its result
carries ``failed``, the number of failing tests, so a recipe can stop
after a red test step.
"""

from __future__ import annotations

import re
import shlex
import sys
from typing import Any

from apexctl.errors import CommandFailedError
from apexctl.scripts.base import BaseScript, is_dry_run

_PYTEST_COUNTS = re.compile(r"(\d+) (failed|errors?)\b")
_JEST_FAILED = re.compile(r"Tests:\s+(\d+) failed")


def count_failures(output: str, returncode: int) -> int:
    """Failed test count from pytest or jest output.

    A non-zero exit without a parsable count counts as one failure.

    Examples:
        >>> count_failures("=== 2 failed, 10 passed, 1 error in 0.5s ===", 1)
        3
        >>> count_failures("Tests:       4 failed, 12 passed, 16 total", 1)
        4
        >>> count_failures("boom", 2)
        1
    """
    total = sum(int(n) for n, _kind in _PYTEST_COUNTS.findall(output))
    if not total:
        jest = _JEST_FAILED.search(output)
        total = int(jest.group(1)) if jest else 0
    if not total and returncode != 0:
        return 1
    return total


def runner_arguments(args: dict[str, Any]) -> list[str]:
    """Extra runner arguments from the explicit ``test_args`` key.

    Positional words typed after a recipe name are shared by every step,
    so they never reach the test runner.

    Examples:
        >>> runner_arguments({"test_args": "-k 'auth and not slow'", "query": "v1.2.0"})
        ['-k', 'auth and not slow']
        >>> runner_arguments({"args": ["v1.2.0"]})
        []
    """
    extra = args.get("test_args")
    if extra is None or extra is True:
        return []
    if isinstance(extra, str):
        return shlex.split(extra)
    return [str(a) for a in extra]


class TestRunner(BaseScript):
    """Run the project's test suite."""

    __test__ = False

    name = "test"

    def command(self) -> list[str] | None:
        if self.settings is not None and self.settings.testing.command:
            return list(self.settings.testing.command)
        flavour = self.toolchain()
        if flavour == "python":
            return [sys.executable, "-m", "pytest", "-q"]
        if flavour == "node":
            return ["npm", "test", "--silent"]
        return None

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        argv = self.command()
        if argv is None:
            return {
                "success": True,
                "skipped": True,
                "failed": 0,
                "message": "No test runner detected",
            }
        argv = [*argv, *runner_arguments(args)]
        if is_dry_run(args):
            result = self.dry_run_result(argv)
            result["failed"] = 0
            return result

        proc = await self.exec(*argv)
        failed = count_failures(proc.output, proc.returncode)
        return {
            "success": failed == 0,
            "failed": failed,
            "message": "All tests passed" if failed == 0 else f"{failed} test(s) failed",
            "data": {"command": " ".join(argv), "returncode": proc.returncode},
        }


class Build(BaseScript):
    """Build the project; a failing build raises so recipes stop."""

    name = "build"

    def command(self) -> list[str] | None:
        if self.settings is not None and self.settings.testing.build_command:
            return list(self.settings.testing.build_command)
        flavour = self.toolchain()
        if flavour == "python":
            return [sys.executable, "-m", "build"]
        if flavour == "node":
            return ["npm", "run", "build"]
        return None

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        argv = self.command()
        if argv is None:
            return {"success": True, "skipped": True, "message": "No build step detected"}
        if is_dry_run(args):
            return self.dry_run_result(argv)
        proc = await self.exec(*argv)
        if not proc.ok:
            raise CommandFailedError(argv, proc.returncode, proc.output)
        return {
            "success": True,
            "message": "Build succeeded",
            "data": {"command": " ".join(argv)},
        }
