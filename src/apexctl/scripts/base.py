"""BaseScript: shared plumbing for subprocess-backed command handlers.

Handlers are instantiated once per process by the script loader, with
the active :class:`~apexctl.config.settings.ApexSettings` (or ``None``).
``run(args)`` receives the routed argument dict and returns a
``CommandResult`` mapping.

Every handler honours ``dry_run``: the command lines it would execute are
reported instead of run.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

import structlog

from apexctl.errors import CommandFailedError
from apexctl.infrastructure.process import ProcessResult, run_process

if TYPE_CHECKING:
    from apexctl.config.settings import ApexSettings

log = structlog.get_logger(__name__)

PYTHON_MARKERS = ("pyproject.toml", "setup.py", "setup.cfg")
NODE_MARKERS = ("package.json",)


class BaseScript:
    """Base class for leaf handlers."""

    name: ClassVar[str] = ""

    def __init__(self, settings: ApexSettings | None = None) -> None:
        self.settings = settings

    @property
    def project_root(self) -> Path:
        if self.settings is None:
            return Path.cwd()
        return self.settings.project_root

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def toolchain(self) -> str | None:
        """Detect the project flavour: ``"python"``, ``"node"`` or None."""
        root = self.project_root
        if any((root / marker).is_file() for marker in PYTHON_MARKERS):
            return "python"
        if any((root / marker).is_file() for marker in NODE_MARKERS):
            return "node"
        return None

    async def exec(
        self,
        *argv: str,
        check: bool = False,
        timeout: float | None = None,
    ) -> ProcessResult:
        """Run *argv* in the project root.

        With *check*, a non-zero exit raises CommandFailedError.
        """
        result = await run_process(*argv, cwd=self.project_root, timeout=timeout)
        log.debug("script.exec", command=self.name, argv=list(argv), returncode=result.returncode)
        if check and not result.ok:
            raise CommandFailedError(argv, result.returncode, result.output)
        return result

    def dry_run_result(self, *commands: Sequence[str]) -> dict[str, Any]:
        rendered = [" ".join(cmd) for cmd in commands]
        return {
            "success": True,
            "dry_run": True,
            "message": "Would run: " + "; ".join(rendered),
            "data": {"commands": rendered},
        }


def is_dry_run(args: dict[str, Any]) -> bool:
    value = args.get("dry_run", False)
    if isinstance(value, str):
        return value.lower() not in {"", "0", "false", "no"}
    return bool(value)


def positional(args: dict[str, Any], *keys: str) -> str | None:
    """First non-empty value among *keys*, falling back to the joined query."""
    for key in (*keys, "query"):
        value = args.get(key)
        if value:
            return str(value)
    return None
