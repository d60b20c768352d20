"""Async subprocess helper for leaf command handlers.

The dispatch engine never shells out; handlers that wrap git, gh, the test
runner or linters go through :func:`run_process`. A missing binary raises
:class:`~apexctl.errors.ToolNotFoundError`. A non-zero exit is *not* an
error here: handlers decide what a failing tool means for their result.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from apexctl.errors import ToolNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout and stderr combined, stripped."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


def tool_available(tool: str) -> bool:
    return shutil.which(tool) is not None


async def run_process(
    *argv: str,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> ProcessResult:
    """Run *argv* to completion and capture its output.

    Args:
        cwd: Working directory (default: current).
        env: Extra environment variables layered over ``os.environ``.
        timeout: Seconds before the process is killed; raises TimeoutError.
    """
    merged_env = {**os.environ, **(env or {})}
    logger.debug("exec %s (cwd=%s)", " ".join(argv), cwd)
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            env=merged_env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise ToolNotFoundError(argv[0]) from exc

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        raise

    return ProcessResult(
        argv=tuple(argv),
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
