"""Content search backing the built-in ``search`` command.

Uses ripgrep (``rg --json``) when it is on PATH and falls back to a
pure-Python regex scan over :class:`FileOps` discovery otherwise. Both
backends return the same result shape.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from apexctl.config.models import SearchConfig
from apexctl.errors import MissingArgumentError
from apexctl.infrastructure.files import FileOps
from apexctl.infrastructure.process import run_process, tool_available

logger = logging.getLogger(__name__)

# Files larger than this are skipped by the Python backend.
_MAX_SCAN_BYTES = 2 * 1024 * 1024


@dataclass(frozen=True)
class SearchMatch:
    file: str
    line: int
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.file, "line": self.line, "content": self.text}


class Searcher:
    """Search file contents under the project root."""

    def __init__(self, files: FileOps, config: SearchConfig | None = None) -> None:
        self._files = files
        self._config = config or SearchConfig()

    async def search(
        self,
        query: str,
        *,
        paths: list[str] | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        if not query:
            raise MissingArgumentError("search", "query", "apex search <query>")
        paths = paths or list(self._config.paths)
        limit = limit or self._config.limit

        started = time.perf_counter()
        if tool_available("rg"):
            backend = "ripgrep"
            matches = await self._search_ripgrep(query, paths, limit)
        else:
            backend = "python"
            matches = self._search_python(query, paths, limit)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        files = sorted({m.file for m in matches})
        return {
            "query": query,
            "matches": [m.to_dict() for m in matches],
            "files": files,
            "stats": {
                "backend": backend,
                "match_count": len(matches),
                "unique_files": len(files),
                "duration_ms": duration_ms,
            },
            "message": (
                f"Found {len(matches)} matches in {len(files)} files"
                if matches
                else "No matches found"
            ),
        }

    async def _search_ripgrep(self, query: str, paths: list[str], limit: int) -> list[SearchMatch]:
        argv = ["rg", "--json"]
        if self._config.ignore_case:
            argv.append("--ignore-case")
        for excluded in self._config.exclude:
            argv.extend(["--glob", f"!{excluded}"])
        argv.extend(["--", query, *paths])
        proc = await run_process(*argv, cwd=self._files.root)
        # rg exits 1 when nothing matched, 2 on errors.
        if proc.returncode == 2:
            logger.warning("ripgrep failed, falling back to python scan: %s", proc.stderr.strip())
            return self._search_python(query, paths, limit)
        return parse_ripgrep_json(proc.stdout, limit)

    def _search_python(self, query: str, paths: list[str], limit: int) -> list[SearchMatch]:
        flags = re.IGNORECASE if self._config.ignore_case else 0
        try:
            pattern = re.compile(query, flags)
        except re.error:
            pattern = re.compile(re.escape(query), flags)

        excluded = set(self._config.exclude)
        matches: list[SearchMatch] = []
        for path in self._files.walk_files(paths):
            rel = _display_path(path, self._files)
            if excluded.intersection(Path(rel).parts):
                continue
            try:
                if path.stat().st_size > _MAX_SCAN_BYTES:
                    continue
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            for lineno, line in enumerate(text.splitlines(), start=1):
                if pattern.search(line):
                    matches.append(SearchMatch(file=rel, line=lineno, text=line.strip()))
                    if len(matches) >= limit:
                        return matches
        return matches


def parse_ripgrep_json(output: str, limit: int) -> list[SearchMatch]:
    """Extract match records from ``rg --json`` output."""
    matches: list[SearchMatch] = []
    for raw in output.splitlines():
        if not raw.strip():
            continue
        try:
            event = json.loads(raw)
        except json.JSONDecodeError:
            continue
        if event.get("type") != "match":
            continue
        data = event.get("data", {})
        matches.append(
            SearchMatch(
                file=data.get("path", {}).get("text", ""),
                line=int(data.get("line_number") or 0),
                text=data.get("lines", {}).get("text", "").strip(),
            )
        )
        if len(matches) >= limit:
            break
    return matches


def _display_path(path: Path, files: FileOps) -> str:
    try:
        return path.relative_to(files.root).as_posix()
    except ValueError:
        return str(path)
