"""``find``: glob file finder behind the "find ... files" phrases."""

from __future__ import annotations

from typing import Any

from apexctl.errors import MissingArgumentError
from apexctl.infrastructure.files import FileOps
from apexctl.scripts.base import BaseScript, positional


class FindFiles(BaseScript):
    name = "find"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        pattern = positional(args, "pattern")
        if not pattern:
            raise MissingArgumentError("find", "pattern", "apex find <pattern>")
        limit = args.get("limit")
        found = FileOps(self.project_root).find(pattern, limit=int(limit) if limit else None)
        message = f"Found {len(found)} files matching {pattern}" if found else "No files found"
        return {"success": True, "files": found, "message": message}
