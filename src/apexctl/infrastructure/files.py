"""File operations backing the built-in ``read``/``write`` commands and ``find``.

Relative paths resolve against the project root. Discovery skips VCS
metadata, dependency trees and build output.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path

# Directories to skip when discovering files.
SKIP_DIRS = frozenset(
    {".git", ".hg", "node_modules", ".venv", "venv", "__pycache__", "dist", "build", ".apex"}
)


class FileOps:
    """Project-rooted file reads, writes and glob discovery."""

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()

    def resolve(self, path: str | Path) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate
        return candidate.resolve()

    def read(self, path: str | Path) -> str:
        """Return the UTF-8 text of *path*.

        Raises FileNotFoundError naming the path as given.
        """
        target = self.resolve(path)
        if not target.is_file():
            msg = f"File not found: {path}"
            raise FileNotFoundError(msg)
        return target.read_text(encoding="utf-8")

    def write(self, path: str | Path, content: str) -> Path:
        """Write *content* to *path*, creating parent directories."""
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def find(self, pattern: str, *, limit: int | None = None) -> list[str]:
        """Glob for *pattern* under the root, returning root-relative paths.

        A bare extension such as ``js`` or ``.py`` is treated as ``**/*.js``.
        """
        glob = _normalize_glob(pattern)
        found: list[str] = []
        for path in self.walk_files():
            rel = path.relative_to(self.root)
            if rel.match(glob) or path.name == pattern:
                found.append(rel.as_posix())
                if limit is not None and len(found) >= limit:
                    break
        return sorted(found)

    def walk_files(self, roots: Iterable[str | Path] | None = None) -> Iterator[Path]:
        """Yield regular files under *roots* (default: the project root)."""
        for start in roots or [self.root]:
            base = self.resolve(start)
            if base.is_file():
                yield base
                continue
            yield from _walk(base)


def _walk(base: Path) -> Iterator[Path]:
    if not base.is_dir():
        return
    for entry in sorted(base.iterdir()):
        if entry.is_dir():
            if entry.name in SKIP_DIRS:
                continue
            yield from _walk(entry)
        elif entry.is_file():
            yield entry


def _normalize_glob(pattern: str) -> str:
    """Map shorthand to a glob.

    Examples:
        >>> _normalize_glob("js")
        '*.js'
        >>> _normalize_glob(".py")
        '*.py'
        >>> _normalize_glob("src/*.ts")
        'src/*.ts'
    """
    if any(ch in pattern for ch in "*?[/"):
        return pattern
    if pattern.startswith("."):
        return f"*{pattern}"
    if "." not in pattern:
        return f"*.{pattern}"
    return pattern
