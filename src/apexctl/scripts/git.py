"""Git handlers: status, commit, push, pull, branch, tag.

``git:commit`` stages everything and, without an explicit message,
derives a conventional-commit message from the changed paths.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from typing import Any

from apexctl.scripts.base import BaseScript, is_dry_run, positional

AUTO_MESSAGE_PLACEHOLDER = "<generated from changes>"
_COMMIT_HASH = re.compile(r"\[[\w./-]+(?: \(root-commit\))? ([0-9a-f]{7,40})\]")


@dataclass
class ChangeSet:
    """Paths from ``git status --porcelain`` grouped by change kind."""

    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    renamed: list[str] = field(default_factory=list)

    @property
    def all(self) -> list[str]:
        return [*self.added, *self.modified, *self.deleted, *self.renamed]

    def __len__(self) -> int:
        return len(self.all)


def parse_porcelain(status: str) -> ChangeSet:
    """Parse ``git status --porcelain`` (v1) output.

    Branch header lines (``## main``) are ignored.
    """
    changes = ChangeSet()
    for line in status.splitlines():
        if not line.strip() or line.startswith("##"):
            continue
        flags, path = line[:2], line[3:].strip()
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        if flags == "??" or "A" in flags:
            changes.added.append(path)
        elif "R" in flags:
            changes.renamed.append(path)
        elif "D" in flags:
            changes.deleted.append(path)
        else:
            changes.modified.append(path)
    return changes


def format_conventional_commit(
    kind: str, description: str, scope: str | None = None, breaking: bool = False
) -> str:
    """Examples:
    >>> format_conventional_commit("feat", "add parser", scope="cli", breaking=True)
    'feat(cli)!: add parser'
    """
    head = kind
    if scope:
        head += f"({scope})"
    if breaking:
        head += "!"
    return f"{head}: {description}"


def common_directory(paths: list[str]) -> str | None:
    dirs = [posixpath.dirname(p) for p in paths]
    if not dirs or any(not d for d in dirs):
        return None
    common = posixpath.commonpath(dirs)
    return common or None


def infer_commit_type(changes: ChangeSet) -> str:
    if len(changes.deleted) > len(changes.added) + len(changes.modified):
        return "chore"
    if any("test" in p for p in changes.added):
        return "test"
    if changes.modified and all(p.endswith(".md") for p in changes.modified):
        return "docs"
    if changes.added and not changes.modified:
        return "feat"
    if any("fix" in p or "bug" in p for p in changes.modified):
        return "fix"
    return "chore"


def infer_scope(paths: list[str]) -> str | None:
    """Top-level directory shared by every path, ignoring ``src``."""
    tops = set()
    for path in paths:
        parts = [p for p in path.split("/") if p and p != "src"]
        if len(parts) < 2:
            return None
        tops.add(parts[0])
    return tops.pop() if len(tops) == 1 else None


def generate_commit_message(
    changes: ChangeSet,
    kind: str = "auto",
    scope: str | None = None,
    breaking: bool = False,
) -> str:
    """Derive a conventional-commit message from a change set."""
    if kind == "auto":
        kind = infer_commit_type(changes)

    if len(changes.added) == 1:
        description = f"add {posixpath.basename(changes.added[0])}"
    elif changes.added:
        description = f"add {len(changes.added)} new files"
    elif len(changes.modified) == 1:
        description = f"update {posixpath.basename(changes.modified[0])}"
    elif changes.modified:
        shared = common_directory(changes.modified)
        description = f"update {shared}" if shared else f"update {len(changes.modified)} files"
    elif changes.deleted:
        description = f"remove {len(changes.deleted)} files"
    else:
        description = f"rename {len(changes.renamed)} files"

    if scope is None:
        scope = infer_scope(changes.all)
    return format_conventional_commit(kind, description, scope=scope, breaking=breaking)


class GitScript(BaseScript):
    """Shared helpers for git handlers."""

    async def git(self, *args: str, check: bool = True) -> str:
        result = await self.exec("git", *args, check=check)
        return result.stdout

    async def current_branch(self) -> str:
        return (await self.git("rev-parse", "--abbrev-ref", "HEAD")).strip()

    async def has_upstream(self) -> bool:
        result = await self.exec("git", "rev-parse", "--abbrev-ref", "@{u}")
        return result.ok


class GitStatus(GitScript):
    name = "git:status"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        if is_dry_run(args):
            return self.dry_run_result(["git", "status", "--porcelain", "--branch"])
        output = await self.git("status", "--porcelain", "--branch")
        header = next((ln for ln in output.splitlines() if ln.startswith("##")), "")
        branch = header[3:].split("...", 1)[0].strip() or "unknown"
        changes = parse_porcelain(output)
        count = len(changes)
        message = (
            f"On branch {branch}: {count} changed file{'s' if count != 1 else ''}"
            if count
            else f"On branch {branch}: working tree clean"
        )
        return {
            "success": True,
            "message": message,
            "data": {
                "branch": branch,
                "clean": count == 0,
                "added": changes.added,
                "modified": changes.modified,
                "deleted": changes.deleted,
                "renamed": changes.renamed,
            },
        }


class GitCommit(GitScript):
    """Stage all changes and commit.

    Args (all optional): ``message``, ``type`` (conventional type or
    ``auto``), ``scope``, ``breaking``, ``amend``, ``no_verify``.
    A dry run touches no git state and leaves an automatic message as a
    placeholder.
    """

    name = "git:commit"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        amend = bool(args.get("amend"))
        kind = str(args.get("type", "auto"))
        scope = args.get("scope")
        breaking = bool(args.get("breaking"))
        message = positional(args, "message", "m")
        if message is not None and kind != "auto":
            message = format_conventional_commit(kind, message, scope=scope, breaking=breaking)

        if is_dry_run(args):
            preview = message
            if preview is None and not amend:
                preview = AUTO_MESSAGE_PLACEHOLDER
            result = self.dry_run_result(
                ["git", "add", "-A"], _commit_argv(preview, amend, args.get("no_verify"))
            )
            result["data"]["message"] = preview
            return result

        status = await self.git("status", "--porcelain")
        changes = parse_porcelain(status)
        if not changes and not amend:
            return {
                "success": False,
                "error": "No changes to commit",
                "message": "Working directory is clean",
            }
        if message is None and not amend:
            message = generate_commit_message(changes, kind, scope, breaking)

        await self.git("add", "-A")
        commit_argv = _commit_argv(message, amend, args.get("no_verify"))
        output = (await self.exec(*commit_argv, check=True)).stdout
        found = _COMMIT_HASH.search(output)
        commit_hash = found.group(1) if found else "unknown"
        return {
            "success": True,
            "message": "Commit amended" if amend else f"Created commit {commit_hash}",
            "data": {
                "hash": commit_hash,
                "message": message,
                "amend": amend,
                "files": len(changes),
            },
        }


def _commit_argv(message: str | None, amend: bool, no_verify: Any) -> list[str]:
    argv = ["git", "commit"]
    if amend:
        argv.append("--amend")
        if message is None:
            argv.append("--no-edit")
    if no_verify:
        argv.append("--no-verify")
    if message is not None:
        argv.extend(["-m", message])
    return argv


class GitPush(GitScript):
    """Push the current branch, setting the upstream when missing."""

    name = "git:push"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        remote = str(args.get("remote", "origin"))
        argv = ["git", "push"]
        if args.get("force"):
            argv.append("--force-with-lease")
        if args.get("tags"):
            argv.append("--follow-tags")
        if is_dry_run(args):
            return self.dry_run_result(argv)

        branch = args.get("branch") or await self.current_branch()
        if not await self.has_upstream():
            argv.extend(["--set-upstream", remote, branch])
        result = await self.exec(*argv, check=True)
        return {
            "success": True,
            "message": f"Pushed {branch} to {remote}",
            "data": {"branch": branch, "remote": remote, "output": result.output},
        }


class GitPull(GitScript):
    name = "git:pull"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        argv = ["git", "pull", "--rebase" if args.get("rebase") else "--ff-only"]
        if is_dry_run(args):
            return self.dry_run_result(argv)
        result = await self.exec(*argv, check=True)
        up_to_date = "Already up to date" in result.stdout
        return {
            "success": True,
            "message": "Already up to date" if up_to_date else "Pulled latest changes",
            "data": {"updated": not up_to_date, "output": result.output},
        }


class GitBranch(GitScript):
    """List branches, or create and switch to ``name``."""

    name = "git:branch"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        name = positional(args, "name", "branch")
        if name:
            argv = ["git", "switch", "-c", name]
            if is_dry_run(args):
                return self.dry_run_result(argv)
            await self.exec(*argv, check=True)
            return {"success": True, "message": f"Created branch {name}", "data": {"branch": name}}

        output = await self.git("branch", "--format=%(refname:short)")
        branches = [ln.strip() for ln in output.splitlines() if ln.strip()]
        current = await self.current_branch()
        return {
            "success": True,
            "message": f"{len(branches)} branches (current: {current})",
            "data": {"branches": branches, "current": current},
        }


class GitTag(GitScript):
    """Create an annotated tag, or list tags when no name is given."""

    name = "git:tag"

    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        tag = positional(args, "tag", "version")
        if not tag:
            output = await self.git("tag", "--sort=-creatordate")
            tags = [ln.strip() for ln in output.splitlines() if ln.strip()]
            return {
                "success": True,
                "message": f"Latest tag: {tags[0]}" if tags else "No tags",
                "data": {"tags": tags},
            }

        message = str(args.get("message") or f"Release {tag}")
        argv = ["git", "tag", "-a", tag, "-m", message]
        if is_dry_run(args):
            return self.dry_run_result(argv)
        await self.exec(*argv, check=True)
        return {"success": True, "message": f"Created tag {tag}", "data": {"tag": tag}}
