"""MCP tool definitions.

Two tools: ``apex`` runs an input through the router exactly as the CLI
would, and ``explain`` reports how an input resolves without running it.
Each has an ``*_impl`` coroutine testable without the mcp package;
``register_tools()`` wraps them with FastMCP decorators.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from apexctl.commands._context import is_failure
from apexctl.output.formatters import OutputSettings, dump_json, format_result

log = structlog.get_logger(__name__)

_PLAIN = OutputSettings(no_color=True)


def _to_mcp_response(result: Any) -> dict[str, Any]:
    """Convert a router result to an MCP-friendly dict."""
    return {
        "ok": not is_failure(result),
        "text": format_result(result, settings=_PLAIN),
        "result": json.loads(dump_json(result)),
    }


def _error_response(exc: Exception) -> dict[str, Any]:
    return {
        "ok": False,
        "text": f"Error: {exc}",
        "error": {
            "code": getattr(exc, "code", type(exc).__name__),
            "message": str(exc),
        },
    }


async def apex_impl(
    router: Any, command: str, args: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Run *command* (a phrase, recipe, or command name) through the router."""
    log.debug("mcp.apex", command=command)
    try:
        result = await router.execute(command, dict(args or {}))
    except Exception as exc:
        log.warning("mcp.apex_failed", command=command, error=str(exc))
        return _error_response(exc)
    return _to_mcp_response(result)


async def explain_impl(
    router: Any, command: str, args: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Describe how *command* would be dispatched."""
    try:
        resolution = router.resolve(command, dict(args or {}))
    except Exception as exc:
        return _error_response(exc)
    return _to_mcp_response(resolution)


def register_tools(server: Any, router: Any) -> None:
    """Register the apex tools on the FastMCP server."""

    @server.tool()  # type: ignore[untyped-decorator]
    async def apex(command: str, args: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a developer-automation command, recipe, or natural-language phrase.

        Phrases may be English or Dutch ("fix the CI", "fix de ci"). Recipe
        names (commit-push, release) and commands (git:status, search) work too.
        """
        return await apex_impl(router, command, args)

    @server.tool()  # type: ignore[untyped-decorator]
    async def explain(command: str, args: dict[str, Any] | None = None) -> dict[str, Any]:
        """Show which recipe or command an input resolves to, without running it."""
        return await explain_impl(router, command, args)
