"""Rich/JSON output helpers.

The CLI renders engine results for humans (Rich tables, colors, icons) or
machines (--json). Handler results are loosely structured, so the human
renderer prefers a ``message`` field and falls back to key/value pairs.
"""

from __future__ import annotations

import json as _json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from rich.markup import escape
from rich.table import Table

from apexctl.output.console import create_console, get_output
from apexctl.services.result import RecipeResult, Resolution, result_message


@dataclass(frozen=True)
class OutputSettings:
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    no_color: bool = False


def to_jsonable(value: Any) -> Any:
    """Convert engine results into JSON-compatible structures."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="python")
    return value


def dump_json(value: Any) -> str:
    return _json.dumps(to_jsonable(value), indent=2, default=str, ensure_ascii=False)


def format_result(result: Any, *, settings: OutputSettings | None = None) -> str:
    """Format a command, recipe, or resolution result for display."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return dump_json(result)
    if isinstance(result, RecipeResult):
        return _format_recipe(result, settings)
    if isinstance(result, Resolution):
        return _format_resolution(result)
    return _format_command(result, settings)


def format_error(exc: BaseException, *, settings: OutputSettings | None = None) -> str:
    """Format an exception raised out of the engine."""
    settings = settings or OutputSettings()
    code = getattr(exc, "code", type(exc).__name__)
    if settings.json_output:
        payload = {
            "ok": False,
            "error": {
                "code": code,
                "message": str(exc),
                "detail": getattr(exc, "detail", {}),
            },
        }
        return dump_json(payload)
    return f"ERROR: {exc}"


# ---------------------------------------------------------------------------
# Human renderers
# ---------------------------------------------------------------------------


def _format_command(result: Any, settings: OutputSettings) -> str:
    if result is None:
        return "OK"
    message = result_message(result)
    if isinstance(result, Mapping):
        if settings.quiet:
            return message or str(result.get("status", "OK"))
        lines: list[str] = []
        if message:
            lines.append(message)
        if settings.verbose or not message:
            lines.extend(_format_pairs(result, skip={"message"}))
        return "\n".join(lines) or "OK"
    if message is not None:
        return message
    return str(result)


def _format_pairs(data: Mapping[str, Any], *, skip: set[str]) -> list[str]:
    lines: list[str] = []
    for key, value in data.items():
        if key in skip:
            continue
        if isinstance(value, (dict, list)):
            rendered = _json.dumps(value, separators=(",", ":"), default=str)
            lines.append(f"  {key}: {rendered}")
        else:
            lines.append(f"  {key}: {value}")
    return lines


def _format_recipe(result: RecipeResult, settings: OutputSettings) -> str:
    status = "OK" if result.success else "FAILED"
    if settings.quiet:
        return f"{result.recipe}: {status}"

    console = create_console(no_color=settings.no_color)
    style = "apex.ok" if result.success else "apex.error"
    name = escape(result.recipe)
    console.print(f"[apex.recipe]{name}[/apex.recipe] [{style}]{status}[/{style}]")

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("#", justify="right", style="apex.key")
    table.add_column("Step", style="apex.step")
    table.add_column("Status")
    table.add_column("Detail")
    for index, outcome in enumerate(result.steps, start=1):
        if outcome.success:
            mark = "[apex.ok]✓[/apex.ok]"
            detail = _step_detail(outcome.result)
        else:
            mark = "[apex.error]✗[/apex.error]"
            detail = outcome.error or ""
        table.add_row(str(index), escape(outcome.step), mark, escape(detail))
    console.print(table)
    return get_output(console).rstrip("\n")


def _step_detail(result: Any) -> str:
    if isinstance(result, RecipeResult):
        status = "ok" if result.success else "failed"
        return f"recipe {result.recipe} ({len(result.steps)} steps, {status})"
    message = result_message(result)
    if message is None:
        return ""
    first_line = message.strip().splitlines()[0] if message.strip() else ""
    return first_line[:100]


def _format_resolution(resolution: Resolution) -> str:
    lines = [f"{resolution.input!r} -> {resolution.kind} {resolution.target}"]
    if resolution.rule_id:
        lines.append(f"  rule: {resolution.rule_id}")
    if resolution.handler_ref:
        lines.append(f"  handler: {resolution.handler_ref}")
    if resolution.args:
        lines.append(f"  args: {_json.dumps(resolution.args, default=str)}")
    if resolution.steps:
        lines.append(f"  steps: {' -> '.join(resolution.steps)}")
    if resolution.project:
        lines.append(f"  project: {resolution.project}")
    return "\n".join(lines)
