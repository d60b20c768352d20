"""Error taxonomy for command resolution and recipe execution.

Every engine failure surfaces as one of these types (or as the handler's
own exception when a command is executed directly). Each carries a stable
machine ``code`` and a ``detail`` mapping for structured output.
"""

from __future__ import annotations

from typing import Any

HELP_HINT = "Try 'apex help' for available commands."


class ApexError(Exception):
    """Base class for apexctl errors."""

    code = "APEX_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail


class UnknownCommandError(ApexError):
    """The resolved command has no registry entry and is not a built-in."""

    code = "UNKNOWN_COMMAND"

    def __init__(self, command: str) -> None:
        super().__init__(f"Unknown command: {command}\n\n{HELP_HINT}", command=command)
        self.command = command


class UnknownRecipeError(ApexError):
    """A recipe name was referenced that the recipe dictionary lacks."""

    code = "UNKNOWN_RECIPE"

    def __init__(self, recipe: str) -> None:
        super().__init__(f"Unknown recipe: {recipe}", recipe=recipe)
        self.recipe = recipe


class RecipeCycleError(ApexError):
    """A recipe re-entered itself or nested deeper than allowed."""

    code = "RECIPE_CYCLE"

    def __init__(self, recipe: str, chain: tuple[str, ...]) -> None:
        path = " -> ".join((*chain, recipe))
        super().__init__(f"Recipe cycle detected: {path}", recipe=recipe, chain=list(chain))
        self.recipe = recipe
        self.chain = chain


class MissingArgumentError(ApexError):
    """A built-in command was invoked without a required argument."""

    code = "MISSING_ARGUMENT"

    def __init__(self, command: str, argument: str, usage: str) -> None:
        super().__init__(
            f"{command} requires '{argument}'. Usage: {usage}",
            command=command,
            argument=argument,
        )


class ToolNotFoundError(ApexError):
    """An external binary required by a leaf handler is not installed."""

    code = "TOOL_NOT_FOUND"

    def __init__(self, tool: str) -> None:
        super().__init__(f"Required tool not found on PATH: {tool}", tool=tool)
        self.tool = tool


class CatalogError(ApexError):
    """Pattern, recipe, or registry data failed validation."""

    code = "INVALID_CATALOG"


class ScriptLoadError(ImportError):
    """The script loader could not resolve or instantiate a handler."""

    code = "SCRIPT_LOAD_FAILED"

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Cannot load handler for '{command}': {reason}", name=command)
        self.command = command
        self.reason = reason


class CommandFailedError(ApexError):
    """An external tool run by a leaf handler exited non-zero."""

    code = "COMMAND_FAILED"

    def __init__(self, argv: tuple[str, ...] | list[str], returncode: int, output: str) -> None:
        command = " ".join(argv)
        message = f"'{command}' exited with status {returncode}"
        if output.strip():
            message = f"{message}: {output.strip().splitlines()[-1]}"
        super().__init__(message, argv=list(argv), returncode=returncode)
        self.returncode = returncode
        self.output = output
