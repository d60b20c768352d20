"""Result types flowing out of the dispatch engine.

Handlers return a loosely structured ``CommandResult``: usually a mapping
with optional ``success``, ``status``, ``data``, ``message``, ``error`` and
``failed`` keys, but any object is accepted and passed through verbatim.
The engine itself only ever looks at the ``failed`` flag.

Recipes produce the structured :class:`RecipeResult`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field

CommandResult = Any


def result_failed(result: CommandResult) -> bool:
    """Whether a handler result carries a truthy ``failed`` flag."""
    if result is None:
        return False
    if isinstance(result, Mapping):
        return bool(result.get("failed"))
    return bool(getattr(result, "failed", False))


def result_message(result: CommandResult) -> str | None:
    """Best-effort human message for a handler result."""
    if isinstance(result, str):
        return result
    if isinstance(result, Mapping):
        message = result.get("message")
        return str(message) if message is not None else None
    return None


class StepOutcome(BaseModel):
    """One attempted recipe step.

    Attributes:
        step: The step string as written in the recipe.
        success: False only when the step raised.
        result: The step's return value (handler result or nested RecipeResult).
        error: The exception message for a failed step.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    step: str
    success: bool
    result: Any = None
    error: str | None = None


class RecipeResult(BaseModel):
    """Aggregated outcome of a recipe run.

    INVARIANT: ``success`` is computed over the recorded steps only. A
    recipe halted by the test smart-stop after successful steps reports
    ``success=True`` even though later steps never ran.
    """

    model_config = {"frozen": True}

    recipe: str
    steps: list[StepOutcome] = Field(default_factory=list)
    success: bool

    @property
    def failed_step(self) -> StepOutcome | None:
        for outcome in self.steps:
            if not outcome.success:
                return outcome
        return None


class Resolution(BaseModel):
    """How an input would be dispatched, without running it."""

    model_config = {"frozen": True}

    input: str
    kind: Literal["recipe", "command", "builtin", "help", "unknown"]
    target: str
    args: dict[str, Any] = Field(default_factory=dict)
    rule_id: str | None = None
    handler_ref: str | None = None
    steps: list[str] = Field(default_factory=list)
    project: str | None = None
