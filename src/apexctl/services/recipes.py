"""RecipeEngine: sequential execution of named step lists.

Each step re-enters the router, so a step may be a command, another
recipe, or a natural-language phrase. Steps are awaited one at a time.

Failure policy:

* a step that raises is recorded as failed and the recipe stops;
* a step literally named ``"test"`` whose result has a truthy ``failed``
  flag stops the recipe after being recorded (smart-stop);
* an unknown recipe name raises before any step runs.

Handler errors never escape a recipe: the caller always gets a
:class:`RecipeResult` describing how far the workflow got.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from contextvars import ContextVar
from typing import Any

import structlog

from apexctl.errors import RecipeCycleError, UnknownRecipeError
from apexctl.services.result import CommandResult, RecipeResult, StepOutcome, result_failed

log = structlog.get_logger(__name__)

SMART_STOP_STEP = "test"

StepExecutor = Callable[[str, dict[str, Any]], Awaitable[CommandResult]]

# Recipes currently running in this task, outermost first.
_active_chain: ContextVar[tuple[str, ...]] = ContextVar("_active_chain", default=())


def active_recipes() -> tuple[str, ...]:
    """Names of the recipes running in the current task, outermost first."""
    return _active_chain.get()


class RecipeEngine:
    """Runs recipes by feeding each step back through *execute*."""

    def __init__(
        self,
        recipes: Mapping[str, tuple[str, ...]],
        execute: StepExecutor,
        *,
        max_depth: int = 8,
    ) -> None:
        self._recipes = recipes
        self._execute = execute
        self._max_depth = max_depth

    def steps_for(self, name: str) -> tuple[str, ...]:
        steps = self._recipes.get(name)
        if steps is None:
            raise UnknownRecipeError(name)
        return steps

    async def run_recipe(self, name: str, context: dict[str, Any] | None = None) -> RecipeResult:
        steps = self.steps_for(name)
        context = {} if context is None else context

        chain = _active_chain.get()
        if name in chain or len(chain) >= self._max_depth:
            raise RecipeCycleError(name, chain)

        token = _active_chain.set((*chain, name))
        try:
            outcomes = await self._run_steps(name, steps, context)
        finally:
            _active_chain.reset(token)

        success = all(outcome.success for outcome in outcomes)
        log.debug(
            "recipe.complete",
            recipe=name,
            attempted=len(outcomes),
            total=len(steps),
            success=success,
        )
        return RecipeResult(recipe=name, steps=outcomes, success=success)

    async def _run_steps(
        self,
        name: str,
        steps: tuple[str, ...],
        context: dict[str, Any],
    ) -> list[StepOutcome]:
        outcomes: list[StepOutcome] = []
        for index, step in enumerate(steps, start=1):
            log.debug("recipe.step", recipe=name, step=step, index=index, total=len(steps))
            try:
                result = await self._execute(step, context)
            except Exception as exc:
                log.warning("recipe.step_failed", recipe=name, step=step, error=str(exc))
                outcomes.append(StepOutcome(step=step, success=False, error=str(exc)))
                break

            outcomes.append(StepOutcome(step=step, success=True, result=result))
            if step == SMART_STOP_STEP and result_failed(result):
                log.info("recipe.stop", recipe=name, step=step, reason="tests failed")
                break
        return outcomes
