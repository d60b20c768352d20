"""Tests for RecipeEngine: sequential steps, fail-fast, test smart-stop."""

from __future__ import annotations

from typing import Any

import pytest

from apexctl.errors import RecipeCycleError, UnknownRecipeError
from apexctl.services.recipes import RecipeEngine


class ScriptedExecutor:
    """Step executor returning canned results and raising on request."""

    def __init__(
        self,
        results: dict[str, Any] | None = None,
        raises: set[str] | None = None,
    ) -> None:
        self.results = results or {}
        self.raises = raises or set()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def __call__(self, step: str, context: dict[str, Any]) -> Any:
        self.calls.append((step, context))
        if step in self.raises:
            raise RuntimeError(f"{step} exploded")
        return self.results.get(step, {"success": True})

    @property
    def steps(self) -> list[str]:
        return [step for step, _ in self.calls]


class TestRunRecipe:
    @pytest.mark.asyncio
    async def test_all_steps_in_order(self) -> None:
        execute = ScriptedExecutor()
        engine = RecipeEngine({"r": ("a", "b", "c")}, execute)
        result = await engine.run_recipe("r")
        assert result.recipe == "r"
        assert result.success is True
        assert [o.step for o in result.steps] == ["a", "b", "c"]
        assert execute.steps == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_context_passed_to_every_step(self) -> None:
        execute = ScriptedExecutor()
        engine = RecipeEngine({"r": ("a", "b")}, execute)
        context = {"message": "wip"}
        await engine.run_recipe("r", context)
        assert all(ctx is context for _, ctx in execute.calls)

    @pytest.mark.asyncio
    async def test_results_recorded(self) -> None:
        execute = ScriptedExecutor(results={"a": {"message": "done"}})
        engine = RecipeEngine({"r": ("a",)}, execute)
        result = await engine.run_recipe("r")
        assert result.steps[0].result == {"message": "done"}
        assert result.steps[0].error is None

    @pytest.mark.asyncio
    async def test_empty_recipe_succeeds(self) -> None:
        engine = RecipeEngine({"noop": ()}, ScriptedExecutor())
        result = await engine.run_recipe("noop")
        assert result.success is True
        assert result.steps == []

    @pytest.mark.asyncio
    async def test_unknown_recipe_raises_before_any_step(self) -> None:
        execute = ScriptedExecutor()
        engine = RecipeEngine({}, execute)
        with pytest.raises(UnknownRecipeError, match="Unknown recipe: missing"):
            await engine.run_recipe("missing")
        assert execute.calls == []


class TestFailFast:
    @pytest.mark.asyncio
    async def test_stops_at_first_raising_step(self) -> None:
        execute = ScriptedExecutor(raises={"b"})
        engine = RecipeEngine({"r": ("a", "b", "c")}, execute)
        result = await engine.run_recipe("r")
        assert result.success is False
        assert len(result.steps) == 2
        assert result.steps[0].success is True
        assert result.steps[1].success is False
        assert result.steps[1].error == "b exploded"
        assert execute.steps == ["a", "b"]
        assert result.failed_step is result.steps[1]

    @pytest.mark.asyncio
    async def test_first_step_failure(self) -> None:
        execute = ScriptedExecutor(raises={"git:commit"})
        engine = RecipeEngine(
            {"commit-push": ("git:commit", "ci:smart-push", "ci:monitor")}, execute
        )
        result = await engine.run_recipe("commit-push")
        assert len(result.steps) == 1
        assert result.steps[0].success is False
        assert result.success is False

    @pytest.mark.asyncio
    async def test_non_raising_failure_result_does_not_stop(self) -> None:
        execute = ScriptedExecutor(results={"a": {"success": False, "failed": True}})
        engine = RecipeEngine({"r": ("a", "b")}, execute)
        result = await engine.run_recipe("r")
        assert execute.steps == ["a", "b"]
        assert result.success is True


class TestSmartStop:
    @pytest.mark.asyncio
    async def test_failed_tests_stop_recipe(self) -> None:
        execute = ScriptedExecutor(results={"test": {"failed": 3}})
        engine = RecipeEngine({"r": ("build", "test", "deploy")}, execute)
        result = await engine.run_recipe("r")
        assert [o.step for o in result.steps] == ["build", "test"]
        assert execute.steps == ["build", "test"]
        # success covers recorded steps only
        assert result.success is True

    @pytest.mark.asyncio
    async def test_green_tests_continue(self) -> None:
        execute = ScriptedExecutor(results={"test": {"failed": 0}})
        engine = RecipeEngine({"r": ("build", "test", "deploy")}, execute)
        result = await engine.run_recipe("r")
        assert execute.steps == ["build", "test", "deploy"]
        assert result.success is True

    @pytest.mark.asyncio
    async def test_only_the_literal_test_step(self) -> None:
        execute = ScriptedExecutor(results={"test:run": {"failed": 1}})
        engine = RecipeEngine({"r": ("test:run", "deploy")}, execute)
        await engine.run_recipe("r")
        assert execute.steps == ["test:run", "deploy"]

    @pytest.mark.asyncio
    async def test_attribute_style_failed_flag(self) -> None:
        class Outcome:
            failed = 1

        execute = ScriptedExecutor(results={"test": Outcome()})
        engine = RecipeEngine({"r": ("test", "deploy")}, execute)
        result = await engine.run_recipe("r")
        assert len(result.steps) == 1


class TestCycleGuard:
    @pytest.mark.asyncio
    async def test_self_reference_at_top_level_raises(self) -> None:
        recipes = {"loop": ("loop",)}
        engine: RecipeEngine

        async def execute(step: str, context: dict[str, Any]) -> Any:
            return await engine.run_recipe(step, context)

        engine = RecipeEngine(recipes, execute)
        result = await engine.run_recipe("loop")
        # the nested re-entry fails as a step; the outer run still reports
        assert result.success is False
        assert "Recipe cycle detected: loop -> loop" in (result.steps[0].error or "")

    @pytest.mark.asyncio
    async def test_depth_limit(self) -> None:
        recipes = {f"r{i}": (f"r{i + 1}",) for i in range(5)}
        recipes["r5"] = ()
        engine: RecipeEngine

        async def execute(step: str, context: dict[str, Any]) -> Any:
            return await engine.run_recipe(step, context)

        engine = RecipeEngine(recipes, execute, max_depth=3)
        result = await engine.run_recipe("r0")
        assert result.success is True  # outer step recorded the nested result
        inner = result.steps[0].result.steps[0].result
        assert inner.success is False
        assert "Recipe cycle detected" in inner.steps[0].error

    @pytest.mark.asyncio
    async def test_chain_resets_between_runs(self) -> None:
        execute = ScriptedExecutor()
        engine = RecipeEngine({"r": ("a",)}, execute)
        await engine.run_recipe("r")
        result = await engine.run_recipe("r")
        assert result.success is True

    def test_cycle_error_message(self) -> None:
        exc = RecipeCycleError("a", ("a", "b"))
        assert str(exc) == "Recipe cycle detected: a -> b -> a"
        assert exc.code == "RECIPE_CYCLE"
