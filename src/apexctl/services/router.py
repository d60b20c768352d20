"""Router: the single entry point from free-form input to results.

Resolution order (strict):

1. Natural-language patterns. A recipe match runs the recipe; a command
   match merges the extracted args over the caller's (extracted keys win)
   and continues with direct routing.
2. An input that is exactly a recipe name runs that recipe.
3. Direct routing: the ``search``/``read``/``write`` built-ins, then the
   command registry (via the script loader), then ``help``, otherwise
   :class:`~apexctl.errors.UnknownCommandError`.

Patterns always win over literal names: an input that is both a command
name and matches a phrase rule is routed by the rule.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from apexctl.domain.catalog import Catalog, CatalogContribution, load_catalog
from apexctl.domain.patterns import CommandMatch, RecipeMatch
from apexctl.errors import MissingArgumentError, UnknownCommandError
from apexctl.infrastructure.files import FileOps
from apexctl.infrastructure.search import Searcher
from apexctl.services.help import build_help
from apexctl.services.loader import ScriptLoader
from apexctl.services.recipes import RecipeEngine
from apexctl.services.result import CommandResult, RecipeResult, Resolution

if TYPE_CHECKING:
    from apexctl.config.settings import ApexSettings

log = structlog.get_logger(__name__)

BUILTIN_COMMANDS = frozenset({"search", "read", "write"})
HELP_COMMAND = "help"


@dataclass(frozen=True)
class Builtins:
    """Collaborators behind the registry-bypassing built-in commands."""

    files: FileOps
    searcher: Searcher

    @classmethod
    def for_settings(cls, settings: ApexSettings | None) -> Builtins:
        if settings is None:
            files = FileOps(Path.cwd())
            return cls(files=files, searcher=Searcher(files))
        files = FileOps(settings.project_root)
        return cls(files=files, searcher=Searcher(files, settings.search))


class Router:
    """Resolves inputs and dispatches them to recipes, built-ins or handlers."""

    def __init__(
        self,
        catalog: Catalog,
        *,
        settings: ApexSettings | None = None,
        builtins: Builtins | None = None,
        loader: ScriptLoader | None = None,
    ) -> None:
        self.catalog = catalog
        self.settings = settings
        self.builtins = builtins or Builtins.for_settings(settings)
        self.loader = loader or ScriptLoader(catalog.registry, settings)
        self._matcher = catalog.matcher()
        max_depth = settings.router.max_recipe_depth if settings is not None else 8
        self.recipes = RecipeEngine(catalog.recipes, self.execute, max_depth=max_depth)

    @classmethod
    def from_settings(
        cls,
        settings: ApexSettings,
        *,
        plugin_layers: Iterable[CatalogContribution] = (),
    ) -> Router:
        """Build a router over the packaged catalog plus plugin and config entries."""
        return cls(load_catalog(settings, plugin_layers=plugin_layers), settings=settings)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        text: str,
        args: dict[str, Any] | None = None,
    ) -> CommandResult | RecipeResult:
        """Resolve *text* and run it.

        Raises UnknownCommandError, UnknownRecipeError, ScriptLoadError, or
        whatever a directly executed handler raises.
        """
        args = {} if args is None else args

        resolved = self._matcher.match(text)
        if isinstance(resolved, RecipeMatch):
            log.debug("route.pattern", input=text, rule=resolved.rule_id, recipe=resolved.name)
            return await self.recipes.run_recipe(resolved.name, args)
        if isinstance(resolved, CommandMatch):
            log.debug(
                "route.pattern",
                input=text,
                rule=resolved.rule_id,
                command=resolved.command,
            )
            return await self.route_command(resolved.command, {**args, **resolved.args})

        if self.catalog.has_recipe(text):
            log.debug("route.recipe", input=text)
            return await self.recipes.run_recipe(text, args)

        return await self.route_command(text, args)

    async def run_recipe(self, name: str, context: dict[str, Any] | None = None) -> RecipeResult:
        return await self.recipes.run_recipe(name, context)

    async def route_command(self, command: str, args: dict[str, Any]) -> CommandResult:
        """Direct routing for an already-resolved command name."""
        if command in BUILTIN_COMMANDS:
            log.debug("route.builtin", command=command)
            return await self._run_builtin(command, args)

        if self.catalog.registry.get(command):
            handler = self.loader.load(command)
            log.debug("route.command", command=command)
            result = handler.run(args)
            if inspect.isawaitable(result):
                result = await result
            return result

        if command == HELP_COMMAND:
            return build_help(self.catalog.registry, self.catalog.recipes)

        raise UnknownCommandError(command)

    async def _run_builtin(self, command: str, args: dict[str, Any]) -> CommandResult:
        files = self.builtins.files
        if command == "search":
            query = args.get("query") or args.get("q") or ""
            paths = args.get("paths")
            if isinstance(paths, str):
                paths = [paths]
            limit = args.get("limit")
            return await self.builtins.searcher.search(
                str(query),
                paths=paths,
                limit=int(limit) if limit else None,
            )

        path = args.get("path") or args.get("file") or args.get("query")
        if command == "read":
            if not path:
                raise MissingArgumentError("read", "path", "apex read <file>")
            content = files.read(path)
            return {
                "success": True,
                "message": content,
                "data": {"path": str(files.resolve(path)), "content": content},
            }

        content = args.get("content")
        if not path:
            raise MissingArgumentError("write", "path", "apex write <file> --arg content=...")
        if content is None:
            raise MissingArgumentError("write", "content", "apex write <file> --arg content=...")
        target = files.write(path, str(content))
        size = len(str(content).encode("utf-8"))
        return {
            "success": True,
            "message": f"Wrote {size} bytes to {path}",
            "data": {"path": str(target), "bytes": size},
        }

    # ------------------------------------------------------------------
    # Dry-run resolution
    # ------------------------------------------------------------------

    def resolve(self, text: str, args: dict[str, Any] | None = None) -> Resolution:
        """Describe how :meth:`execute` would dispatch *text* without running it."""
        args = {} if args is None else args
        resolved = self._matcher.match(text)
        if isinstance(resolved, RecipeMatch):
            return self._describe_recipe(text, resolved.name, args, resolved.rule_id)
        if isinstance(resolved, CommandMatch):
            merged = {**args, **resolved.args}
            return self._describe_command(text, resolved.command, merged, resolved.rule_id)
        if self.catalog.has_recipe(text):
            return self._describe_recipe(text, text, args, None)
        return self._describe_command(text, text, args, None)

    def _describe_recipe(
        self, text: str, name: str, args: dict[str, Any], rule_id: str | None
    ) -> Resolution:
        return Resolution(
            input=text,
            kind="recipe",
            target=name,
            args=args,
            rule_id=rule_id,
            steps=list(self.catalog.recipes.get(name, ())),
            project=self._project(),
        )

    def _describe_command(
        self, text: str, command: str, args: dict[str, Any], rule_id: str | None
    ) -> Resolution:
        ref = self.catalog.registry.get(command)
        if command in BUILTIN_COMMANDS:
            kind = "builtin"
        elif ref:
            kind = "command"
        elif command == HELP_COMMAND:
            kind = "help"
        else:
            kind = "unknown"
        return Resolution(
            input=text,
            kind=kind,
            target=command,
            args=args,
            rule_id=rule_id,
            handler_ref=ref,
            project=self._project(),
        )

    def _project(self) -> str | None:
        if self.settings is None:
            return None
        return self.settings.location.describe()
