"""AppContext: shared state for one ``apex`` invocation.

Created once by the CLI entry point. Provides lazy Router construction
(plugin discovery and catalog loading happen on first use, so ``--help``
and ``--version`` never touch them) and centralized result emission
(stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import click
import structlog

from apexctl.output.formatters import OutputSettings, format_error, format_result
from apexctl.services.result import RecipeResult, result_failed

if TYPE_CHECKING:
    from apexctl.config.settings import ApexSettings
    from apexctl.domain.catalog import CatalogContribution
    from apexctl.plugins.manager import PluginManager
    from apexctl.services.router import Router

log = structlog.get_logger(__name__)


class AppContext:
    """Shared context for the CLI.

    The router is lazily initialized on first use.
    """

    def __init__(self, settings: ApexSettings) -> None:
        self.settings = settings
        self._router: Router | None = None
        self._plugins: PluginManager | None = None

        # Configure structured logging
        from apexctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        log.debug("project.located", project=settings.location.describe())

    @property
    def output_settings(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    @property
    def plugins(self) -> PluginManager:
        """The plugin manager (discovered lazily on first access)."""
        if self._plugins is None:
            from apexctl.plugins.manager import PluginManager

            self._plugins = PluginManager()
            if self.settings.plugins.enabled:
                local_dir = self.settings.resolve_path(self.settings.plugins.local_dir)
                self._plugins.discover_and_load(local_dir=local_dir)
        return self._plugins

    @property
    def router(self) -> Router:
        """The router instance (created lazily on first access)."""
        if self._router is None:
            from apexctl.services.router import Router

            layers: list[CatalogContribution] = []
            if self.settings.plugins.enabled:
                layers = self.plugins.collect_contributions()
            self._router = Router.from_settings(self.settings, plugin_layers=layers)
        return self._router

    def emit(self, result: Any) -> None:
        """Format and output an engine result with correct exit semantics.

        * Success: writes to stdout, returns normally.
        * Failed recipe or failed command result: writes to stderr, exits 1.
        """
        output = format_result(result, settings=self.output_settings)
        if is_failure(result):
            click.echo(output, err=True)
            raise SystemExit(1)
        click.echo(output)

    def fail(self, exc: BaseException) -> None:
        """Report an exception raised by the engine and exit 1."""
        click.echo(format_error(exc, settings=self.output_settings), err=True)
        raise SystemExit(1)


def is_failure(result: Any) -> bool:
    """Whether *result* should make the process exit non-zero."""
    if isinstance(result, RecipeResult):
        return not result.success
    if isinstance(result, Mapping) and result.get("success") is False:
        return True
    return result_failed(result)
