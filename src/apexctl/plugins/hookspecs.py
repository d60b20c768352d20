"""Pluggy hook specifications for extending the dispatch catalog.

Plugins contribute registry entries, recipes, and primary-locale pattern
rules. Contributions are collected once at startup; the catalog is
immutable afterwards.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("apexctl")
hookimpl = pluggy.HookimplMarker("apexctl")


class ApexHookSpec:
    """Hook specifications for the apexctl plugin system."""

    @hookspec
    def apex_commands(self) -> dict[str, str | None] | None:
        """Return command name -> handler reference ("module:Attr")."""

    @hookspec
    def apex_recipes(self) -> dict[str, list[str]] | None:
        """Return recipe name -> ordered step list."""

    @hookspec
    def apex_patterns(self) -> list[dict[str, Any]] | None:
        """Return primary-locale rule tables (name, match, recipe|command|extract)."""
