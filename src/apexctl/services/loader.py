"""ScriptLoader: lazy, memoized handler instantiation.

Registry references look like ``"package.module:Attr"`` or
``"package.module"``. ``Attr`` may be a class (instantiated with the
loader's settings) or any object exposing ``run``; a bare module path uses
the module itself, which must define a module-level ``run``.

INVARIANT: at most one instantiation per command name per loader, even
with concurrent first-time callers (double-checked locking).
"""

from __future__ import annotations

import importlib
import inspect
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog

from apexctl.errors import ScriptLoadError

if TYPE_CHECKING:
    from apexctl.config.settings import ApexSettings

log = structlog.get_logger(__name__)


class ScriptLoader:
    """Resolves command names to live handlers and caches them."""

    def __init__(
        self,
        registry: Mapping[str, str | None],
        settings: ApexSettings | None = None,
    ) -> None:
        self._registry = registry
        self._settings = settings
        self._handles: dict[str, Any] = {}
        self._lock = threading.Lock()

    def load(self, name: str) -> Any:
        """Return the handler for *name*, instantiating it on first use."""
        handle = self._handles.get(name)
        if handle is not None:
            return handle
        with self._lock:
            handle = self._handles.get(name)
            if handle is None:
                handle = self._instantiate(name)
                self._handles[name] = handle
        return handle

    def is_loaded(self, name: str) -> bool:
        return name in self._handles

    def loaded_names(self) -> list[str]:
        return sorted(self._handles)

    def _instantiate(self, name: str) -> Any:
        if name not in self._registry:
            raise ScriptLoadError(name, "no registry entry")
        ref = self._registry[name]
        if not ref:
            raise ScriptLoadError(name, "command has no loadable handler")

        module_path, _, attr = ref.partition(":")
        try:
            module = importlib.import_module(module_path)
        except ImportError as exc:
            raise ScriptLoadError(name, f"cannot import '{module_path}' ({exc})") from exc

        if not attr:
            target: Any = module
        else:
            try:
                target = getattr(module, attr)
            except AttributeError as exc:
                raise ScriptLoadError(name, f"'{module_path}' has no attribute '{attr}'") from exc

        if inspect.isclass(target):
            try:
                target = target(self._settings)
            except Exception as exc:
                raise ScriptLoadError(name, f"{attr}() failed: {exc}") from exc

        if not callable(getattr(target, "run", None)):
            raise ScriptLoadError(name, f"handler '{ref}' does not expose run()")

        log.debug("script.load", command=name, ref=ref)
        return target
