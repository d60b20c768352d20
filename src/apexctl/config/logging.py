"""structlog configuration for apexctl.

Two output modes:
- Human (default): colored console output to stderr
- JSON (--log-json): Structured JSON lines to stderr

stdout is reserved for command results.

Event names are dotted (``route.recipe``, ``recipe.step_failed``,
``script.run``). Every record carries the leading segment as ``area`` so
a JSON stream can be filtered per subsystem, and records emitted while a
recipe runs carry the recipe chain (``release > test``).
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from apexctl.services.recipes import active_recipes

AREAS = frozenset({"route", "recipe", "script", "plugin", "ci", "mcp", "project"})


def add_event_area(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Tag dotted apexctl events with their subsystem.

    Examples:
        >>> add_event_area(None, "debug", {"event": "route.recipe"})["area"]
        'route'
        >>> "area" in add_event_area(None, "debug", {"event": "plain message"})
        False
    """
    event = event_dict.get("event")
    if isinstance(event, str) and "." in event:
        head = event.split(".", 1)[0]
        if head in AREAS:
            event_dict.setdefault("area", head)
    return event_dict


def add_recipe_chain(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    chain = active_recipes()
    if chain:
        event_dict.setdefault("recipe_chain", " > ".join(chain))
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_event_area,
        add_recipe_chain,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool, stream: IO[Any]) -> Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    stream: IO[Any] | None = None,
) -> None:
    """Configure structlog processors and output routing.

    Args:
        verbose: Enable DEBUG-level apexctl output. When False, only WARNING+.
        log_json: Use JSON renderer instead of console renderer.
        stream: Destination for log records (default: stderr).
    """
    stream = sys.stderr if stream is None else stream
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(log_json, stream),
        ],
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger("apexctl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
