"""Root CLI command for apex: one free-form input, resolved by the Router."""

from __future__ import annotations

import asyncio
from typing import Any

import click

from apexctl import __version__
from apexctl.commands import ApexCommand, AppContext
from apexctl.config.settings import ApexSettings
from apexctl.services.help import NL_EXAMPLES

_EXAMPLES = """\
  apex commit-push                 Run a recipe by name
  apex "fix de ci"                 Dutch phrase, routed to the fix-ci recipe
  apex "search for TODO"           Phrase with an extracted argument
  apex search TODO -a limit=5      Built-in search with an extra argument
  apex read README.md              Print a file
  apex git:status --json           Registered command, JSON output
  apex "ship it" --explain         Show how an input resolves without running it
  apex help                        List commands and recipes"""


def parse_arg_pairs(pairs: tuple[str, ...]) -> dict[str, Any]:
    """Turn ``KEY=VALUE`` strings into a dict; a bare ``KEY`` means True."""
    parsed: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not key:
            msg = f"Invalid --arg {pair!r}: expected KEY=VALUE"
            raise click.BadParameter(msg, param_hint="--arg")
        parsed[key] = value if sep else True
    return parsed


def build_args(words: tuple[str, ...], pairs: tuple[str, ...]) -> dict[str, Any]:
    """Collect handler args from trailing words and ``--arg`` pairs."""
    args: dict[str, Any] = {}
    if words:
        args["query"] = " ".join(words)
        args["args"] = list(words)
    args.update(parse_arg_pairs(pairs))
    return args


@click.command(cls=ApexCommand, examples=_EXAMPLES, phrases=NL_EXAMPLES)
@click.version_option(version=__version__, prog_name="apex")
@click.argument("text", metavar="INPUT", required=False)
@click.argument("words", nargs=-1)
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "-a",
    "--arg",
    "arg_pairs",
    multiple=True,
    metavar="KEY=VALUE",
    help="Argument passed to the resolved command (repeatable).",
)
@click.option("--explain", is_flag=True, help="Show how INPUT resolves without running it.")
@click.pass_context
def cli(
    ctx: click.Context,
    text: str | None,
    words: tuple[str, ...],
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    arg_pairs: tuple[str, ...],
    explain: bool,
) -> None:
    """apex: natural-language developer automation.

    INPUT is a phrase ("fix de ci"), a recipe name, or a command name.
    """
    if not text:
        click.echo(ctx.get_help())
        return

    args = build_args(words, arg_pairs)
    settings = ApexSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    app = AppContext(settings)
    ctx.obj = app

    try:
        if explain:
            app.emit(app.router.resolve(text, args))
            return
        result = asyncio.run(app.router.execute(text, args))
    except Exception as exc:
        app.fail(exc)
        return
    app.emit(result)
