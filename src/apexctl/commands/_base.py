"""ApexCommand: Click command with an on-demand ``--examples`` page.

``--help`` stays short. ``--examples`` prints flag-level usage followed by
the natural-language phrases the router understands, so the phrase list
shown here is the same one ``apex help`` prints.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import click


class ApexCommand(click.Command):
    """Click command that can print usage examples and sample phrases."""

    def __init__(
        self,
        *args: Any,
        examples: str | None = None,
        phrases: Sequence[str] = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        self.phrases = tuple(phrases)
        if examples or self.phrases:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._show_examples,
                    help="Show usage examples and sample phrases.",
                )
            )

    def render_examples(self, command_path: str) -> str:
        sections = [f"Examples for '{command_path}':"]
        if self.examples:
            sections.append(self.examples)
        if self.phrases:
            phrase_lines = "\n".join(f"  {command_path} {phrase}" for phrase in self.phrases)
            sections.append(f"Phrases (English and Dutch):\n{phrase_lines}")
        return "\n\n".join(sections)

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(self.render_examples(ctx.command_path))
        ctx.exit(0)
