"""Click command and group classes that carry usage examples.

A command declares ``examples=`` text.  It is printed by an eager
``--examples`` flag instead of bloating ``--help``, and ``--help`` ends
with a one-line hint pointing at the flag.
"""

from __future__ import annotations

import textwrap
from typing import Any

import click

EXAMPLES_HINT = "Run with --examples for usage examples."


def examples_option(examples: str) -> click.Option:
    """Eager ``--examples`` flag that prints *examples* and exits."""
    text = textwrap.indent(textwrap.dedent(examples).strip("\n"), "  ")

    def _show(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(text)
        ctx.exit(0)

    return click.Option(
        ["--examples"],
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=_show,
        help="Show usage examples and exit.",
    )


class ConfixCommand(click.Command):
    """Command accepting ``examples=`` (see module docstring)."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        if examples:
            kwargs.setdefault("epilog", EXAMPLES_HINT)
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(examples_option(examples))


class ConfixGroup(click.Group):
    """Group accepting ``examples=``; its subcommands default to ConfixCommand."""

    command_class = ConfixCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        if examples:
            kwargs.setdefault("epilog", EXAMPLES_HINT)
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(examples_option(examples))
