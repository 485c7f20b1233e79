"""Subcommand modules for confix.

Provides register_commands() which uses deferred imports to keep
``confix --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from confix.commands.check import check
    from confix.commands.eval_cmd import eval_cmd
    from confix.commands.options import options

    cli.add_command(eval_cmd)
    cli.add_command(check)
    cli.add_command(options)
