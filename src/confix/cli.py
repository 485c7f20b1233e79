"""The ``confix`` command: global flags, then one subcommand per service."""

from __future__ import annotations

from typing import Any

import click

from confix import __version__
from confix.commands import register_commands
from confix.commands._base import ConfixGroup
from confix.commands._context import AppContext
from confix.config.settings import ConfixSettings

# Flags every subcommand honours; they land on ConfixSettings by name.
_GLOBAL_FLAGS: list[click.Option] = [
    click.Option(["--json", "json_output"], is_flag=True, help="Print results as JSON."),
    click.Option(["-q", "--quiet"], is_flag=True, help="Print only values or a status word."),
    click.Option(["-v", "--verbose"], is_flag=True, help="Add origins, timings and debug logs."),
    click.Option(["--log-json"], is_flag=True, help="Write log records to stderr as JSON."),
    click.Option(
        ["-c", "--config", "config_path"],
        default=None,
        metavar="FILE",
        help="Read settings from FILE instead of the discovered confix.toml.",
    ),
]


def _with_global_flags(command: click.Command) -> click.Command:
    command.params.extend(_GLOBAL_FLAGS)
    return command


@_with_global_flags
@click.group(
    cls=ConfixGroup,
    invoke_without_command=True,
    examples="""\
  confix eval base.yaml web.py
  confix options base.yaml
  confix check modules/
  confix --json -c ci/confix.toml check modules/""",
)
@click.version_option(version=__version__, prog_name="confix")
@click.pass_context
def cli(ctx: click.Context, **flags: Any) -> None:
    """confix: compose configuration from modules and evaluate it."""
    ctx.obj = AppContext(ConfixSettings.from_cli(**flags))
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
