"""Command: document the options declared by module files."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from confix.commands._base import ConfixCommand

if TYPE_CHECKING:
    from confix.commands._context import AppContext


@click.command(
    cls=ConfixCommand,
    examples="""\
  confix options site.yaml
  confix options modules/ --prefix services.web
  confix -v options site.yaml --internal
  confix --json options site.yaml""",
)
@click.argument(
    "module_files",
    nargs=-1,
    type=click.Path(exists=True, path_type=Path),
)
@click.option("--prefix", default=None, help="Only options under this dotted path.")
@click.option("--internal", is_flag=True, help="Include options marked internal.")
@click.pass_obj
def options(
    app: AppContext,
    module_files: tuple[Path, ...],
    prefix: str | None,
    internal: bool,
) -> None:
    """List every option declared by MODULE_FILES."""
    from confix.services.options import OptionsService

    svc = OptionsService(app.settings, plugins=app.plugins)
    app.emit(svc.list_options(list(module_files), prefix=prefix, include_internal=internal))
