"""Command: evaluate module files to a resolved configuration."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from confix.commands._base import ConfixCommand

if TYPE_CHECKING:
    from confix.commands._context import AppContext


@click.command(
    "eval",
    cls=ConfixCommand,
    examples="""\
  confix eval base.yaml web.py
  confix eval modules/ --option services.web.port
  confix --json eval site.yaml
  confix -q eval site.yaml --option services.web.hosts
  confix eval site.yaml --max-iterations 10""",
)
@click.argument(
    "module_files",
    nargs=-1,
    type=click.Path(exists=True, path_type=Path),
)
@click.option("--option", "option", default=None, help="Print only this option (dotted path).")
@click.option(
    "--max-iterations",
    type=click.IntRange(min=2),
    default=None,
    help="Override [evaluation] max_iterations.",
)
@click.pass_obj
def eval_cmd(
    app: AppContext,
    module_files: tuple[Path, ...],
    option: str | None,
    max_iterations: int | None,
) -> None:
    """Evaluate MODULE_FILES and print the resolved configuration."""
    from confix.services.evaluate import EvaluateService

    svc = EvaluateService(app.settings, plugins=app.plugins)
    app.emit(svc.evaluate(list(module_files), option=option, max_iterations=max_iterations))
