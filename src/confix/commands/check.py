"""Command: validate module files (assertions, warnings, conflicts)."""

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
  confix check site.yaml
  confix check modules/
  confix --json check site.yaml
  CONFIX_EVALUATION__STRICT_WARNINGS=true confix check site.yaml""",
)
@click.argument(
    "module_files",
    nargs=-1,
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--max-iterations",
    type=click.IntRange(min=2),
    default=None,
    help="Override [evaluation] max_iterations.",
)
@click.pass_obj
def check(app: AppContext, module_files: tuple[Path, ...], max_iterations: int | None) -> None:
    """Evaluate MODULE_FILES and report only whether they are consistent."""
    from confix.services.evaluate import EvaluateService

    svc = EvaluateService(app.settings, plugins=app.plugins)
    app.emit(svc.check(list(module_files), max_iterations=max_iterations))
