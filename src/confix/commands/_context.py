"""Per-invocation state handed to subcommands through ``@click.pass_obj``."""

from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING

import click

from confix.config.logging import configure_logging
from confix.output.formatters import OutputSettings, format_result
from confix.services.telemetry import enable_telemetry

if TYPE_CHECKING:
    from confix.config.settings import ConfixSettings
    from confix.plugins.manager import PluginManager
    from confix.services.result import ServiceResult

# Relative to the project root.
LOCAL_PLUGIN_DIR = ".confix/plugins"

EXIT_FAILURE = 1


class AppContext:
    """Settings, lazily loaded plugins, and result output for one run.

    Building it configures logging, and turns telemetry on for
    ``--verbose``.
    """

    def __init__(self, settings: ConfixSettings) -> None:
        self.settings = settings
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        if settings.verbose:
            enable_telemetry()

    @cached_property
    def plugins(self) -> PluginManager:
        """Plugins, discovered on first access so ``--help`` never loads them."""
        from confix.plugins.manager import PluginManager

        manager = PluginManager()
        manager.discover_and_load(
            entry_points=self.settings.modules.entry_points,
            local_dir=self.settings.project_root / LOCAL_PLUGIN_DIR,
        )
        return manager

    @property
    def output_settings(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    def emit(self, result: ServiceResult) -> None:
        """Print *result* and exit non-zero if it failed.

        Results go to stdout, failures to stderr.  Outside JSON mode each
        warning becomes a ``WARNING:`` line on stderr, so piped values stay
        clean; JSON output already carries them.
        """
        settings = self.output_settings
        text = format_result(result, settings=settings)
        if not settings.json_output:
            for warning in result.warnings:
                click.echo(f"WARNING: {warning}", err=True)
        click.echo(text, err=not result.ok)
        if not result.ok:
            raise SystemExit(EXIT_FAILURE)
