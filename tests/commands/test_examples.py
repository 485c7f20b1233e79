"""Tests for --examples flag on CLI commands."""

from __future__ import annotations

import click
import pytest
from click.testing import CliRunner

from confix.cli import cli
from confix.commands._base import ConfixCommand

# (CLI args, expected keywords in output)
EXAMPLES_COMMANDS: list[tuple[list[str], list[str]]] = [
    (["--examples"], ["confix eval base.yaml web.py", "confix check modules/"]),
    (["eval", "--examples"], ["--option services.web.port", "--max-iterations 10"]),
    (["check", "--examples"], ["CONFIX_EVALUATION__STRICT_WARNINGS=true"]),
    (["options", "--examples"], ["--prefix services.web", "--internal"]),
]


def _examples_id(item: tuple[list[str], list[str]]) -> str:
    args, _ = item
    return "_".join(a for a in args if a != "--examples") or "root"


@pytest.mark.parametrize(
    ("args", "keywords"),
    EXAMPLES_COMMANDS,
    ids=[_examples_id(c) for c in EXAMPLES_COMMANDS],
)
def test_examples_output(cli_runner: CliRunner, args: list[str], keywords: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0
    assert "Examples for" in result.output
    for keyword in keywords:
        assert keyword in result.output


def test_examples_not_in_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["eval", "--help"])
    assert "--examples" in result.output
    assert "--option services.web.port" not in result.output


def test_help_points_at_examples(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["check", "--help"])
    assert "Run with --examples for usage examples." in result.output


def test_command_without_examples_has_no_flag() -> None:
    @click.command(cls=ConfixCommand)
    def plain() -> None:
        """Does nothing."""

    assert "--examples" not in [opt for p in plain.params for opt in p.opts]
    assert plain.epilog is None
