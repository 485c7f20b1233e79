"""Tests for the root confix CLI."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from confix import __version__
from confix.cli import cli


def test_cli_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "confix" in result.output


def test_cli_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


@pytest.mark.usefixtures("_isolated_project")
def test_cli_no_args(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, [])
    assert result.exit_code == 0
    assert "Usage" in result.output


# --- Global flags ---


@pytest.mark.parametrize("flag", ["--json", "-q", "-v", "--log-json"])
def test_global_flag_accepted(cli_runner: CliRunner, flag: str) -> None:
    result = cli_runner.invoke(cli, [flag, "--version"])
    assert result.exit_code == 0


def test_config_option_accepted(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["-c", "/tmp/test.toml", "--version"])
    assert result.exit_code == 0


@pytest.mark.usefixtures("_isolated_project")
def test_config_flag_selects_file(
    cli_runner: CliRunner, sample_modules: dict[str, Path], tmp_path: Path
) -> None:
    ci = tmp_path / "ci"
    ci.mkdir()
    (ci / "confix.toml").write_text('[modules]\npaths = ["../base.yaml"]\n', encoding="utf-8")
    result = cli_runner.invoke(
        cli,
        [
            "-q",
            "-c",
            str(ci / "confix.toml"),
            "eval",
            str(sample_modules["pinned"]),
            "--option",
            "count",
        ],
    )
    assert result.exit_code == 0
    assert result.stdout == "7\n"


@pytest.mark.usefixtures("_isolated_project")
def test_invalid_toml_is_reported(cli_runner: CliRunner, tmp_path: Path) -> None:
    (tmp_path / "confix.toml").write_text("[evaluation\n", encoding="utf-8")
    result = cli_runner.invoke(cli, ["check"])
    assert result.exit_code == 1
    assert "Invalid TOML" in result.output
