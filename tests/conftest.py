"""Shared pytest fixtures and test helpers for confix tests."""

from __future__ import annotations

import logging
import textwrap
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from confix.services.telemetry import _current_span, disable_telemetry


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _reset_global_state() -> Generator[None]:
    """Undo telemetry and logging changes made by CLI invocations."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    confix_level = logging.getLogger("confix").level
    yield
    disable_telemetry()
    _current_span.set(None)
    root.handlers = handlers
    root.setLevel(level)
    logging.getLogger("confix").setLevel(confix_level)


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to an empty project so no outer confix.toml is found.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command
    test classes.
    """
    monkeypatch.delenv("CONFIX_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


WriteModule = Callable[[str, str], Path]


@pytest.fixture
def write_module(tmp_path: Path) -> WriteModule:
    """Write a dedented module file under ``tmp_path`` and return its path."""

    def _write(name: str, source: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# Shared module sources (used across service and command tests)
# ---------------------------------------------------------------------------

BASE_YAML = """\
name: base
options:
  count: {type: int, default: 0, description: How many workers}
  services.web.port: {type: port, default: 8080}
  services.web.hosts: {type: "list_of(str, additive)", default: []}
config:
  count: 5
  services.web.hosts: [a]
"""

PINNED_YAML = """\
name: pinned
config:
  count: !force 7
  services.web.hosts: [b]
"""

ASSERT_PY = """\
from confix import Module, assertion

module = Module(
    "limits",
    assertions=[assertion(lambda c: c["count"] > 10, "count must exceed 10", paths=["count"])],
)
"""


@pytest.fixture
def sample_modules(write_module: WriteModule) -> dict[str, Path]:
    """``base.yaml``, ``pinned.yaml`` and ``limits.py`` in ``tmp_path``."""
    return {
        "base": write_module("base.yaml", BASE_YAML),
        "pinned": write_module("pinned.yaml", PINNED_YAML),
        "limits": write_module("limits.py", ASSERT_PY),
    }
