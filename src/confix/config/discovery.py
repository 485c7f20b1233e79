"""Locating and reading ``confix.toml``.

Lookup order: the ``CONFIX_CONFIG`` environment variable, then a walk up
from the starting directory (the way git looks for ``.git/``).  The
``--config`` flag bypasses both; see :meth:`ConfixSettings.from_cli`.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from confix.config.models import ConfixConfig

CONFIG_FILENAME = "confix.toml"
CONFIG_ENV_VAR = "CONFIX_CONFIG"


class ConfigFileError(ValueError):
    """A config file exists but is not valid TOML."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Invalid TOML in {path}: {reason}")
        self.path = path


def find_config(start: Path | None = None) -> Path | None:
    """Return the ``confix.toml`` governing *start* (default: CWD), if any.

    A non-empty ``CONFIX_CONFIG`` wins outright, even when it names a
    missing file (then no file is used at all).
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        candidate = Path(override)
        return candidate if candidate.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_toml(path: Path) -> dict[str, Any]:
    """Parse *path* as a TOML document.

    Raises:
        ConfigFileError: The file is not valid TOML.
    """
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileError(path, str(exc)) from exc


def load_config(path: Path | None = None, cwd: Path | None = None) -> ConfixConfig:
    """Validated sections from *path*, discovered from *cwd* when omitted.

    No file at all means every section keeps its defaults.
    """
    found = path if path is not None else find_config(cwd)
    if found is None:
        return ConfixConfig()
    return ConfixConfig.model_validate(read_toml(found))
