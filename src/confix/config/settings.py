"""ConfixSettings: CLI flags, environment and confix.toml in one object.

Precedence, strongest first:

1. keyword arguments (the global CLI flags, passed on by Click)
2. ``CONFIX_*`` environment variables; ``__`` separates nested sections,
   e.g. ``CONFIX_EVALUATION__STRICT_WARNINGS=true``
3. the ``confix.toml`` chosen by :meth:`ConfixSettings.from_cli`
4. defaults baked into :mod:`confix.config.models`
"""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from confix.config.discovery import ConfigFileError, find_config, read_toml
from confix.config.models import EvaluationConfig, ModulesConfig

# TOML file chosen by from_cli() for the instance under construction.
_pending_toml: ContextVar[Path | None] = ContextVar("_pending_toml", default=None)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by a single ``confix.toml`` (or by nothing)."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path is not None and toml_path.is_file():
            self._data = read_toml(toml_path)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return dict(self._data)


class ConfixSettings(BaseSettings):
    """Resolved settings for one confix invocation (frozen).

    The root CLI group builds it once and hands it to every service via
    :class:`~confix.commands._context.AppContext`.

    Attributes:
        project_root: Base for relative ``[modules] paths`` and the local
            plugin directory; the TOML file's directory, else the CWD.
        config_path: The TOML file that was read, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "CONFIX_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # Global CLI flags
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # confix.toml sections
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    modules: ModulesConfig = Field(default_factory=ModulesConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # No dotenv or secrets directory: confix.toml takes their place.
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, _pending_toml.get()),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> ConfixSettings:
        """Build settings for a CLI invocation.

        *config_path* (``--config``) names the TOML file directly; otherwise
        it is discovered from *project_root* or the CWD.

        Raises:
            click.ClickException: The TOML file is not valid TOML.
        """
        if config_path:
            explicit = Path(config_path)
            toml_path = explicit if explicit.is_file() else None
        else:
            toml_path = find_config(project_root)

        if project_root is None:
            project_root = toml_path.parent if toml_path is not None else Path.cwd()

        token = _pending_toml.set(toml_path)
        try:
            return cls(project_root=project_root, config_path=toml_path, **cli_flags)
        except ConfigFileError as exc:
            import click

            raise click.ClickException(str(exc)) from exc
        finally:
            _pending_toml.reset(token)

    def module_paths(self) -> list[Path]:
        """``[modules] paths``, relative entries resolved against :attr:`project_root`."""
        resolved: list[Path] = []
        for entry in self.modules.paths:
            path = Path(entry)
            resolved.append(path if path.is_absolute() else self.project_root / path)
        return resolved
