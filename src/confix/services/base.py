"""BaseService — shared module loading for all confix services.

Every service receives the resolved :class:`ConfixSettings` and an
optional :class:`PluginManager` at construction time.  Loading is a
separate phase completed before any evaluation starts: plugin modules
are registered first, then ``[modules] paths`` from confix.toml, then
the files named by the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from confix.config.settings import ConfixSettings
from confix.infrastructure.loader import ModuleLoader
from confix.infrastructure.registry import ModuleRegistry

if TYPE_CHECKING:
    from confix.domain.modules import Module
    from confix.domain.types import OptionType
    from confix.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedModules:
    """Root modules (in load order) plus the registry for named imports."""

    roots: list[Module]
    registry: ModuleRegistry


class BaseService:
    """Base for service-layer classes.

    Usage::

        class EvaluateService(BaseService):
            def evaluate(self, paths: Sequence[Path]) -> ServiceResult:
                loaded = self._load(paths)
                ...
    """

    def __init__(
        self,
        settings: ConfixSettings | None = None,
        *,
        plugins: PluginManager | None = None,
    ) -> None:
        self._settings = settings if settings is not None else ConfixSettings()
        self._plugins = plugins

    @property
    def settings(self) -> ConfixSettings:
        return self._settings

    def _load(self, paths: Sequence[Path]) -> LoadedModules:
        """Load plugin, configured and requested modules.

        Raises:
            ModuleLoadError: A file could not be loaded.
        """
        registry = ModuleRegistry()
        types: dict[str, OptionType] = {}
        if self._plugins is not None:
            self._plugins.collect_modules(registry)
            types = self._plugins.collect_types()

        loader = ModuleLoader(types)
        roots = loader.load_all([*self._settings.module_paths(), *paths])
        # File modules shadow plugin modules of the same name.
        registry.register_all(roots, replace=True)
        logger.debug("Loaded %d root module(s), %d named", len(roots), len(registry))
        return LoadedModules(roots=roots, registry=registry)

    def _notify(self, *, ok: bool, iterations: int, warnings: list[str]) -> None:
        if self._plugins is not None:
            self._plugins.notify_post_evaluate(ok=ok, iterations=iterations, warnings=warnings)
