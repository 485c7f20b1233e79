"""Plugin discovery, loading and hook dispatch.

Plugins come from two places: distributions advertising the
``confix.plugins`` entry-point group, and single ``*.py`` files in a
local plugin directory.  They contribute named modules, named option
types, and listen for ``post_evaluate``.  A misbehaving plugin is logged
and skipped; it never stops an evaluation.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any

import pluggy

from confix.domain.modules import Module
from confix.domain.types import OptionType
from confix.plugins.hookspecs import ConfixHookSpec

if TYPE_CHECKING:
    from confix.infrastructure.registry import ModuleRegistry

PROJECT_NAME = "confix"
ENTRY_POINT_GROUP = "confix.plugins"
LOCAL_MODULE_PREFIX = "confix_local_plugin_"

logger = logging.getLogger(__name__)


class PluginManager:
    """Thin wrapper over :class:`pluggy.PluginManager` for confix hooks."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(ConfixHookSpec)
        self._loaded = False

    def discover_and_load(
        self, *, entry_points: bool = True, local_dir: Path | None = None
    ) -> list[str]:
        """Load entry-point plugins and, if given, the files in *local_dir*.

        Returns the names of all registered plugins afterwards.
        """
        if entry_points:
            self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
            self._normalize_plugin_instances()
        if local_dir is not None:
            self._discover_local(local_dir)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        name = name or type(plugin).__name__
        self._pm.register(plugin, name=name)
        logger.debug("Registered plugin: %s", name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        """Registered plugins in registration order."""
        return [plugin for _, plugin in self._registered()]

    def list_plugin_names(self) -> list[str]:
        return [name for name, _ in self._registered()]

    def _registered(self) -> list[tuple[str, object]]:
        # pluggy keeps blocked names with a None plugin.
        return [
            (name, plugin) for name, plugin in self._pm.list_name_plugin() if plugin is not None
        ]

    # ── Contributions ───────────────────────────────────────────────

    def _contributions(self, hook_name: str) -> Iterator[tuple[str, Any]]:
        """Yield ``(plugin name, return value)`` for each implementation.

        Hooks are called one plugin at a time, so a raising plugin is
        logged and skipped instead of aborting the whole dispatch.
        ``None`` results are dropped.
        """
        for plugin_name, plugin in self._registered():
            impl = getattr(plugin, hook_name, None)
            if impl is None:
                continue
            try:
                value = impl()
            except Exception:
                logger.warning("Plugin %s failed in %s", plugin_name, hook_name, exc_info=True)
                continue
            if value is not None:
                yield plugin_name, value

    def collect_modules(self, registry: ModuleRegistry) -> list[Module]:
        """Register every plugin-provided module into *registry*.

        Non-list results, non-Module entries and names that are already
        registered are skipped with a warning.  Returns the modules added.
        """
        added: list[Module] = []
        for plugin_name, provided in self._contributions("confix_modules"):
            if not isinstance(provided, list):
                logger.warning("Plugin %s returned non-list modules", plugin_name)
                continue
            for module in provided:
                if not isinstance(module, Module):
                    logger.warning("Plugin %s returned non-Module %r", plugin_name, module)
                    continue
                if module.source is None:
                    module.source = f"plugin {plugin_name}"
                try:
                    registry.register(module)
                except ValueError:
                    logger.warning(
                        "Skipping module %r from plugin %s", module.name, plugin_name, exc_info=True
                    )
                else:
                    added.append(module)
        return added

    def collect_types(self) -> dict[str, OptionType]:
        """Named option types from all plugins; on a name clash the first wins."""
        collected: dict[str, OptionType] = {}
        for plugin_name, provided in self._contributions("confix_types"):
            if not isinstance(provided, dict):
                logger.warning("Plugin %s returned non-dict option types", plugin_name)
                continue
            for type_name, option_type in provided.items():
                if isinstance(option_type, OptionType) and type_name not in collected:
                    collected[type_name] = option_type
                else:
                    logger.warning(
                        "Skipping option type %r from plugin %s", type_name, plugin_name
                    )
        return collected

    def notify_post_evaluate(self, *, ok: bool, iterations: int, warnings: list[str]) -> None:
        """Broadcast ``post_evaluate``; listener errors are only logged."""
        try:
            self._pm.hook.post_evaluate(ok=ok, iterations=iterations, warnings=list(warnings))
        except Exception:
            logger.warning("post_evaluate hook failed", exc_info=True)

    # ── Local plugin files ──────────────────────────────────────────

    def _discover_local(self, local_dir: Path) -> None:
        """Register hook classes found in ``local_dir/*.py``.

        Files starting with ``_`` are ignored.  A file that fails to import
        or a class that fails to instantiate is logged and skipped.
        """
        if not local_dir.is_dir():
            return
        for py_file in sorted(local_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            module = _import_local(py_file)
            if module is None:
                continue
            for cls in _hook_classes(module):
                try:
                    self.register_plugin(cls(), name=f"{module.__name__}.{cls.__name__}")
                except Exception:
                    logger.warning(
                        "Failed to instantiate plugin class %s from %s",
                        cls.__name__,
                        py_file,
                        exc_info=True,
                    )

    def _normalize_plugin_instances(self) -> None:
        """Swap plugin classes registered by entry points for instances.

        An entry point may name a class; pluggy would then call its hook
        methods unbound.
        """
        for name, plugin in self._registered():
            if not (inspect.isclass(plugin) and self._has_hook_impls(plugin)):
                continue
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning("Failed to instantiate entry-point plugin %s", name, exc_info=True)
                continue
            self._pm.register(instance, name=name)
            logger.debug("Instantiated entry-point plugin: %s", name)

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """Whether any public attribute of *cls* carries a ``confix_impl`` marker."""
        return any(
            callable(member) and getattr(member, f"{PROJECT_NAME}_impl", None)
            for name, member in inspect.getmembers(cls)
            if not name.startswith("_")
        )


def _import_local(py_file: Path) -> ModuleType | None:
    """Import *py_file* as ``confix_local_plugin_<stem>``; None on failure."""
    module_name = f"{LOCAL_MODULE_PREFIX}{py_file.stem}"
    spec = importlib.util.spec_from_file_location(module_name, py_file)
    if spec is None or spec.loader is None:
        logger.warning("Could not create module spec for %s", py_file)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
        sys.modules.pop(module_name, None)
        return None
    return module


def _hook_classes(module: ModuleType) -> list[type]:
    """Classes defined (not imported) in *module* that implement hooks."""
    return [
        cls
        for _, cls in inspect.getmembers(module, inspect.isclass)
        if cls.__module__ == module.__name__ and PluginManager._has_hook_impls(cls)
    ]
