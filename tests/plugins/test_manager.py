"""Tests for PluginManager — registration, contributions, and hook relay."""

from __future__ import annotations

import logging

import pluggy
import pytest

from confix.domain import types
from confix.domain.modules import Module
from confix.domain.types import OptionType
from confix.infrastructure.registry import ModuleRegistry
from confix.plugins.manager import PluginManager

hookimpl = pluggy.HookimplMarker("confix")


# ---------------------------------------------------------------------------
# Fake plugins for testing
# ---------------------------------------------------------------------------


class _LoggingPlugin:
    """Contributes one named module."""

    @hookimpl
    def confix_modules(self) -> list[Module]:
        return [Module("logging")]


class _TypesPlugin:
    def __init__(self, small: OptionType) -> None:
        self.small = small

    @hookimpl
    def confix_types(self) -> dict[str, OptionType]:
        return {"small": self.small}


class _BrokenPlugin:
    @hookimpl
    def confix_modules(self) -> list[Module]:
        raise RuntimeError("boom")

    @hookimpl
    def confix_types(self) -> dict[str, OptionType]:
        return {"bad": "not a type"}  # type: ignore[dict-item]


class _RecordingPlugin:
    def __init__(self) -> None:
        self.calls: list[dict[str, object]] = []

    @hookimpl
    def post_evaluate(self, ok: bool, iterations: int, warnings: list[str]) -> None:
        self.calls.append({"ok": ok, "iterations": iterations, "warnings": warnings})


class _FailingNotifyPlugin:
    @hookimpl
    def post_evaluate(self, ok: bool, iterations: int, warnings: list[str]) -> None:
        raise RuntimeError("listener down")


class TestPluginManager:
    def test_hook_relay_accessible(self) -> None:
        pm = PluginManager()
        assert hasattr(pm.hook, "confix_modules")
        assert hasattr(pm.hook, "post_evaluate")

    def test_register_plugin(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_LoggingPlugin(), name="logmod")
        assert "logmod" in pm.list_plugin_names()

    def test_register_plugin_default_name(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_LoggingPlugin())
        assert "_LoggingPlugin" in pm.list_plugin_names()

    def test_unregister_plugin(self) -> None:
        pm = PluginManager()
        plugin = _LoggingPlugin()
        pm.register_plugin(plugin, name="logmod")
        pm.unregister(plugin)
        assert "logmod" not in pm.list_plugin_names()
        assert pm.get_plugins() == []

    def test_is_loaded(self) -> None:
        pm = PluginManager()
        assert pm.is_loaded is False
        pm.discover_and_load(entry_points=False)
        assert pm.is_loaded is True


class TestContributions:
    def test_collect_modules(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_LoggingPlugin(), name="logmod")
        registry = ModuleRegistry()
        [module] = pm.collect_modules(registry)
        assert registry["logging"] is module
        assert module.source == "plugin logmod"

    def test_name_clash_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        pm = PluginManager()
        pm.register_plugin(_LoggingPlugin(), name="first")
        pm.register_plugin(_LoggingPlugin(), name="second")
        registry = ModuleRegistry()
        with caplog.at_level(logging.WARNING, logger="confix.plugins.manager"):
            added = pm.collect_modules(registry)
        assert len(added) == 1
        assert registry["logging"].source == "plugin first"
        assert "Skipping module 'logging' from plugin second" in caplog.text

    def test_broken_plugin_never_raises(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_BrokenPlugin(), name="broken")
        assert pm.collect_modules(ModuleRegistry()) == []
        assert pm.collect_types() == {}

    def test_collect_types_first_plugin_wins(self) -> None:
        first = types.int_between(1, 3)
        pm = PluginManager()
        pm.register_plugin(_TypesPlugin(first), name="a")
        pm.register_plugin(_TypesPlugin(types.int_between(5, 9)), name="b")
        assert pm.collect_types()["small"] is first

    def test_notify_post_evaluate(self) -> None:
        pm = PluginManager()
        recorder = _RecordingPlugin()
        pm.register_plugin(recorder)
        pm.notify_post_evaluate(ok=True, iterations=2, warnings=["w"])
        assert recorder.calls == [{"ok": True, "iterations": 2, "warnings": ["w"]}]

    def test_failing_listener_is_logged(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_FailingNotifyPlugin())
        pm.notify_post_evaluate(ok=False, iterations=0, warnings=[])


class TestNormalizePluginInstances:
    def test_class_registration_is_instantiated(self) -> None:
        pm = PluginManager()
        pm._pm.register(_RecordingPlugin, name="cls")
        pm._normalize_plugin_instances()
        [plugin] = pm.get_plugins()
        assert isinstance(plugin, _RecordingPlugin)
        assert pm.list_plugin_names() == ["cls"]

    def test_has_hook_impls(self) -> None:
        assert PluginManager._has_hook_impls(_RecordingPlugin)
        assert not PluginManager._has_hook_impls(object)
