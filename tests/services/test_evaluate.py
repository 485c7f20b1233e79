"""Tests for EvaluateService — evaluate and check operations."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pluggy
import pytest

from confix.config.settings import ConfixSettings
from confix.domain import types
from confix.domain.modules import Module
from confix.domain.options import mk_option
from confix.plugins.manager import PluginManager
from confix.services.evaluate import EvaluateService

WriteModule = Callable[[str, str], Path]

hookimpl = pluggy.HookimplMarker("confix")

EXPECTED_TREE = {"count": 7, "services": {"web": {"hosts": ["a", "b"], "port": 8080}}}

WARN_PY = """\
from confix import Module, warning

module = Module("noisy", warnings=[warning(lambda c: True, "heads up")])
"""


class _FeaturePlugin:
    @hookimpl
    def confix_modules(self) -> list[Module]:
        return [
            Module("features", options={"features.beta": mk_option(types.bool_, default=False)})
        ]


class _Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[bool, int, list[str]]] = []

    @hookimpl
    def post_evaluate(self, ok: bool, iterations: int, warnings: list[str]) -> None:
        self.calls.append((ok, iterations, warnings))


# ---------------------------------------------------------------------------
# evaluate
# ---------------------------------------------------------------------------


class TestEvaluate:
    def test_full_tree(self, sample_modules: dict[str, Path]) -> None:
        result = EvaluateService().evaluate([sample_modules["base"], sample_modules["pinned"]])
        assert result.ok
        assert result.op == "evaluate"
        assert result.data["config"] == EXPECTED_TREE
        assert result.data["modules"] == ["base", "pinned"]
        assert result.data["iterations"] == 2
        assert result.warnings == []

    def test_history_in_meta(self, sample_modules: dict[str, Path]) -> None:
        result = EvaluateService().evaluate([sample_modules["base"]])
        assert result.meta is not None
        history = result.meta["history"]
        assert len(history) == 2
        assert history[-1] == 0

    def test_single_option(self, sample_modules: dict[str, Path]) -> None:
        result = EvaluateService().evaluate(
            [sample_modules["base"], sample_modules["pinned"]], option="count"
        )
        assert result.ok
        assert result.data["option"] == "count"
        assert result.data["value"] == 7
        assert "config" not in result.data

    def test_subtree_option(self, sample_modules: dict[str, Path]) -> None:
        result = EvaluateService().evaluate([sample_modules["base"]], option="services.web")
        assert result.ok
        assert result.data["value"] == {"hosts": ["a"], "port": 8080}

    def test_undefined_option(self, sample_modules: dict[str, Path]) -> None:
        result = EvaluateService().evaluate([sample_modules["base"]], option="nope")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "NOT_DEFINED"
        assert result.error.detail == {"option": "nope"}

    def test_assertion_failure(self, sample_modules: dict[str, Path]) -> None:
        result = EvaluateService().evaluate(
            [sample_modules["base"], sample_modules["pinned"], sample_modules["limits"]]
        )
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "ASSERTION_FAILURE"
        [failure] = result.data["failures"]
        assert failure["message"] == "count must exceed 10"
        assert failure["paths"] == ["count"]

    def test_module_load_error(self, write_module: WriteModule) -> None:
        broken = write_module("broken.yaml", "name: broken\nbogus: 1\n")
        result = EvaluateService().evaluate([broken])
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "MODULE_LOAD_ERROR"

    def test_missing_file(self, tmp_path: Path) -> None:
        result = EvaluateService().evaluate([tmp_path / "absent.yaml"])
        assert result.error is not None
        assert result.error.code == "MODULE_LOAD_ERROR"
        assert "no such file" in result.error.message

    def test_evaluation_errors_are_structured(self, write_module: WriteModule) -> None:
        path = write_module("bad.yaml", "name: bad\nconfig:\n  ghost: 1\n")
        result = EvaluateService().evaluate([path])
        assert result.error is not None
        assert result.error.code == "EVALUATION_ERROR"
        assert "ghost" in result.error.message

    def test_max_iterations_override(self, sample_modules: dict[str, Path]) -> None:
        result = EvaluateService().evaluate([sample_modules["base"]], max_iterations=1)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_ARGUMENT"

    def test_zero_max_iterations_is_rejected(self, sample_modules: dict[str, Path]) -> None:
        result = EvaluateService().evaluate([sample_modules["base"]], max_iterations=0)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_ARGUMENT"
        assert "at least 2" in result.error.message

    def test_warnings_reported(
        self, sample_modules: dict[str, Path], write_module: WriteModule
    ) -> None:
        noisy = write_module("noisy.py", WARN_PY)
        result = EvaluateService().evaluate([sample_modules["base"], noisy])
        assert result.ok
        assert result.warnings == ["heads up"]

    def test_strict_warnings(
        self, sample_modules: dict[str, Path], write_module: WriteModule
    ) -> None:
        noisy = write_module("noisy.py", WARN_PY)
        settings = ConfixSettings(evaluation={"strict_warnings": True})
        result = EvaluateService(settings).evaluate([sample_modules["base"], noisy])
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "STRICT_WARNINGS"
        assert result.error.detail == {"warnings": ["heads up"]}

    def test_settings_module_paths(self, tmp_path: Path, sample_modules: dict[str, Path]) -> None:
        settings = ConfixSettings(project_root=tmp_path, modules={"paths": ["base.yaml"]})
        result = EvaluateService(settings).evaluate([sample_modules["pinned"]])
        assert result.ok
        assert result.data["config"] == EXPECTED_TREE
        assert result.data["modules"] == ["base", "pinned"]


# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------


class TestPluginModules:
    def test_named_import_from_plugin(self, write_module: WriteModule) -> None:
        app = write_module("app.yaml", "name: app\nimports: [features]\n")
        pm = PluginManager()
        pm.register_plugin(_FeaturePlugin())
        result = EvaluateService(plugins=pm).evaluate([app])
        assert result.ok
        assert result.data["config"] == {"features": {"beta": False}}
        assert result.data["modules"] == ["app", "features"]

    def test_post_evaluate_notified(self, sample_modules: dict[str, Path]) -> None:
        pm = PluginManager()
        recorder = _Recorder()
        pm.register_plugin(recorder)
        EvaluateService(plugins=pm).evaluate([sample_modules["base"]])
        assert recorder.calls == [(True, 2, [])]

    def test_post_evaluate_on_failure(self, sample_modules: dict[str, Path]) -> None:
        pm = PluginManager()
        recorder = _Recorder()
        pm.register_plugin(recorder)
        EvaluateService(plugins=pm).evaluate(
            [sample_modules["base"], sample_modules["limits"]]
        )
        [(ok, _iterations, _warnings)] = recorder.calls
        assert ok is False


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


class TestCheck:
    def test_passing(self, sample_modules: dict[str, Path]) -> None:
        result = EvaluateService().check([sample_modules["base"], sample_modules["pinned"]])
        assert result.ok
        assert result.op == "check"
        assert result.data["options"] == 3
        assert result.data["failures"] == []
        assert result.data["iterations"] == 2

    def test_failing(self, sample_modules: dict[str, Path]) -> None:
        result = EvaluateService().check([sample_modules["base"], sample_modules["limits"]])
        assert not result.ok
        assert result.op == "check"
        assert result.error is not None
        assert result.error.code == "ASSERTION_FAILURE"

    @pytest.mark.parametrize("strict", [False, True])
    def test_warnings_and_strictness(
        self, strict: bool, sample_modules: dict[str, Path], write_module: WriteModule
    ) -> None:
        noisy = write_module("noisy.py", WARN_PY)
        settings = ConfixSettings(evaluation={"strict_warnings": strict})
        result = EvaluateService(settings).check([sample_modules["base"], noisy])
        assert result.ok is not strict
        assert result.warnings == ["heads up"]
