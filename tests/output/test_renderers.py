"""Tests for operation-specific Rich renderers."""

from __future__ import annotations

from typing import Any

from confix.output.renderers import format_value, render_quiet, render_result
from confix.services.result import ServiceError, ServiceResult

TREE = {"count": 7, "services": {"web": {"hosts": ["a", "b"], "port": 8080}}}


def _ok(op: str, meta: dict[str, Any] | None = None, **data: Any) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=data, meta=meta)


def _fail(code: str, detail: dict[str, Any], message: str = "failed") -> ServiceResult:
    return ServiceResult(
        ok=False,
        op="evaluate",
        error=ServiceError(code=code, message=message, detail=detail),
    )


class TestFormatValue:
    def test_string_is_raw(self) -> None:
        assert format_value("hello") == "hello"

    def test_json_compact(self) -> None:
        assert format_value(["a", 1]) == '["a",1]'
        assert format_value(True) == "true"
        assert format_value(None) == "null"


# ---------------------------------------------------------------------------
# evaluate
# ---------------------------------------------------------------------------


class TestRenderEvaluate:
    def test_tree(self) -> None:
        output = render_result(_ok("evaluate", config=TREE, iterations=2, modules=["a"]))
        assert output.startswith("OK")
        assert "count = 7" in output
        assert "port = 8080" in output
        assert 'hosts = ["a","b"]' in output
        assert "iterations: 2" in output
        assert "modules" not in output

    def test_single_value(self) -> None:
        output = render_result(_ok("evaluate", option="count", value=7, iterations=2))
        assert "option: count" in output
        assert "value: 7" in output

    def test_subtree_value(self) -> None:
        output = render_result(
            _ok("evaluate", option="services.web", value=TREE["services"]["web"], iterations=2)
        )
        assert "port = 8080" in output

    def test_verbose_shows_modules_and_meta(self) -> None:
        meta = {
            "history": [3, 0],
            "telemetry": {
                "name": "EvaluateService.evaluate",
                "duration_ms": 1.5,
                "children": [
                    {"name": "fixed_point", "duration_ms": 1.0, "annotations": {"iterations": 2}}
                ],
            },
        }
        result = _ok("evaluate", meta=meta, config={"x": 1}, iterations=2, modules=["a", "b"])
        output = render_result(result, verbose=True)
        assert "modules: a, b" in output
        assert "history: [3, 0]" in output
        assert "EvaluateService.evaluate" in output
        assert "fixed_point  (iterations=2)" in output


# ---------------------------------------------------------------------------
# check / list_options
# ---------------------------------------------------------------------------


class TestRenderCheck:
    def test_summary(self) -> None:
        output = render_result(_ok("check", options=3, modules=["a", "b"], iterations=2))
        assert output == "OK  3 options from 2 modules, fixed point after 2 passes"


class TestRenderOptions:
    def test_table(self) -> None:
        options = [
            {
                "path": "count",
                "type": "signed integer",
                "description": "How many workers",
                "declared_by": "base",
                "default": 0,
            },
            {
                "path": "web.legacy",
                "type": "boolean",
                "description": "Old switch",
                "declared_by": "base",
                "deprecated": "gone",
            },
        ]
        output = render_result(_ok("list_options", options=options, count=2))
        assert "count" in output
        assert "signed integer" in output
        assert "How many workers" in output
        assert "(deprecated) Old switch" in output
        assert "Declared by" not in output
        assert output.endswith("2 options")

    def test_verbose_adds_origin_column(self) -> None:
        options = [{"path": "x", "type": "string", "description": "", "declared_by": "web"}]
        output = render_result(_ok("list_options", options=options, count=1), verbose=True)
        assert "Declared by" in output

    def test_empty(self) -> None:
        assert render_result(_ok("list_options", options=[], count=0)) == "No options declared."


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestRenderError:
    def test_nested_errors(self) -> None:
        detail = {
            "errors": [
                {
                    "code": "CONFLICT",
                    "message": "The option `x' has conflicting definition values",
                    "origins": ["m1", "m2"],
                    "priorities": [100, 100],
                }
            ]
        }
        output = render_result(_fail("EVALUATION_ERROR", detail))
        assert output.startswith("ERROR")
        assert "EVALUATION_ERROR" in output
        assert "- The option `x' has conflicting definition values" in output
        assert "values [CONFLICT]" in output
        assert "origins" not in output

    def test_each_nested_error_names_its_code(self) -> None:
        detail = {
            "errors": [
                {"code": "TYPE_MISMATCH", "message": "bad port"},
                {"code": "UNDECLARED_OPTION", "message": "no such option"},
            ]
        }
        output = render_result(_fail("EVALUATION_ERROR", detail))
        assert "- bad port [TYPE_MISMATCH]" in output
        assert "- no such option [UNDECLARED_OPTION]" in output

    def test_single_error_code_only_in_header(self) -> None:
        detail = {"code": "DIVERGENCE", "message": "did not converge"}
        output = render_result(_fail("DIVERGENCE", detail))
        assert output.count("DIVERGENCE") == 1

    def test_verbose_origins_and_cycle(self) -> None:
        detail = {
            "code": "DIVERGENCE",
            "message": "did not converge",
            "origins": ["m1"],
            "priorities": [100],
            "cycle": ["x", "y", "x"],
        }
        output = render_result(_fail("DIVERGENCE", detail), verbose=True)
        assert "origins: m1" in output
        assert "priorities: 100" in output
        assert "cycle: x -> y -> x" in output

    def test_assertion_failures(self) -> None:
        detail = {"failures": [{"message": "too small", "origin": "limits", "paths": ["count"]}]}
        output = render_result(_fail("ASSERTION_FAILURE", detail), verbose=True)
        assert "failed [count]: too small" in output
        assert "from limits" in output

    def test_message_without_detail(self) -> None:
        output = render_result(_fail("NOT_DEFINED", {}, message="The option `x' has no value"))
        assert "The option `x' has no value" in output


class TestRenderQuiet:
    def test_value(self) -> None:
        assert render_quiet(_ok("evaluate", option="x", value={"a": 1})) == '{"a":1}'

    def test_string_value_unquoted(self) -> None:
        assert render_quiet(_ok("evaluate", option="x", value="info")) == "info"

    def test_option_paths(self) -> None:
        options = [{"path": "a"}, {"path": "b.c"}]
        assert render_quiet(_ok("list_options", options=options)) == "a\nb.c"

    def test_ok(self) -> None:
        assert render_quiet(_ok("check")) == "OK: check"

    def test_error(self) -> None:
        result = _fail("NOT_DEFINED", {}, message="nope")
        assert render_quiet(result) == "ERROR: evaluate — nope"
