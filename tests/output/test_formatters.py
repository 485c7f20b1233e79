"""Tests for the format_result dispatcher and OutputSettings."""

import json

from confix.output.formatters import OutputSettings, format_result
from confix.services.result import ServiceError, ServiceResult


def _ok(op: str = "test", **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


def _err(op: str = "test", msg: str = "fail") -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code="ERR", message=msg),
    )


class TestOutputSettings:
    def test_defaults(self) -> None:
        s = OutputSettings()
        assert s.json_output is False
        assert s.quiet is False
        assert s.verbose is False


class TestFormatResultJSON:
    def test_json_mode_returns_valid_json(self) -> None:
        result = _ok("evaluate", option="count", value=7)
        output = format_result(result, settings=OutputSettings(json_output=True))
        data = json.loads(output)
        assert data["ok"] is True
        assert data["op"] == "evaluate"
        assert data["data"]["value"] == 7

    def test_json_mode_error(self) -> None:
        output = format_result(_err("evaluate", "Bad"), settings=OutputSettings(json_output=True))
        data = json.loads(output)
        assert data["ok"] is False
        assert data["error"]["message"] == "Bad"

    def test_json_wins_over_quiet(self) -> None:
        settings = OutputSettings(json_output=True, quiet=True)
        assert json.loads(format_result(_ok(), settings=settings))["ok"] is True


class TestFormatResultQuiet:
    def test_quiet_ok(self) -> None:
        assert format_result(_ok("check"), settings=OutputSettings(quiet=True)) == "OK: check"

    def test_quiet_error(self) -> None:
        output = format_result(_err("check", "boom"), settings=OutputSettings(quiet=True))
        assert output == "ERROR: check — boom"


class TestFormatResultRich:
    def test_default_is_rich(self) -> None:
        output = format_result(_ok("test", key="val"))
        assert output.startswith("OK")
        assert "key: val" in output

    def test_error(self) -> None:
        output = format_result(_err("test", "went wrong"))
        assert output.startswith("ERROR")
        assert "ERR" in output
        assert "went wrong" in output
