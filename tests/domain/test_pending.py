"""Tests for placeholders returned by deferred reads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest

from confix.domain.paths import OptionPath
from confix.domain.pending import Pending, Suspended, find_pending

P = OptionPath.parse


def _pending() -> Pending:
    return Pending(P("a"), "unknown")


class TestPending:
    @pytest.mark.parametrize(
        "derive",
        [
            lambda v: v + 1,
            lambda v: 1 + v,
            lambda v: -v,
            lambda v: v["key"],
            lambda v: v.upper(),
            lambda v: v < 3,
        ],
    )
    def test_derived_values_stay_pending(self, derive: Any) -> None:
        value = _pending()
        assert derive(value) is value

    @pytest.mark.parametrize(
        "use",
        [bool, len, list, str, int, float, hash, lambda v: f"{v}", lambda v: 1 in v],
    )
    def test_using_the_value_suspends(self, use: Any) -> None:
        with pytest.raises(Suspended) as exc_info:
            use(_pending())
        assert exc_info.value.path == P("a")
        assert exc_info.value.reason == "unknown"

    def test_dunder_lookups_are_not_absorbed(self) -> None:
        with pytest.raises(AttributeError):
            _pending().__wrapped__

    def test_repr(self) -> None:
        assert repr(_pending()) == "<pending a (unknown)>"


@dataclass(frozen=True)
class _Box:
    content: Any


class TestFindPending:
    def test_plain_values(self) -> None:
        assert find_pending({"a": [1, (2, {3})], "b": "x"}) is None

    def test_nested(self) -> None:
        value = _pending()
        assert find_pending({"a": [1, {"b": value}]}) is value
        assert find_pending(_Box([value])) is value

    def test_dataclass_type_is_not_searched(self) -> None:
        assert find_pending(_Box) is None
