"""Tests for definition wrappers."""

from __future__ import annotations

import pytest

from confix.domain.definitions import (
    Computed,
    Conditional,
    Merge,
    Ordered,
    Override,
    computed,
    is_wrapper,
    mk_after,
    mk_before,
    mk_default,
    mk_force,
    mk_if,
    mk_merge,
    mk_order,
    mk_override,
)
from confix.domain.priority import DEFAULT, FORCE, ORDER_AFTER, ORDER_BEFORE


class TestPriorityWrappers:
    def test_force_and_default(self) -> None:
        assert mk_force(1) == Override(FORCE, 1)
        assert mk_default(1) == Override(DEFAULT, 1)

    def test_override_validates(self) -> None:
        assert mk_override(75, "x") == Override(75, "x")
        with pytest.raises(ValueError):
            mk_override(49, "x")


class TestConditional:
    def test_bool_condition(self) -> None:
        assert mk_if(True, 1) == Conditional(True, 1)

    def test_computed_condition(self) -> None:
        cond = computed(lambda c: True)
        assert mk_if(cond, 1).condition is cond

    def test_rejects_other_conditions(self) -> None:
        with pytest.raises(TypeError, match="bool or computed"):
            mk_if(1, "x")


class TestOrderAndMerge:
    def test_order_helpers(self) -> None:
        assert mk_before([1]) == Ordered(ORDER_BEFORE, [1])
        assert mk_after([1]) == Ordered(ORDER_AFTER, [1])
        assert mk_order(10, [1]) == Ordered(10, [1])

    def test_merge(self) -> None:
        assert mk_merge(1, mk_force(2)) == Merge((1, Override(FORCE, 2)))


class TestComputed:
    def test_identity_equality(self) -> None:
        def fn(c: object) -> int:
            return 1

        assert computed(fn) != computed(fn)

    def test_repr_uses_label(self) -> None:
        assert repr(computed(lambda c: 1, label="web")) == "computed(web)"
        assert isinstance(computed(len), Computed)

    def test_is_wrapper(self) -> None:
        assert is_wrapper(computed(len))
        assert is_wrapper(mk_force(1))
        assert not is_wrapper({"a": 1})
