"""Tests for OptionPath parsing, ordering and rendering."""

from __future__ import annotations

import pytest

from confix.domain.paths import ROOT, OptionPath


class TestParse:
    def test_dotted(self) -> None:
        assert OptionPath.parse("services.web.port").parts == ("services", "web", "port")

    def test_quoted_segment(self) -> None:
        path = OptionPath.parse('hosts."example.com".port')
        assert path.parts == ("hosts", "example.com", "port")
        assert str(path) == 'hosts."example.com".port'

    def test_empty_is_root(self) -> None:
        assert OptionPath.parse("") == ROOT
        assert ROOT.is_root

    def test_passthrough_and_sequences(self) -> None:
        path = OptionPath.parse("a.b")
        assert OptionPath.parse(path) is path
        assert OptionPath.parse(["a", "b"]) == path
        assert OptionPath.parse(("a", "b")) == path

    @pytest.mark.parametrize("bad", ["a..b", ".a", "a.", 'a."b'])
    def test_invalid(self, bad: str) -> None:
        with pytest.raises(ValueError):
            OptionPath.parse(bad)


class TestNavigation:
    def test_child_and_parent(self) -> None:
        path = OptionPath.parse("a").child("b").child(0)
        assert path.parts == ("a", "b", "0")
        assert path.parent == OptionPath.parse("a.b")
        assert path.name == "0"
        assert path.depth == 3
        assert ROOT.name == ""

    def test_startswith(self) -> None:
        path = OptionPath.parse("a.b.c")
        assert path.startswith(OptionPath.parse("a.b"))
        assert path.startswith(ROOT)
        assert not path.startswith(OptionPath.parse("a.c"))

    def test_relative_to(self) -> None:
        path = OptionPath.parse("a.b.c")
        assert path.relative_to(OptionPath.parse("a")) == OptionPath.parse("b.c")
        with pytest.raises(ValueError, match="not below"):
            path.relative_to(OptionPath.parse("x"))


class TestOrdering:
    def test_total_order(self) -> None:
        paths = [OptionPath.parse(p) for p in ["b", "a.z", "a", "a.b"]]
        assert [str(p) for p in sorted(paths)] == ["a", "a.b", "a.z", "b"]

    def test_hashable(self) -> None:
        assert len({OptionPath.parse("a.b"), OptionPath.parse("a.b")}) == 1

    def test_repr(self) -> None:
        assert repr(OptionPath.parse("a.b")) == "OptionPath('a.b')"
