"""Read access to configuration: provisional (during evaluation) and final.

:class:`ConfigView` is what deferred computations receive.  It serves values
from the *previous* evaluation pass; reading a path that has no usable
value yet raises :class:`Suspended`, which the merge engine catches to
defer that computation to a later pass.

:class:`ResolvedConfig` is the immutable result of a converged run: a
read-only mapping of leaf option paths to values, with subtree access for
namespace and submodule paths.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from confix.domain.errors import ConfixError, UndeclaredOptionError
from confix.domain.options import OptionDeclaration, OptionSet
from confix.domain.paths import ROOT, OptionPath
from confix.domain.pending import Pending, Suspended
from confix.domain.types import AttrsOfType, ListOfType, NullOrType, OptionType, SubmoduleType

class _Undefined:
    def __repr__(self) -> str:
        return "<undefined>"


UNDEFINED: Any = _Undefined()


@dataclass(frozen=True)
class LeafState:
    """Outcome of merging one leaf option in one pass."""

    type: OptionType
    value: Any = UNDEFINED
    error: ConfixError | None = None

    @property
    def has_value(self) -> bool:
        return self.error is None and self.value is not UNDEFINED

    def same_as(self, other: LeafState) -> bool:
        if self.error is not None or other.error is not None:
            if self.error is None or other.error is None:
                return False
            return self.error.key() == other.error.key()
        if self.value is UNDEFINED or other.value is UNDEFINED:
            return self.value is other.value
        return self.type.equals(self.value, other.value)


@dataclass
class Snapshot:
    """Everything one pass produced."""

    schema: OptionSet
    leaves: dict[OptionPath, LeafState] = field(default_factory=dict)
    tree: dict[str, Any] = field(default_factory=dict)

    def error_under(self, path: OptionPath) -> bool:
        return any(
            state.error is not None and (p.startswith(path) or path.startswith(p))
            for p, state in self.leaves.items()
        )


# ---------------------------------------------------------------------------
# Path classification
# ---------------------------------------------------------------------------


def is_declared(schema: OptionSet, path: OptionPath) -> bool:
    """Whether *path* addresses a namespace, an option, or a place inside one."""
    node: OptionSet | OptionDeclaration | OptionType = schema
    for segment in path.parts:
        if isinstance(node, OptionSet):
            found = node.get(segment)
            if found is None:
                return False
            node = found
            continue
        option_type = node.type if isinstance(node, OptionDeclaration) else node
        while isinstance(option_type, NullOrType):
            option_type = option_type.inner
        if isinstance(option_type, SubmoduleType):
            found = option_type.options.get(segment)
            if found is None:
                return False
            node = found
        elif isinstance(option_type, AttrsOfType):
            node = option_type.elem
        elif isinstance(option_type, ListOfType) and segment.isdigit():
            node = option_type.elem
        else:
            return False
    return True


def lookup_tree(tree: Any, path: OptionPath) -> Any:
    """Walk a resolved tree; lists are indexed by digit segments."""
    node = tree
    for segment in path.parts:
        if isinstance(node, Mapping):
            if segment not in node:
                return UNDEFINED
            node = node[segment]
        elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
            node = node[int(segment)]
        else:
            return UNDEFINED
    return node


# ---------------------------------------------------------------------------
# Provisional view
# ---------------------------------------------------------------------------


class ConfigView:
    """Read-only view of the configuration handed to deferred computations.

    Paths are dotted strings or :class:`OptionPath`.  ``view["a.b"]``
    suspends the reading computation when ``a.b`` has no value yet;
    ``view.get("a.b", default)`` returns *default* for options that are
    simply not defined.

    With ``defer=True`` an unanswerable read returns a
    :class:`~confix.domain.pending.Pending` placeholder instead of raising,
    so the computation can finish and keep the parts that do not need it.
    """

    def __init__(
        self,
        schema: OptionSet,
        snapshot: Snapshot | None,
        *,
        reader: str,
        on_read: Callable[[OptionPath], None] | None = None,
        defer: bool = False,
    ) -> None:
        self._schema = schema
        self._defer = defer
        self._snapshot = snapshot
        self._reader = reader
        self._on_read = on_read

    def __getitem__(self, path: str | OptionPath) -> Any:
        return self._answer(OptionPath.parse(path), default=UNDEFINED)

    def get(self, path: str | OptionPath, default: Any = None) -> Any:
        return self._answer(OptionPath.parse(path), default=default, lenient=True)

    def _answer(self, path: OptionPath, *, default: Any, lenient: bool = False) -> Any:
        try:
            return self._read(path, default=default, lenient=lenient)
        except Suspended as exc:
            if not self._defer:
                raise
            return Pending(exc.path, exc.reason)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, OptionPath)):
            return False
        try:
            self._read(OptionPath.parse(path), default=UNDEFINED)
        except Suspended:
            return False
        return True

    def _read(self, path: OptionPath, *, default: Any, lenient: bool = False) -> Any:
        if not is_declared(self._schema, path):
            raise UndeclaredOptionError(path, f"{self._reader} (read)")
        if self._on_read is not None:
            self._on_read(path)
        snapshot = self._snapshot
        if snapshot is None:
            raise Suspended(path, "unknown")

        leaf = snapshot.leaves.get(path)
        if leaf is not None:
            if leaf.error is not None:
                raise Suspended(path, "error")
            if leaf.value is UNDEFINED:
                if lenient:
                    return default
                raise Suspended(path, "undefined")
            return copy.deepcopy(leaf.value)

        if snapshot.error_under(path):
            raise Suspended(path, "error")
        found = lookup_tree(snapshot.tree, path) if path != ROOT else snapshot.tree
        if found is UNDEFINED:
            if lenient:
                return default
            raise Suspended(path, "undefined")
        return copy.deepcopy(found)

    def __repr__(self) -> str:
        return f"<ConfigView reader={self._reader!r}>"


# ---------------------------------------------------------------------------
# Final result
# ---------------------------------------------------------------------------


class ResolvedConfig(Mapping[OptionPath, Any]):
    """Immutable, converged configuration.

    Iterates over leaf option paths in path order.  Indexing accepts dotted
    strings and also returns subtrees for namespace / submodule paths.
    Values are returned as copies, so callers cannot mutate the result.
    """

    def __init__(self, leaves: Mapping[OptionPath, Any], tree: Mapping[str, Any]) -> None:
        self._leaves = dict(sorted(leaves.items()))
        self._tree = copy.deepcopy(dict(tree))

    def __getitem__(self, key: str | OptionPath) -> Any:
        path = OptionPath.parse(key)
        if path in self._leaves:
            return copy.deepcopy(self._leaves[path])
        found = lookup_tree(self._tree, path) if path != ROOT else self._tree
        if found is UNDEFINED:
            raise KeyError(str(path))
        return copy.deepcopy(found)

    def __iter__(self) -> Iterator[OptionPath]:
        return iter(self._leaves)

    def __len__(self) -> int:
        return len(self._leaves)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (str, OptionPath)):
            return False
        try:
            self[key]
        except KeyError:
            return False
        return True

    def tree(self) -> dict[str, Any]:
        """Nested-dict form of the whole configuration."""
        return copy.deepcopy(self._tree)

    def flat(self) -> dict[str, Any]:
        """``{"dotted.path": value}`` for every leaf option."""
        return {str(p): copy.deepcopy(v) for p, v in self._leaves.items()}

    def __repr__(self) -> str:
        return f"ResolvedConfig({len(self._leaves)} options)"
