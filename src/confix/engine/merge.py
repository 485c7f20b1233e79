"""Merge engine — turns every definition of an option into one value.

Resolution is top-down over the option schema:

- Namespaces and submodules split each definition's mapping per key
  (pushing the definition's priority and order down to every child) and
  resolve each child on its own; undeclared keys are reported.
- ``attrs_of`` options do the same with arbitrary keys.
- Leaf options partition their definitions into priority tiers:

  * a ``FORCE`` definition always wins; the first one in load order is
    kept and other forced values are ignored without a conflict;
  * additive types fold every tier, strongest tier first;
  * otherwise the strongest non-empty tier wins and is merged with the
    type's own merge (which raises ``ConflictError`` on disagreement).

Errors abort only the option they concern.  The engine records them and
keeps going so one pass reports as many problems as possible.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from confix.domain.definitions import (
    Computed,
    Conditional,
    Definition,
    Merge,
    Ordered,
    Override,
)
from confix.domain.errors import (
    ConfixError,
    ConflictError,
    DefinitionError,
    TypeMismatchError,
    UndeclaredOptionError,
)
from confix.domain.options import OptionDeclaration, OptionSet
from confix.domain.paths import OptionPath
from confix.domain.pending import Pending, Suspended, find_pending
from confix.domain.priority import FORCE, OPTION_DEFAULT
from confix.domain.types import AttrsOfType, ListOfType, NullOrType, OptionType, SubmoduleType
from confix.engine.view import UNDEFINED, ConfigView, LeafState

logger = logging.getLogger(__name__)

_SKIP = object()


@dataclass(frozen=True)
class Suspension:
    """A deferred computation that could not run in this pass."""

    target: OptionPath
    read: OptionPath
    reason: str
    origin: str


@dataclass
class PassState:
    """Mutable bookkeeping for one merge pass."""

    leaves: dict[OptionPath, LeafState] = field(default_factory=dict)
    errors: list[ConfixError] = field(default_factory=list)
    suspensions: list[Suspension] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    reads: list[tuple[OptionPath, OptionPath]] = field(default_factory=list)

    def add_error(self, error: ConfixError) -> None:
        if all(e.key() != error.key() for e in self.errors):
            self.errors.append(error)


ViewFactory = Callable[[OptionPath, str, PassState], ConfigView]


class MergeEngine:
    """Resolve definitions against an option schema for one pass."""

    def __init__(self, schema: OptionSet, view_factory: ViewFactory) -> None:
        self.schema = schema
        self._view_factory = view_factory
        self.state = PassState()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve_root(self, definitions: Sequence[Definition]) -> dict[str, Any]:
        """Resolve the whole schema from root-level definitions."""
        return self.resolve_set(OptionPath(), self.schema, definitions)

    def resolve(
        self, path: OptionPath, option_type: OptionType, definitions: Sequence[Definition]
    ) -> Any:
        """``resolve(path, definitions) -> value`` for one option.

        Returns ``UNDEFINED`` when nothing defines the option (or its merge
        failed, in which case the error is recorded on the pass).  A
        nullable composite is a single ``None`` leaf when a null definition
        decides it, and is resolved like its inner type otherwise.
        """
        inner = option_type
        while isinstance(inner, NullOrType):
            inner = inner.inner
        if inner is not option_type and isinstance(inner, (SubmoduleType, AttrsOfType)):
            pieces = self.expand_all(definitions)
            if not pieces or _null_decides(pieces):
                return self._resolve_leaf(path, option_type, pieces)
            definitions = [p for p in pieces if p.value is not None]
        if isinstance(inner, SubmoduleType):
            return self.resolve_set(path, inner.options, definitions)
        if isinstance(inner, AttrsOfType):
            return self._resolve_attrs(path, inner, definitions)
        return self._resolve_leaf(path, option_type, definitions)

    # ------------------------------------------------------------------
    # Composite resolution
    # ------------------------------------------------------------------

    def resolve_set(
        self, path: OptionPath, option_set: OptionSet, definitions: Sequence[Definition]
    ) -> dict[str, Any]:
        buckets: dict[str, list[Definition]] = {}
        for piece in self.expand_all(definitions):
            if not isinstance(piece.value, Mapping):
                self.state.add_error(
                    TypeMismatchError(
                        path,
                        expected="an attribute set of options",
                        value=piece.value,
                        origin=piece.origin,
                        priority=piece.priority,
                    )
                )
                continue
            for key, value in piece.value.items():
                head, value = _split_key(str(key), value, option_set)
                if head not in option_set:
                    self.state.add_error(UndeclaredOptionError(path.child(head), piece.origin))
                    continue
                buckets.setdefault(head, []).append(
                    replace(piece, path=path.child(head), value=value)
                )

        result: dict[str, Any] = {}
        for name, node in option_set.items():
            child_path = path.child(name)
            child_defs = buckets.get(name, [])
            if isinstance(node, OptionSet):
                result[name] = self.resolve_set(child_path, node, child_defs)
                continue
            value = self._resolve_declared(child_path, node, child_defs)
            if value is not UNDEFINED:
                result[name] = value
        return result

    def _resolve_declared(
        self, path: OptionPath, declaration: OptionDeclaration, definitions: list[Definition]
    ) -> Any:
        if declaration.deprecated:
            for definition in definitions:
                self.state.warnings.append(
                    f"The option `{path}' defined in {definition.origin} is deprecated: "
                    f"{declaration.deprecated}"
                )
        if declaration.read_only:
            pieces = self.expand_all(definitions)
            if len(pieces) > 1:
                self._fail_leaf(
                    path,
                    declaration.type,
                    ConflictError(
                        path,
                        origins=[p.origin for p in pieces],
                        values=[p.value for p in pieces],
                        priority=min(p.priority for p in pieces),
                        reason="a read-only value defined more than once",
                    ),
                )
                return UNDEFINED
            definitions = pieces
        if declaration.has_default:
            definitions = [
                *definitions,
                Definition(
                    path=path,
                    value=declaration.default,
                    priority=OPTION_DEFAULT,
                    origin=f"{declaration.declared_by} (default)",
                ),
            ]
        return self.resolve(path, declaration.type, definitions)

    def _resolve_attrs(
        self, path: OptionPath, option_type: AttrsOfType, definitions: Sequence[Definition]
    ) -> Any:
        buckets: dict[str, list[Definition]] = {}
        for piece in self.expand_all(definitions):
            if not isinstance(piece.value, Mapping):
                self._fail_leaf(
                    path,
                    option_type,
                    TypeMismatchError(
                        path,
                        expected=option_type.description,
                        value=piece.value,
                        origin=piece.origin,
                        priority=piece.priority,
                    ),
                )
                continue
            for key, value in piece.value.items():
                buckets.setdefault(str(key), []).append(
                    replace(piece, path=path.child(str(key)), value=value)
                )

        result: dict[str, Any] = {}
        for key in sorted(buckets):
            value = self.resolve(path.child(key), option_type.elem, buckets[key])
            if value is not UNDEFINED:
                result[key] = value
        return result

    # ------------------------------------------------------------------
    # Leaf resolution
    # ------------------------------------------------------------------

    def _resolve_leaf(
        self, path: OptionPath, option_type: OptionType, definitions: Sequence[Definition]
    ) -> Any:
        try:
            value = self.merge_leaf(path, option_type, self.expand_all(definitions))
        except ConfixError as exc:
            self._fail_leaf(path, option_type, exc)
            return UNDEFINED
        self.state.leaves[path] = LeafState(option_type, value)
        return value

    def merge_leaf(
        self, path: OptionPath, option_type: OptionType, pieces: Sequence[Definition]
    ) -> Any:
        """Tiered merge of already-expanded definitions."""
        if not pieces:
            return UNDEFINED
        validated = [
            replace(
                p,
                value=option_type.validate(path, p.value, origin=p.origin, priority=p.priority),
            )
            for p in pieces
        ]

        forced = [p for p in validated if p.priority == FORCE]
        if forced:
            if len(forced) > 1:
                logger.debug(
                    "Option %s forced by %d definitions; keeping %s",
                    path,
                    len(forced),
                    forced[0].origin,
                )
            value = forced[0].value
        elif option_type.additive:
            tiers = sorted({p.priority for p in validated})
            merged = [
                option_type.merge(path, [p for p in validated if p.priority == tier])
                for tier in tiers
            ]
            value = option_type.merge(
                path,
                [Definition(path, m, priority=tier) for m, tier in zip(merged, tiers, strict=True)],
            )
        else:
            strongest = min(p.priority for p in validated)
            value = option_type.merge(path, [p for p in validated if p.priority == strongest])

        return self._resolve_elements(path, option_type, value)

    def _resolve_elements(self, path: OptionPath, option_type: OptionType, value: Any) -> Any:
        """Fill defaults and validate each submodule element of a list."""
        inner = option_type
        while isinstance(inner, NullOrType):
            inner = inner.inner
        if value is None or not isinstance(inner, ListOfType) or not inner.elem.composite:
            return value

        elements: list[Any] = []
        for index, item in enumerate(value):
            errors: list[ConfixError] = []
            sub = MergeEngine(self.schema, self._view_factory)
            sub.state = PassState(
                errors=errors,
                suspensions=self.state.suspensions,
                warnings=self.state.warnings,
                reads=self.state.reads,
            )
            element_path = path.child(index)
            origin = f"element {index} of {path}"
            resolved = sub.resolve(
                element_path, inner.elem, [Definition(element_path, item, origin=origin)]
            )
            if errors:
                for extra in errors[1:]:
                    self.state.add_error(extra)
                raise errors[0]
            elements.append(resolved)
        return elements

    def _fail_leaf(self, path: OptionPath, option_type: OptionType, error: ConfixError) -> None:
        self.state.add_error(error)
        self.state.leaves[path] = LeafState(option_type, error=error)

    # ------------------------------------------------------------------
    # Wrapper expansion
    # ------------------------------------------------------------------

    def expand_all(self, definitions: Sequence[Definition]) -> list[Definition]:
        pieces: list[Definition] = []
        for definition in definitions:
            pieces.extend(self.expand(definition))
        return pieces

    def expand(self, definition: Definition) -> list[Definition]:
        """Normalize wrappers into plain definitions (load order kept)."""
        value = definition.value
        if isinstance(value, Override):
            return self.expand(replace(definition, value=value.content, priority=value.priority))
        if isinstance(value, Ordered):
            return self.expand(replace(definition, value=value.content, order=value.order))
        if isinstance(value, Merge):
            return self.expand_all([replace(definition, value=v) for v in value.contents])
        if isinstance(value, Conditional):
            condition = value.condition
            if isinstance(condition, Computed):
                condition = self._compute(condition, definition)
                if condition is _SKIP:
                    return []
            if not isinstance(condition, bool):
                self.state.add_error(
                    TypeMismatchError(
                        definition.path,
                        expected="a boolean mk_if condition",
                        value=condition,
                        origin=definition.origin,
                    )
                )
                return []
            return self.expand(replace(definition, value=value.content)) if condition else []
        if isinstance(value, Computed):
            result = self._compute(value, definition)
            if result is _SKIP:
                return []
            return self.expand(replace(definition, value=result))
        return [definition]

    def _compute(self, cell: Computed, definition: Definition) -> Any:
        view = self._view_factory(definition.path, definition.origin, self.state)
        try:
            return self._settle(cell.fn(view), definition)
        except Suspended as exc:
            self._suspend(definition, exc.path, exc.reason)
        except ConfixError as exc:
            self.state.add_error(exc)
        except Exception as exc:
            logger.debug("Deferred definition failed in %s", definition.origin, exc_info=True)
            self.state.add_error(DefinitionError(definition.path, definition.origin, exc))
        return _SKIP

    def _settle(self, value: Any, definition: Definition) -> Any:
        """Drop the parts of a computed value that still wait on a read.

        Each dropped part is suspended under its own path, so the other keys
        of a whole-module result are merged in this pass.  Returns ``_SKIP``
        when nothing is left.
        """
        if isinstance(value, Pending):
            self._suspend(definition, value.path, value.reason)
            return _SKIP
        if isinstance(value, Mapping):
            kept: dict[Any, Any] = {}
            for key, item in value.items():
                child = replace(definition, path=_key_path(definition.path, key))
                settled = self._settle(item, child)
                if settled is not _SKIP:
                    kept[key] = settled
            return kept
        if isinstance(value, (Override, Ordered)):
            content = self._settle(value.content, definition)
            return _SKIP if content is _SKIP else replace(value, content=content)
        if isinstance(value, Conditional):
            if isinstance(value.condition, Pending):
                return self._settle(value.condition, definition)
            content = self._settle(value.content, definition)
            return _SKIP if content is _SKIP else replace(value, content=content)
        if isinstance(value, Merge):
            settled_contents = (self._settle(v, definition) for v in value.contents)
            return replace(value, contents=tuple(v for v in settled_contents if v is not _SKIP))
        pending = find_pending(value)
        if pending is not None:
            self._suspend(definition, pending.path, pending.reason)
            return _SKIP
        return value

    def _suspend(self, definition: Definition, read: OptionPath, reason: str) -> None:
        self.state.suspensions.append(
            Suspension(target=definition.path, read=read, reason=reason, origin=definition.origin)
        )


def _split_key(key: str, value: Any, option_set: OptionSet) -> tuple[str, Any]:
    """Expand a dotted shorthand key (``"web.port": 80``) one level."""
    if key in option_set or "." not in key:
        return key, value
    head, *rest = OptionPath.parse(key).parts
    for segment in reversed(rest):
        value = {segment: value}
    return head, value


def _key_path(path: OptionPath, key: Any) -> OptionPath:
    return OptionPath((*path.parts, *OptionPath.parse(str(key)).parts))


def _null_decides(pieces: Sequence[Definition]) -> bool:
    """Whether a ``None`` sits in the tier that would win a leaf merge."""
    forced = [p for p in pieces if p.priority == FORCE]
    if forced:
        return forced[0].value is None
    strongest = min(p.priority for p in pieces)
    return any(p.value is None for p in pieces if p.priority == strongest)
