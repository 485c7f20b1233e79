"""Option declarations and the option-set tree.

Modules declare options as a nested mapping whose leaves are
:func:`mk_option` results (dotted keys are accepted as a shorthand)::

    options = {
        "services": {
            "web": {
                "enable": mk_option(types.bool_, default=False),
                "port": mk_option(types.port, default=8080),
            },
        },
        "networking.hostname": mk_option(types.str_),
    }

An :class:`OptionSet` is the merged tree of every module's declarations.
Intermediate nodes are namespaces; leaves are declarations.  At most one
declaration may exist per path, and a path cannot be both an option and a
namespace.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from confix.domain.errors import DuplicateDeclarationError
from confix.domain.paths import ROOT, OptionPath

if TYPE_CHECKING:
    from confix.domain.types import OptionType


class _NoDefault:
    """Sentinel for options without a default."""

    _instance: _NoDefault | None = None

    def __new__(cls) -> _NoDefault:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<no default>"

    def __bool__(self) -> bool:
        return False


NO_DEFAULT: Any = _NoDefault()


@dataclass(frozen=True)
class OptionDeclaration:
    """A typed option.  ``path`` is relative to the enclosing option set."""

    type: OptionType
    default: Any = NO_DEFAULT
    description: str = ""
    example: Any = NO_DEFAULT
    read_only: bool = False
    deprecated: str | None = None
    internal: bool = False
    path: OptionPath = ROOT
    declared_by: str = "<unknown>"

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    def describe(self) -> dict[str, Any]:
        """Documentation record (used by the options listing)."""
        record: dict[str, Any] = {
            "path": str(self.path),
            "type": self.type.description,
            "description": self.description,
            "declared_by": self.declared_by,
        }
        if self.has_default:
            record["default"] = self.default
        if self.example is not NO_DEFAULT:
            record["example"] = self.example
        if self.read_only:
            record["read_only"] = True
        if self.deprecated:
            record["deprecated"] = self.deprecated
        return record


def mk_option(
    type: OptionType,  # noqa: A002
    *,
    default: Any = NO_DEFAULT,
    description: str = "",
    example: Any = NO_DEFAULT,
    read_only: bool = False,
    deprecated: str | None = None,
    internal: bool = False,
) -> OptionDeclaration:
    """Declare an option; its path comes from its position in the tree."""
    return OptionDeclaration(
        type=type,
        default=default,
        description=description,
        example=example,
        read_only=read_only,
        deprecated=deprecated,
        internal=internal,
    )


def flatten_declarations(
    tree: Mapping[str, Any] | Iterable[OptionDeclaration],
    *,
    declared_by: str,
    prefix: OptionPath = ROOT,
) -> list[OptionDeclaration]:
    """Turn a nested ``options`` mapping into path-carrying declarations."""
    if not isinstance(tree, Mapping):
        return [replace(d, declared_by=declared_by) for d in tree]

    result: list[OptionDeclaration] = []
    for key, value in tree.items():
        path = OptionPath((*prefix.parts, *OptionPath.parse(key).parts))
        if isinstance(value, OptionDeclaration):
            result.append(replace(value, path=path, declared_by=declared_by))
        elif isinstance(value, Mapping):
            result.extend(flatten_declarations(value, declared_by=declared_by, prefix=path))
        else:
            msg = (
                f"Option tree entry `{path}' in {declared_by} must be mk_option() "
                f"or a mapping, got {type(value).__name__}"
            )
            raise TypeError(msg)
    return result


class OptionSet:
    """Tree of option declarations keyed by path segment."""

    def __init__(self) -> None:
        self._children: dict[str, OptionSet | OptionDeclaration] = {}

    @classmethod
    def from_tree(cls, tree: Mapping[str, Any], *, declared_by: str) -> OptionSet:
        """Build from one nested mapping; duplicates raise immediately."""
        option_set = cls()
        for declaration in flatten_declarations(tree, declared_by=declared_by):
            option_set.add(declaration)
        return option_set

    @classmethod
    def build(
        cls, declarations: Iterable[OptionDeclaration]
    ) -> tuple[OptionSet, list[DuplicateDeclarationError]]:
        """Build from many modules' declarations, keeping the first of duplicates.

        Returns the tree plus every duplicate found, so the caller can keep
        evaluating and report them with other errors.
        """
        option_set = cls()
        errors: list[DuplicateDeclarationError] = []
        for declaration in declarations:
            try:
                option_set.add(declaration)
            except DuplicateDeclarationError as exc:
                errors.append(exc)
        return option_set, errors

    def add(self, declaration: OptionDeclaration) -> None:
        parts = declaration.path.parts
        if not parts:
            msg = f"Cannot declare an option at the root ({declaration.declared_by})"
            raise ValueError(msg)
        node = self
        for depth, segment in enumerate(parts[:-1]):
            child = node._children.get(segment)
            if isinstance(child, OptionDeclaration):
                raise DuplicateDeclarationError(
                    OptionPath(parts[: depth + 1]),
                    [child.declared_by, declaration.declared_by],
                )
            if child is None:
                child = OptionSet()
                node._children[segment] = child
            node = child
        existing = node._children.get(parts[-1])
        if isinstance(existing, OptionDeclaration):
            raise DuplicateDeclarationError(
                declaration.path, [existing.declared_by, declaration.declared_by]
            )
        if isinstance(existing, OptionSet):
            inner = next(existing.iter_declarations(), None)
            first = inner.declared_by if inner else "<namespace>"
            raise DuplicateDeclarationError(declaration.path, [first, declaration.declared_by])
        node._children[parts[-1]] = declaration

    def get(self, name: str) -> OptionSet | OptionDeclaration | None:
        return self._children.get(name)

    def lookup(self, path: OptionPath) -> OptionSet | OptionDeclaration | None:
        """Find the node at *path* (relative); stops at declarations."""
        node: OptionSet | OptionDeclaration = self
        for segment in path.parts:
            if isinstance(node, OptionDeclaration):
                return None
            found = node._children.get(segment)
            if found is None:
                return None
            node = found
        return node

    def names(self) -> list[str]:
        return sorted(self._children)

    def items(self) -> Iterator[tuple[str, OptionSet | OptionDeclaration]]:
        for name in self.names():
            yield name, self._children[name]

    def iter_declarations(self) -> Iterator[OptionDeclaration]:
        """All declarations in path order (not descending into submodules)."""
        for _name, child in self.items():
            if isinstance(child, OptionSet):
                yield from child.iter_declarations()
            else:
                yield child

    def __len__(self) -> int:
        return len(self._children)

    def __contains__(self, name: object) -> bool:
        return name in self._children
