"""Option value types — validation, same-tier merge and equality.

Each type is a small capability object:

- ``check(value)``: is *value* a well-typed leaf value?
- ``merge(path, definitions)``: combine definitions of one priority tier
  (already in load order), or raise ``ConflictError``.
- ``equals(a, b)``: stabilization test used by the fixed-point evaluator.

Composite types (``attrs_of``, ``submodule``) never merge whole values: the
merge engine splits their definitions per key and resolves every key as its
own option path.  New variants are added by subclassing :class:`OptionType`
(plugins can also register named types via the ``confix_types`` hook).
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from confix.domain.errors import ConflictError, TypeMismatchError

if TYPE_CHECKING:
    from confix.domain.definitions import Definition
    from confix.domain.options import OptionSet
    from confix.domain.paths import OptionPath


class OptionType:
    """Base class for all option types.

    Subclasses override :meth:`check` and, where values combine instead of
    having to agree, :meth:`merge`.
    """

    name = "unspecified"
    additive = False
    composite = False

    @property
    def description(self) -> str:
        return self.name

    def check(self, value: Any) -> bool:
        raise NotImplementedError

    def validate(
        self,
        path: OptionPath,
        value: Any,
        *,
        origin: str | None = None,
        priority: int | None = None,
    ) -> Any:
        if not self.check(value):
            raise TypeMismatchError(
                path, expected=self.description, value=value, origin=origin, priority=priority
            )
        return value

    def merge(self, path: OptionPath, definitions: Sequence[Definition]) -> Any:
        """Default policy: every definition in the tier must be equal."""
        first = definitions[0]
        for other in definitions[1:]:
            if not self.equals(first.value, other.value):
                raise ConflictError(
                    path,
                    origins=[first.origin, other.origin],
                    values=[first.value, other.value],
                    priority=first.priority,
                )
        return first.value

    def equals(self, a: Any, b: Any) -> bool:
        return bool(a == b) and type(a) is type(b)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.description}>"


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


class BoolType(OptionType):
    name = "boolean"

    def check(self, value: Any) -> bool:
        return isinstance(value, bool)


class IntType(OptionType):
    """Integer, optionally bounded (inclusive)."""

    name = "signed integer"

    def __init__(self, minimum: int | None = None, maximum: int | None = None) -> None:
        self.minimum = minimum
        self.maximum = maximum

    @property
    def description(self) -> str:
        if self.minimum is None and self.maximum is None:
            return self.name
        lo = "-inf" if self.minimum is None else self.minimum
        hi = "inf" if self.maximum is None else self.maximum
        return f"integer between {lo} and {hi} (both inclusive)"

    def check(self, value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        if self.minimum is not None and value < self.minimum:
            return False
        return self.maximum is None or value <= self.maximum


class FloatType(OptionType):
    name = "floating point number"

    def check(self, value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    def equals(self, a: Any, b: Any) -> bool:
        return bool(a == b)


class StrType(OptionType):
    name = "string"

    def check(self, value: Any) -> bool:
        return isinstance(value, str)


class SeparatedStrType(StrType):
    """String whose same-tier definitions are joined with a separator."""

    def __init__(self, separator: str) -> None:
        self.separator = separator

    @property
    def description(self) -> str:
        if self.separator == "\n":
            return "strings concatenated with \"\\n\""
        return f"strings concatenated with {self.separator!r}"

    def merge(self, path: OptionPath, definitions: Sequence[Definition]) -> Any:
        return self.separator.join(d.value for d in definitions)


class EnumType(OptionType):
    def __init__(self, *values: Any) -> None:
        if not values:
            msg = "enum requires at least one value"
            raise ValueError(msg)
        self.values = tuple(values)

    @property
    def description(self) -> str:
        return "one of " + ", ".join(repr(v) for v in self.values)

    def check(self, value: Any) -> bool:
        return any(value == v and type(value) is type(v) for v in self.values)


class AnythingType(OptionType):
    """Any value; same-tier definitions must be equal."""

    name = "anything"

    def check(self, value: Any) -> bool:
        return True

    def equals(self, a: Any, b: Any) -> bool:
        return bool(a == b)


# ---------------------------------------------------------------------------
# Wrappers and containers
# ---------------------------------------------------------------------------


class NullOrType(OptionType):
    def __init__(self, inner: OptionType) -> None:
        self.inner = inner

    @property
    def description(self) -> str:
        return f"null or {self.inner.description}"

    def check(self, value: Any) -> bool:
        return value is None or self.inner.check(value)

    def merge(self, path: OptionPath, definitions: Sequence[Definition]) -> Any:
        nulls = [d for d in definitions if d.value is None]
        if len(nulls) == len(definitions):
            return None
        if nulls:
            other = next(d for d in definitions if d.value is not None)
            raise ConflictError(
                path,
                origins=[nulls[0].origin, other.origin],
                values=[None, other.value],
                priority=other.priority,
                reason="conflicting null and non-null definitions",
            )
        return self.inner.merge(path, definitions)

    def equals(self, a: Any, b: Any) -> bool:
        if a is None or b is None:
            return a is b
        return self.inner.equals(a, b)


class ListOfType(OptionType):
    """Order-preserving list concatenation.

    Within a tier, definitions are stably sorted by their ``order`` (see
    ``mk_before`` / ``mk_after``) and concatenated.  ``additive`` lists fold
    every priority tier; ``unique`` lists keep the first occurrence of each
    element.
    """

    def __init__(self, elem: OptionType, *, additive: bool = False, unique: bool = False) -> None:
        self.elem = elem
        self.additive = additive
        self.unique = unique

    @property
    def description(self) -> str:
        desc = f"list of {self.elem.description}"
        if self.unique:
            desc = "unique " + desc
        if self.additive:
            desc = "additive " + desc
        return desc

    def check(self, value: Any) -> bool:
        if not isinstance(value, (list, tuple)):
            return False
        if self.elem.composite:
            return all(isinstance(v, Mapping) for v in value)
        return all(self.elem.check(v) for v in value)

    def validate(
        self,
        path: OptionPath,
        value: Any,
        *,
        origin: str | None = None,
        priority: int | None = None,
    ) -> Any:
        if not isinstance(value, (list, tuple)):
            return super().validate(path, value, origin=origin, priority=priority)
        for index, item in enumerate(value):
            if self.elem.composite:
                if not isinstance(item, Mapping):
                    raise TypeMismatchError(
                        path.child(index),
                        expected=self.elem.description,
                        value=item,
                        origin=origin,
                        priority=priority,
                    )
                continue
            self.elem.validate(path.child(index), item, origin=origin, priority=priority)
        return list(value)

    def merge(self, path: OptionPath, definitions: Sequence[Definition]) -> Any:
        ordered = sorted(definitions, key=lambda d: d.order)
        result: list[Any] = []
        for definition in ordered:
            for item in definition.value:
                if self.unique and any(self.elem.equals(item, seen) for seen in result):
                    continue
                result.append(item)
        return result

    def equals(self, a: Any, b: Any) -> bool:
        if not isinstance(a, list) or not isinstance(b, list) or len(a) != len(b):
            return False
        return all(self.elem.equals(x, y) for x, y in zip(a, b, strict=True))


class AttrsOfType(OptionType):
    """Attribute set with arbitrary keys, every value of type *elem*."""

    composite = True

    def __init__(self, elem: OptionType) -> None:
        self.elem = elem

    @property
    def description(self) -> str:
        return f"attribute set of {self.elem.description}"

    def check(self, value: Any) -> bool:
        return isinstance(value, Mapping)

    def equals(self, a: Any, b: Any) -> bool:
        if not isinstance(a, Mapping) or not isinstance(b, Mapping) or a.keys() != b.keys():
            return False
        return all(self.elem.equals(a[k], b[k]) for k in a)


class SubmoduleType(OptionType):
    """Nested option set; each declared sub-option is merged on its own."""

    name = "submodule"
    composite = True

    def __init__(self, options: OptionSet | Mapping[str, Any]) -> None:
        from confix.domain.options import OptionSet

        if isinstance(options, OptionSet):
            self.options = options
        else:
            self.options = OptionSet.from_tree(options, declared_by="<submodule>")

    def check(self, value: Any) -> bool:
        return isinstance(value, Mapping)

    def equals(self, a: Any, b: Any) -> bool:
        if not isinstance(a, Mapping) or not isinstance(b, Mapping) or a.keys() != b.keys():
            return False
        return all(_equals_any(a[k], b[k]) for k in a)


def _equals_any(a: Any, b: Any) -> bool:
    """Structural equality for resolved subtrees (types already enforced)."""
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(_equals_any(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(_equals_any(x, y) for x, y in zip(a, b, strict=True))
    return bool(a == b) and type(a) is type(b)


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------

bool_ = BoolType()
int_ = IntType()
float_ = FloatType()
str_ = StrType()
lines = SeparatedStrType("\n")
comma_separated = SeparatedStrType(",")
anything = AnythingType()
port = IntType(0, 65535)


def int_between(minimum: int, maximum: int) -> IntType:
    return IntType(minimum, maximum)


def separated_string(separator: str) -> SeparatedStrType:
    return SeparatedStrType(separator)


def enum(*values: Any) -> EnumType:
    return EnumType(*values)


def null_or(inner: OptionType) -> NullOrType:
    return NullOrType(inner)


def list_of(elem: OptionType, *, additive: bool = False, unique: bool = False) -> ListOfType:
    return ListOfType(elem, additive=additive, unique=unique)


def attrs_of(elem: OptionType) -> AttrsOfType:
    return AttrsOfType(elem)


def submodule(options: OptionSet | Mapping[str, Any]) -> SubmoduleType:
    return SubmoduleType(options)


# ---------------------------------------------------------------------------
# Named types and type expressions (used by YAML data modules)
# ---------------------------------------------------------------------------

BUILTIN_TYPES: dict[str, OptionType] = {
    "bool": bool_,
    "int": int_,
    "float": float_,
    "str": str_,
    "lines": lines,
    "comma_separated": comma_separated,
    "anything": anything,
    "port": port,
}

_TOKEN = re.compile(r"\s*(?:([A-Za-z_][A-Za-z0-9_]*)|(-?\d+)|('[^']*'|\"[^\"]*\")|([(),]))")


def parse_type(expr: str, registry: Mapping[str, OptionType] | None = None) -> OptionType:
    """Parse a type expression such as ``list_of(str, additive)``.

    Grammar::

        type  := NAME | NAME "(" args ")"
        args  := arg ("," arg)*
        arg   := type | INT | QUOTED | FLAG

    Supported constructors: ``list_of``, ``attrs_of``, ``null_or``, ``enum``,
    ``int_between``, ``separated_string``.  ``list_of`` accepts the flags
    ``additive`` and ``unique`` after the element type.
    """
    names = {**BUILTIN_TYPES, **(registry or {})}
    tokens = _tokenize(expr)
    result, pos = _parse_expr(tokens, 0, names, expr)
    if pos != len(tokens):
        msg = f"Unexpected trailing input in type expression {expr!r}"
        raise ValueError(msg)
    return result


def _tokenize(expr: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    stripped = expr.rstrip()
    while pos < len(stripped):
        match = _TOKEN.match(stripped, pos)
        if match is None or match.end() == pos:
            msg = f"Invalid type expression {expr!r} at offset {pos}"
            raise ValueError(msg)
        name, number, quoted, punct = match.groups()
        if name is not None:
            tokens.append(("name", name))
        elif number is not None:
            tokens.append(("int", number))
        elif quoted is not None:
            tokens.append(("str", quoted[1:-1]))
        else:
            tokens.append(("punct", punct))
        pos = match.end()
    return tokens


def _parse_expr(
    tokens: list[tuple[str, str]], pos: int, names: Mapping[str, OptionType], expr: str
) -> tuple[Any, int]:
    if pos >= len(tokens):
        msg = f"Unexpected end of type expression {expr!r}"
        raise ValueError(msg)
    kind, text = tokens[pos]
    if kind == "int":
        return int(text), pos + 1
    if kind == "str":
        return text, pos + 1
    if kind != "name":
        msg = f"Unexpected {text!r} in type expression {expr!r}"
        raise ValueError(msg)
    pos += 1
    if pos < len(tokens) and tokens[pos] == ("punct", "("):
        args: list[Any] = []
        pos += 1
        while True:
            arg, pos = _parse_arg(tokens, pos, names, expr)
            args.append(arg)
            if pos >= len(tokens):
                msg = f"Unclosed '(' in type expression {expr!r}"
                raise ValueError(msg)
            if tokens[pos] == ("punct", ")"):
                return _construct(text, args, expr), pos + 1
            if tokens[pos] != ("punct", ","):
                msg = f"Expected ',' or ')' in type expression {expr!r}"
                raise ValueError(msg)
            pos += 1
    if text not in names:
        msg = f"Unknown option type {text!r} in {expr!r}"
        raise ValueError(msg)
    return names[text], pos


def _parse_arg(
    tokens: list[tuple[str, str]], pos: int, names: Mapping[str, OptionType], expr: str
) -> tuple[Any, int]:
    kind, text = tokens[pos] if pos < len(tokens) else ("", "")
    if kind == "name" and text in ("additive", "unique"):
        return _Flag(text), pos + 1
    return _parse_expr(tokens, pos, names, expr)


class _Flag(str):
    """Bare keyword argument in a type expression."""


def _construct(name: str, args: list[Any], expr: str) -> OptionType:
    types_ = [a for a in args if isinstance(a, OptionType)]
    flags = {str(a) for a in args if isinstance(a, _Flag)}
    if name == "list_of" and len(types_) == 1:
        return list_of(types_[0], additive="additive" in flags, unique="unique" in flags)
    if name == "attrs_of" and len(types_) == 1 and not flags:
        return attrs_of(types_[0])
    if name == "null_or" and len(types_) == 1 and not flags:
        return null_or(types_[0])
    if name == "enum" and not types_ and not flags:
        return enum(*args)
    if name == "int_between" and len(args) == 2 and all(isinstance(a, int) for a in args):
        return int_between(args[0], args[1])
    if name == "separated_string" and len(args) == 1 and not flags and isinstance(args[0], str):
        return separated_string(args[0])
    msg = f"Invalid arguments for {name}() in type expression {expr!r}"
    raise ValueError(msg)
