"""Option definitions and the wrappers that annotate them.

A module writes plain values into its ``config`` tree; wrappers change how
a value takes part in merging:

- ``mk_override(priority, v)`` / ``mk_force(v)`` / ``mk_default(v)``: priority.
- ``mk_if(condition, v)``: contributes *v* only when *condition* holds.
- ``mk_merge(v1, v2, ...)``: several definitions from one place.
- ``mk_order(n, v)`` / ``mk_before(v)`` / ``mk_after(v)``: list position.
- ``computed(fn)``: deferred value; ``fn`` receives the final configuration
  (a read-only view) and returns any of the above.

Wrappers nest freely and may appear at any depth of the tree; a wrapper
around a nested mapping applies to every option below it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from confix.domain.pending import Pending
from confix.domain.priority import (
    DEFAULT,
    FORCE,
    NORMAL,
    ORDER_AFTER,
    ORDER_BEFORE,
    ORDER_NORMAL,
    validate_priority,
)

if TYPE_CHECKING:
    from confix.domain.paths import OptionPath


@dataclass(frozen=True)
class Definition:
    """One value contributed to one option path."""

    path: OptionPath
    value: Any
    priority: int = NORMAL
    order: int = ORDER_NORMAL
    origin: str = "<unknown>"


# --- Wrappers ---------------------------------------------------------------


@dataclass(frozen=True)
class Override:
    priority: int
    content: Any


@dataclass(frozen=True)
class Conditional:
    condition: Any  # bool, Computed, or Pending inside a computation
    content: Any


@dataclass(frozen=True)
class Merge:
    contents: tuple[Any, ...]


@dataclass(frozen=True)
class Ordered:
    order: int
    content: Any


@dataclass(frozen=True, eq=False)
class Computed:
    """Deferred definition reading the final configuration."""

    fn: Callable[[Any], Any]
    label: str | None = None

    def __repr__(self) -> str:
        name = self.label or getattr(self.fn, "__qualname__", "<fn>")
        return f"computed({name})"


WRAPPERS = (Override, Conditional, Merge, Ordered, Computed)


def mk_override(priority: int, value: Any) -> Override:
    return Override(validate_priority(priority), value)


def mk_force(value: Any) -> Override:
    return Override(FORCE, value)


def mk_default(value: Any) -> Override:
    return Override(DEFAULT, value)


def mk_if(condition: Any, value: Any) -> Conditional:
    if not isinstance(condition, (bool, Computed, Pending)):
        msg = f"mk_if condition must be a bool or computed(), got {type(condition).__name__}"
        raise TypeError(msg)
    return Conditional(condition, value)


def mk_merge(*values: Any) -> Merge:
    return Merge(tuple(values))


def mk_order(order: int, value: Any) -> Ordered:
    return Ordered(order, value)


def mk_before(value: Any) -> Ordered:
    return Ordered(ORDER_BEFORE, value)


def mk_after(value: Any) -> Ordered:
    return Ordered(ORDER_AFTER, value)


def computed(fn: Callable[[Any], Any], *, label: str | None = None) -> Computed:
    return Computed(fn, label)


def is_wrapper(value: Any) -> bool:
    return isinstance(value, WRAPPERS)

