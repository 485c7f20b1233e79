"""Reads that cannot be answered yet during evaluation.

A deferred computation reading an option with no usable value either
stops at once (:class:`Suspended`) or, when its view defers reads, gets a
:class:`Pending` placeholder back.  Arithmetic, indexing and attribute
access on a placeholder produce the same placeholder, so a whole-module
``config`` callable can still return its other keys; the merge engine
drops every key whose value depends on one and retries it next pass.
Anything that needs the actual value (truth testing, iteration, string
conversion, hashing) raises :class:`Suspended` instead.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Literal, NoReturn

if TYPE_CHECKING:
    from confix.domain.paths import OptionPath

SuspendReason = Literal["unknown", "undefined", "error"]


class Suspended(Exception):  # noqa: N818
    """Raised by a view read that cannot be answered in this pass."""

    def __init__(self, path: OptionPath, reason: SuspendReason) -> None:
        super().__init__(f"{path} is {reason}")
        self.path = path
        self.reason = reason


class Pending:
    """Placeholder for the value of *path*, which is not available yet."""

    __slots__ = ("path", "reason")

    def __init__(self, path: OptionPath, reason: SuspendReason) -> None:
        self.path = path
        self.reason = reason

    def _absorb(self, *_args: Any, **_kwargs: Any) -> Pending:
        return self

    def _suspend(self, *_args: Any) -> NoReturn:
        raise Suspended(self.path, self.reason)

    def __getattr__(self, name: str) -> Pending:
        if name.startswith("__"):
            raise AttributeError(name)
        return self

    __add__ = __radd__ = __sub__ = __rsub__ = __mul__ = __rmul__ = _absorb
    __truediv__ = __rtruediv__ = __floordiv__ = __rfloordiv__ = _absorb
    __mod__ = __rmod__ = __pow__ = __rpow__ = _absorb
    __and__ = __rand__ = __or__ = __ror__ = __xor__ = __rxor__ = _absorb
    __neg__ = __pos__ = __abs__ = __invert__ = _absorb
    __lt__ = __le__ = __gt__ = __ge__ = __eq__ = __ne__ = _absorb  # type: ignore[assignment]
    __getitem__ = __call__ = _absorb

    __bool__ = __len__ = __iter__ = __contains__ = _suspend
    __str__ = __format__ = __int__ = __float__ = __index__ = _suspend
    __hash__ = _suspend  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<pending {self.path} ({self.reason})>"


def find_pending(value: Any) -> Pending | None:
    """The first placeholder inside *value* (containers and wrappers included)."""
    if isinstance(value, Pending):
        return value
    if isinstance(value, Mapping):
        items: Any = value.values()
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        items = [getattr(value, f.name) for f in dataclasses.fields(value)]
    else:
        return None
    for item in items:
        found = find_pending(item)
        if found is not None:
            return found
    return None
