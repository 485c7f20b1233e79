"""Timing spans for service calls, shown with ``--verbose``.

Disabled by default; then every entry point costs one ``ContextVar.get``.
When enabled, ``@traced`` opens a span per service call, ``trace_span``
nests phases (loading, each evaluation pass) under it, and the finished
tree is attached to the returned ServiceResult as ``meta["telemetry"]``.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from confix.services.result import ServiceResult

log = structlog.get_logger("confix.telemetry")

# ── Context variables ────────────────────────────────────────────────

_verbose_enabled: ContextVar[bool] = ContextVar("_verbose_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)


# ── Span ─────────────────────────────────────────────────────────────


@dataclass
class Span:
    """One timed phase; its children are the phases opened inside it."""

    name: str
    parent: Span | None = field(default=None, repr=False, compare=False)
    started: float = field(default_factory=time.perf_counter)
    finished: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)
    children: list[Span] = field(default_factory=list)

    @property
    def duration_ms(self) -> float:
        """Elapsed milliseconds; 0.0 while the span is still open."""
        return 0.0 if self.finished is None else (self.finished - self.started) * 1000

    def end(self) -> None:
        self.finished = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def child(self, name: str) -> Span:
        """Start a nested span."""
        span = Span(name=name, parent=self)
        self.children.append(span)
        return span

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@contextmanager
def _activate(span: Span) -> Generator[Span]:
    """Make *span* current for the block; end it on the way out."""
    token = _current_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _current_span.reset(token)


# ── trace_span ───────────────────────────────────────────────────────


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Time a phase under the current span.

    Yields None when telemetry is off or no service call is being traced.
    """
    parent = _current_span.get() if _verbose_enabled.get() else None
    if parent is None:
        yield None
        return
    with _activate(parent.child(name)) as span:
        yield span


# ── @traced ──────────────────────────────────────────────────────────

_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Time every call of a service method.

    A call made inside another traced call becomes a child span; an
    outermost call starts a new tree, attached to a returned ServiceResult.
    """

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _verbose_enabled.get():
            return func(*args, **kwargs)

        parent = _current_span.get()
        span = parent.child(func.__qualname__) if parent else Span(name=func.__qualname__)
        try:
            with _activate(span):
                result = func(*args, **kwargs)
        except Exception:
            _log_span(span, ok=False)
            raise

        if not isinstance(result, ServiceResult):
            _log_span(span, ok=True)
            return result
        _log_span(span, ok=result.ok)
        if parent is not None:
            return result
        meta = {**(result.meta or {}), "telemetry": span.to_dict()}
        return result.model_copy(update={"meta": meta})  # type: ignore[return-value]

    return wrapper


def _log_span(span: Span, *, ok: bool) -> None:
    log.debug(
        "service.timed",
        span_name=span.name,
        duration_ms=round(span.duration_ms, 2),
        children=len(span.children),
        ok=ok,
    )


# ── Switches ─────────────────────────────────────────────────────────


def enable_telemetry() -> None:
    """Turn tracing on (AppContext does this for ``--verbose``)."""
    _verbose_enabled.set(True)


def disable_telemetry() -> None:
    _verbose_enabled.set(False)


def get_current_span() -> Span | None:
    """The innermost open span, for ad-hoc annotations; None when off."""
    if not _verbose_enabled.get():
        return None
    return _current_span.get()
