"""Fixed-point evaluator — resolves self-referential configuration.

Modules may read the final configuration while contributing to it.  The
evaluator makes that laziness explicit as a bounded loop:

1. Pass 0: every option is *unknown*.
2. Each pass evaluates every module's definitions against the previous
   pass's values, then merges every option.  A read of an unknown,
   undefined or failed option suspends the part of the computation that
   depends on it (the other keys of a whole-module config still count)
   until a later pass.
3. The loop stops once a pass changes no option (using each type's
   equality) and suspends the same computations as the pass before.

A purely static module set stabilizes after two passes; every level of
self-reference adds one.  Values that keep changing past ``max_iterations``,
and computations that wait on each other forever, are rejected as
``DivergenceError``.  The evaluator owns the loop; nothing is read from
global state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

import networkx as nx

from confix.domain.definitions import Definition, computed
from confix.domain.errors import (
    AssertionFailureError,
    ConfixError,
    DivergenceError,
    EvaluationError,
    MissingValueError,
)
from confix.domain.modules import Module, collect_modules
from confix.domain.options import OptionDeclaration, OptionSet
from confix.domain.paths import ROOT, OptionPath
from confix.engine.assertions import check_assertions, collect_warnings
from confix.engine.merge import MergeEngine, PassState, Suspension
from confix.engine.view import ConfigView, ResolvedConfig, Snapshot

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100


@dataclass(frozen=True)
class Evaluation:
    """A converged, checked configuration ready for downstream use."""

    config: ResolvedConfig
    warnings: list[str] = field(default_factory=list)
    iterations: int = 0
    modules: list[str] = field(default_factory=list)
    history: list[int] = field(default_factory=list)


@dataclass
class _Pass:
    snapshot: Snapshot
    state: PassState

    @property
    def suspension_keys(self) -> frozenset[tuple[OptionPath, OptionPath]]:
        return frozenset((s.target, s.read) for s in self.state.suspensions)

    @property
    def error_keys(self) -> frozenset[tuple[object, ...]]:
        return frozenset(e.key() for e in self.state.errors)


class Evaluator:
    """Drive the merge engine to a fixed point for one module set.

    Args:
        modules: Root modules, in load order.
        registry: Named modules that string imports may refer to.
        max_iterations: Upper bound on evaluation passes (at least 2).
        on_pass: Optional callback ``(iteration, changed_count)`` invoked
            after every pass (used for telemetry).
    """

    def __init__(
        self,
        modules: Sequence[Module],
        *,
        registry: Mapping[str, Module] | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        on_pass: Callable[[int, int], None] | None = None,
    ) -> None:
        if max_iterations < 2:
            msg = f"max_iterations must be at least 2, got {max_iterations}"
            raise ValueError(msg)
        self._roots = list(modules)
        self._registry = dict(registry or {})
        self._max_iterations = max_iterations
        self._on_pass = on_pass

    def run(self) -> Evaluation:
        modules = collect_modules(self._roots, self._registry)
        schema, duplicates = OptionSet.build(d for m in modules for d in m.declarations())
        logger.debug(
            "Evaluating %d modules, %d options",
            len(modules),
            sum(1 for _ in schema.iter_declarations()),
        )

        current = self._run_pass(schema, modules, None)
        changed = _changed_paths(None, current)
        history = [len(changed)]
        self._report(1, current, changed)
        for iteration in range(2, self._max_iterations + 1):
            previous, current = current, self._run_pass(schema, modules, current)
            changed = _changed_paths(previous, current)
            history.append(len(changed))
            self._report(iteration, current, changed)
            if not changed:
                return self._finish(schema, modules, current, duplicates, iteration, history)

        culprit = changed[0]
        logger.warning("No fixed point after %d passes", self._max_iterations)
        raise DivergenceError(
            culprit,
            iterations=self._max_iterations,
            reason="its value kept changing",
            cycle=_find_cycle(current.state, culprit),
        )

    def _report(self, iteration: int, current: _Pass, changed: list[OptionPath]) -> None:
        logger.debug(
            "Pass %d: %d changed, %d suspended",
            iteration,
            len(changed),
            len(current.state.suspensions),
        )
        if self._on_pass is not None:
            self._on_pass(iteration, len(changed))

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def _run_pass(
        self, schema: OptionSet, modules: Sequence[Module], previous: _Pass | None
    ) -> _Pass:
        snapshot = previous.snapshot if previous is not None else None

        def view_factory(target: OptionPath, origin: str, state: PassState) -> ConfigView:
            return ConfigView(
                schema,
                snapshot,
                reader=origin,
                on_read=lambda path: state.reads.append((target, path)),
                defer=True,
            )

        engine = MergeEngine(schema, view_factory)
        definitions: list[Definition] = []
        for module in modules:
            config = module.config
            if config is None:
                continue
            if callable(config) and not isinstance(config, Mapping):
                config = computed(config, label=module.name)
            definitions.append(Definition(ROOT, config, origin=module.origin))

        tree = engine.resolve_root(definitions)
        return _Pass(Snapshot(schema, engine.state.leaves, tree), engine.state)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def _finish(
        self,
        schema: OptionSet,
        modules: Sequence[Module],
        last: _Pass,
        duplicates: Sequence[ConfixError],
        iterations: int,
        history: list[int],
    ) -> Evaluation:
        state = last.state
        errors: list[ConfixError] = [*duplicates, *state.errors]

        blocked = [s for s in state.suspensions if s.reason != "error"]
        own = next((s for s in blocked if _reads_own_option(schema, s)), None)
        if own is not None:
            logger.warning("%s waits on its own option %s", own.origin, own.read)
            raise DivergenceError(
                own.read,
                iterations=iterations,
                reason=(
                    f"{own.origin} needs its value before its whole-module config can be "
                    "computed, and nothing else defines it"
                ),
                cycle=_find_cycle(state, own.target),
            )
        if blocked:
            targets = {s.target for s in blocked}
            waiting = [s for s in blocked if any(_covers(t, s.read) for t in targets)]
            if waiting:
                first = min(waiting, key=lambda s: (s.target, s.read))
                logger.warning("Unresolvable self-reference at %s", first.target)
                raise DivergenceError(
                    first.target,
                    iterations=iterations,
                    reason=(
                        f"it reads `{first.read}', which can only be defined by "
                        "computations that are themselves waiting"
                    ),
                    cycle=_find_cycle(state, first.target),
                )
            errors.extend(MissingValueError(s.read, read_by=s.origin) for s in blocked)

        if errors:
            raise EvaluationError(_dedupe(errors))

        leaves = {p: s.value for p, s in last.snapshot.leaves.items() if s.has_value}
        config = ResolvedConfig(leaves, last.snapshot.tree)

        warnings = list(dict.fromkeys(state.warnings))
        warnings.extend(
            collect_warnings([w for m in modules for w in m.bound_warnings()], config)
        )
        failures = check_assertions([a for m in modules for a in m.bound_assertions()], config)
        if failures:
            raise AssertionFailureError(failures, warnings=warnings)

        logger.debug("Fixed point reached after %d passes", iterations)
        return Evaluation(
            config=config,
            warnings=warnings,
            iterations=iterations,
            modules=[m.name for m in modules],
            history=history,
        )


def evaluate(
    modules: Sequence[Module],
    *,
    registry: Mapping[str, Module] | None = None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> Evaluation:
    """Evaluate *modules* to a checked fixed point (see :class:`Evaluator`)."""
    return Evaluator(modules, registry=registry, max_iterations=max_iterations).run()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _changed_paths(previous: _Pass | None, current: _Pass) -> list[OptionPath]:
    """Leaf paths whose state differs between two passes."""
    if previous is None:
        return sorted(current.snapshot.leaves) or [ROOT]
    old = previous.snapshot.leaves
    new = current.snapshot.leaves
    changed = [
        path
        for path in sorted(old.keys() | new.keys())
        if path not in old or path not in new or not old[path].same_as(new[path])
    ]
    if not changed and (
        previous.suspension_keys != current.suspension_keys
        or previous.error_keys != current.error_keys
    ):
        changed = sorted({s.target for s in current.state.suspensions}) or [ROOT]
    return changed


def _overlaps(a: OptionPath, b: OptionPath) -> bool:
    return a.startswith(b) or b.startswith(a)


def _covers(target: OptionPath, read: OptionPath) -> bool:
    """Whether a computation targeting *target* could define *read*.

    Whole-module computations (targeting the root) are not counted: a read
    they wait on is reported as missing rather than circular.
    """
    if target.is_root:
        return read.is_root
    return _overlaps(target, read)


def _reads_own_option(schema: OptionSet, suspension: Suspension) -> bool:
    """Whether a whole-module computation waits on an option of its own module."""
    if not suspension.target.is_root:
        return False
    parts = suspension.read.parts
    for depth in range(len(parts), 0, -1):
        node = schema.lookup(OptionPath(parts[:depth]))
        if isinstance(node, OptionDeclaration):
            return node.declared_by == suspension.origin
    return False


def _find_cycle(state: PassState, source: OptionPath) -> list[OptionPath]:
    """Cycle through *source* in the read graph of a pass, if any.

    Edges run from a computation's target to every path it read, and from
    a read path to every computation target that could define it.
    """
    graph: nx.DiGraph = nx.DiGraph()
    reads = set(state.reads) | {(s.target, s.read) for s in state.suspensions}
    targets = {target for target, _ in reads}
    for target, read in reads:
        graph.add_edge(target, read)
        for other in targets:
            if other != read and _overlaps(other, read):
                graph.add_edge(read, other)
    if source not in graph:
        return []
    try:
        edges = nx.find_cycle(graph, source=source)
    except nx.NetworkXNoCycle:
        return []
    return [edges[0][0], *(v for _u, v in edges)]


def _dedupe(errors: Sequence[ConfixError]) -> list[ConfixError]:
    seen: set[tuple[object, ...]] = set()
    unique: list[ConfixError] = []
    for error in errors:
        if error.key() not in seen:
            seen.add(error.key())
            unique.append(error)
    return unique


__all__ = ["DEFAULT_MAX_ITERATIONS", "Evaluation", "Evaluator", "Suspension", "evaluate"]
