"""Modules — units of configuration — and module collection.

A module bundles option declarations, definitions (``config``), imports of
other modules it requires, post-resolution assertions and warnings.  The
``config`` is either a nested mapping or a callable taking the final
configuration view and returning one.

Collection turns a list of root modules into the evaluation order:

- pre-order walk: a module comes before the modules it imports;
- a module reached more than once is loaded once; two different modules
  with one name are an error;
- string imports are resolved through a registry of named modules;
- ``disabled_modules`` removes modules (and anything reachable only through
  them) by name.

The order is fixed and total, so every tie-break downstream is
reproducible run to run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from confix.domain.errors import DuplicateModuleError, MissingModuleError
from confix.domain.options import OptionDeclaration, flatten_declarations
from confix.domain.paths import OptionPath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assertion:
    """Post-resolution consistency check; ``check`` must return True."""

    check: Callable[[Any], bool]
    message: str
    paths: tuple[OptionPath, ...] = ()
    origin: str = ""


@dataclass(frozen=True)
class ConfigWarning:
    """Non-blocking diagnostic, emitted when ``when`` returns True."""

    when: Callable[[Any], bool]
    message: str
    origin: str = ""


def assertion(
    check: Callable[[Any], bool],
    message: str,
    *,
    paths: Sequence[str | OptionPath] = (),
) -> Assertion:
    return Assertion(check, message, tuple(OptionPath.parse(p) for p in paths))


def warning(when: Callable[[Any], bool], message: str) -> ConfigWarning:
    return ConfigWarning(when, message)


@dataclass(eq=False)
class Module:
    """One configuration fragment.

    Ownership of a module passes to the evaluation run it is handed to;
    callers must not mutate it afterwards.
    """

    name: str
    options: Mapping[str, Any] | Sequence[OptionDeclaration] = field(default_factory=dict)
    config: Mapping[str, Any] | Callable[[Any], Any] | None = None
    imports: Sequence[Module | str] = ()
    assertions: Sequence[Assertion] = ()
    warnings: Sequence[ConfigWarning] = ()
    disabled_modules: Sequence[str] = ()
    source: str | None = None

    @property
    def origin(self) -> str:
        """Label used in diagnostics."""
        if self.source and self.source != self.name:
            return f"{self.name} ({self.source})"
        return self.name

    def declarations(self) -> list[OptionDeclaration]:
        return flatten_declarations(self.options, declared_by=self.origin)

    def bound_assertions(self) -> list[Assertion]:
        return [replace(a, origin=a.origin or self.origin) for a in self.assertions]

    def bound_warnings(self) -> list[ConfigWarning]:
        return [replace(w, origin=w.origin or self.origin) for w in self.warnings]

    def __repr__(self) -> str:
        return f"Module({self.name!r})"


def collect_modules(
    roots: Sequence[Module],
    registry: Mapping[str, Module] | None = None,
) -> list[Module]:
    """Expand imports, drop disabled modules, and fix the load order."""
    registry = registry or {}
    closure = _walk(roots, registry, disabled=frozenset(), strict=False)
    disabled = frozenset(name for m in closure for name in m.disabled_modules)
    if disabled:
        logger.debug("Disabling modules: %s", sorted(disabled))
    return _walk(roots, registry, disabled=disabled)


def _walk(
    roots: Sequence[Module],
    registry: Mapping[str, Module],
    *,
    disabled: frozenset[str],
    strict: bool = True,
) -> list[Module]:
    ordered: list[Module] = []
    seen: dict[str, Module] = {}

    def visit(module: Module) -> None:
        if module.name in disabled:
            return
        first = seen.get(module.name)
        if first is module:
            return
        if first is not None:
            raise DuplicateModuleError(module.name, [first.origin, module.origin])
        seen[module.name] = module
        ordered.append(module)
        for entry in module.imports:
            if isinstance(entry, Module):
                visit(entry)
                continue
            target = registry.get(entry)
            if target is None:
                if entry in disabled or not strict:
                    continue
                raise MissingModuleError(entry, required_by=module.origin)
            visit(target)

    for root in roots:
        visit(root)
    return ordered
