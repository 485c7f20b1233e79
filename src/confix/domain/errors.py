"""Structured error taxonomy for module evaluation.

Every error carries the option path(s), origins and priorities needed to
point at the responsible module, and serializes via ``to_dict()`` for the
service layer (``ServiceError.detail``) and JSON output.

Propagation policy:
- UndeclaredOption, DuplicateDeclaration, TypeMismatch, Conflict and
  MissingValue abort only the offending path; the evaluator keeps going and
  raises them together as one ``EvaluationError``.
- Divergence aborts the whole run.
- AssertionFailure lists every failing assertion at once.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

from confix.domain.priority import describe_priority

if TYPE_CHECKING:
    from confix.domain.paths import OptionPath


class ConfixError(Exception):
    """Base class for all confix evaluation errors."""

    code = "CONFIX_ERROR"

    def __init__(
        self,
        message: str,
        *,
        paths: Iterable[OptionPath] = (),
        origins: Iterable[str] = (),
        priorities: Iterable[int] = (),
    ) -> None:
        super().__init__(message)
        self.message = message
        self.paths: tuple[OptionPath, ...] = tuple(paths)
        self.origins: tuple[str, ...] = tuple(origins)
        self.priorities: tuple[int, ...] = tuple(priorities)

    @property
    def path(self) -> OptionPath | None:
        """Primary path the error is about, if any."""
        return self.paths[0] if self.paths else None

    def key(self) -> tuple[str, tuple[OptionPath, ...], str]:
        """Identity used to compare errors between evaluation passes."""
        return (self.code, self.paths, self.message)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.paths:
            data["paths"] = [str(p) for p in self.paths]
        if self.origins:
            data["origins"] = list(self.origins)
        if self.priorities:
            data["priorities"] = list(self.priorities)
        return data


class UndeclaredOptionError(ConfixError):
    """A definition targets a path with no declaration."""

    code = "UNDECLARED_OPTION"

    def __init__(self, path: OptionPath, origin: str) -> None:
        super().__init__(
            f"The option `{path}' defined in {origin} does not exist",
            paths=[path],
            origins=[origin],
        )


class DuplicateDeclarationError(ConfixError):
    """Two modules declare the same option path."""

    code = "DUPLICATE_DECLARATION"

    def __init__(self, path: OptionPath, origins: Sequence[str]) -> None:
        super().__init__(
            f"The option `{path}' is declared more than once: {', '.join(origins)}",
            paths=[path],
            origins=origins,
        )


class TypeMismatchError(ConfixError):
    """A definition value fails the declared type's validator."""

    code = "TYPE_MISMATCH"

    def __init__(
        self,
        path: OptionPath,
        *,
        expected: str,
        value: Any,
        origin: str | None = None,
        priority: int | None = None,
    ) -> None:
        where = f" in {origin}" if origin else ""
        super().__init__(
            f"The option `{path}' expects {expected}, got {value!r}{where}",
            paths=[path],
            origins=[origin] if origin else [],
            priorities=[priority] if priority is not None else [],
        )
        self.expected = expected
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["expected"] = self.expected
        data["value"] = repr(self.value)
        return data


class ConflictError(ConfixError):
    """Irreconcilable definitions at the same priority."""

    code = "CONFLICT"

    def __init__(
        self,
        path: OptionPath,
        *,
        origins: Sequence[str],
        values: Sequence[Any],
        priority: int,
        reason: str | None = None,
    ) -> None:
        listing = "; ".join(f"{v!r} in {o}" for o, v in zip(origins, values, strict=True))
        detail = reason or "conflicting definition values"
        super().__init__(
            f"The option `{path}' has {detail} at priority "
            f"{describe_priority(priority)}: {listing}",
            paths=[path],
            origins=origins,
            priorities=[priority] * len(origins),
        )
        self.values = tuple(values)


class MissingValueError(ConfixError):
    """An option is read but has neither a definition nor a default."""

    code = "MISSING_VALUE"

    def __init__(self, path: OptionPath, *, read_by: str | None = None) -> None:
        suffix = f" (read by {read_by})" if read_by else ""
        super().__init__(
            f"The option `{path}' is used but not defined{suffix}",
            paths=[path],
            origins=[read_by] if read_by else [],
        )


class MissingModuleError(ConfixError):
    """An import names a module that is not available."""

    code = "MISSING_MODULE"

    def __init__(self, name: str, *, required_by: str) -> None:
        super().__init__(
            f"Module {name!r} required by {required_by} could not be found",
            origins=[required_by],
        )
        self.name = name


class DuplicateModuleError(ConfixError):
    """Two different modules share one name."""

    code = "DUPLICATE_MODULE"

    def __init__(self, name: str, origins: Sequence[str]) -> None:
        super().__init__(
            f"Module name {name!r} is used by more than one module: {', '.join(origins)}",
            origins=origins,
        )
        self.name = name


class DefinitionError(ConfixError):
    """A module's deferred computation raised an unexpected exception."""

    code = "DEFINITION_ERROR"

    def __init__(self, path: OptionPath, origin: str, cause: BaseException) -> None:
        super().__init__(
            f"Computing `{path}' in {origin} failed: {type(cause).__name__}: {cause}",
            paths=[path],
            origins=[origin],
        )
        self.cause = cause


class DivergenceError(ConfixError):
    """The fixed point was not reached; no partial result can be trusted."""

    code = "DIVERGENCE"

    def __init__(
        self,
        path: OptionPath,
        *,
        iterations: int,
        reason: str,
        cycle: Sequence[OptionPath] = (),
    ) -> None:
        message = f"Evaluation diverged at `{path}' after {iterations} passes: {reason}"
        if cycle:
            message += " (cycle: " + " -> ".join(str(p) or "<root>" for p in cycle) + ")"
        super().__init__(message, paths=dict.fromkeys([path, *cycle]))
        self.iterations = iterations
        self.cycle = tuple(cycle)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["iterations"] = self.iterations
        if self.cycle:
            data["cycle"] = [str(p) for p in self.cycle]
        return data


class AssertionFailureError(ConfixError):
    """One or more post-resolution assertions failed."""

    code = "ASSERTION_FAILURE"

    def __init__(
        self, failures: Sequence[dict[str, Any]], *, warnings: Sequence[str] = ()
    ) -> None:
        messages = "\n".join(f"- {f['message']}" for f in failures)
        paths = [p for f in failures for p in f.get("paths", ())]
        origins = [f["origin"] for f in failures if f.get("origin")]
        super().__init__(f"Failed assertions:\n{messages}", paths=paths, origins=origins)
        self.failures = list(failures)
        self.warnings = list(warnings)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["failures"] = [
            {
                "message": f["message"],
                "origin": f.get("origin"),
                "paths": [str(p) for p in f.get("paths", ())],
            }
            for f in self.failures
        ]
        if self.warnings:
            data["warnings"] = list(self.warnings)
        return data


class EvaluationError(ConfixError):
    """Aggregate of every per-path error found in one evaluation run."""

    code = "EVALUATION_ERROR"

    def __init__(self, errors: Sequence[ConfixError]) -> None:
        self.errors = list(errors)
        lines = "\n".join(f"- {e.message}" for e in self.errors)
        super().__init__(
            f"{len(self.errors)} error(s) during evaluation:\n{lines}",
            paths=[p for e in self.errors for p in e.paths],
            origins=[o for e in self.errors for o in e.origins],
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errors"] = [e.to_dict() for e in self.errors]
        return data


class ModuleLoadError(ConfixError):
    """A module file could not be read or does not describe a module."""

    code = "MODULE_LOAD_ERROR"

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Cannot load module from {source}: {reason}", origins=[source])
        self.source = source
