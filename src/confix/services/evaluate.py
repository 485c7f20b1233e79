"""EvaluateService — load modules, run the evaluator, report the result.

Operations:
- ``evaluate``: the resolved tree (or one option's value).
- ``check``: assertions and warnings only, for CI-style validation.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from confix.domain.errors import AssertionFailureError, ConfixError
from confix.domain.paths import OptionPath
from confix.engine.evaluator import Evaluation, Evaluator
from confix.services.base import BaseService
from confix.services.result import ServiceError, ServiceResult
from confix.services.telemetry import trace_span, traced


class EvaluateService(BaseService):
    """Evaluates module files to a resolved configuration."""

    @traced
    def evaluate(
        self,
        paths: Sequence[Path],
        *,
        option: str | None = None,
        max_iterations: int | None = None,
    ) -> ServiceResult:
        """Resolve the configuration defined by *paths*.

        With *option*, ``data`` holds only that option's (or subtree's)
        value; otherwise it holds the whole tree.
        """
        outcome = self._run("evaluate", paths, max_iterations=max_iterations)
        if isinstance(outcome, ServiceResult):
            return outcome

        config = outcome.config
        data: dict[str, Any] = {
            "iterations": outcome.iterations,
            "modules": outcome.modules,
        }
        if option is None:
            data["config"] = config.tree()
        else:
            try:
                path = OptionPath.parse(option)
                value = config[path]
            except (KeyError, ValueError):
                return ServiceResult(
                    ok=False,
                    op="evaluate",
                    error=ServiceError(
                        code="NOT_DEFINED",
                        message=f"The option `{option}' has no value",
                        detail={"option": option},
                    ),
                    warnings=outcome.warnings,
                )
            data["option"] = str(path)
            data["value"] = value

        return self._finish("evaluate", data, outcome)

    @traced
    def check(self, paths: Sequence[Path], *, max_iterations: int | None = None) -> ServiceResult:
        """Evaluate *paths* and report only assertion and warning results."""
        outcome = self._run("check", paths, max_iterations=max_iterations)
        if isinstance(outcome, ServiceResult):
            return outcome
        data = {
            "iterations": outcome.iterations,
            "modules": outcome.modules,
            "options": len(outcome.config),
            "failures": [],
        }
        return self._finish("check", data, outcome)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(
        self, op: str, paths: Sequence[Path], *, max_iterations: int | None
    ) -> Evaluation | ServiceResult:
        """Load and evaluate; return the evaluation or a failed result."""
        bound = max_iterations
        if bound is None:
            bound = self.settings.evaluation.max_iterations
        try:
            with trace_span("load"):
                loaded = self._load(paths)
            with trace_span("fixed_point") as span:
                evaluation = Evaluator(
                    loaded.roots,
                    registry=loaded.registry,
                    max_iterations=bound,
                    on_pass=_record_pass,
                ).run()
                if span is not None:
                    span.annotate("iterations", evaluation.iterations)
        except AssertionFailureError as exc:
            self._notify(ok=False, iterations=0, warnings=exc.warnings)
            return ServiceResult(
                ok=False,
                op=op,
                data={"failures": exc.to_dict()["failures"]},
                warnings=exc.warnings,
                error=ServiceError.from_exception(exc),
            )
        except ConfixError as exc:
            self._notify(ok=False, iterations=0, warnings=[])
            return ServiceResult(ok=False, op=op, error=ServiceError.from_exception(exc))
        except (TypeError, ValueError) as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(code="INVALID_ARGUMENT", message=str(exc)),
            )
        return evaluation

    def _finish(self, op: str, data: dict[str, Any], evaluation: Evaluation) -> ServiceResult:
        warnings = list(evaluation.warnings)
        ok = not (self.settings.evaluation.strict_warnings and warnings)
        self._notify(ok=ok, iterations=evaluation.iterations, warnings=warnings)
        if not ok:
            return ServiceResult(
                ok=False,
                op=op,
                warnings=warnings,
                error=ServiceError(
                    code="STRICT_WARNINGS",
                    message=f"{len(warnings)} warning(s) with strict_warnings enabled",
                    detail={"warnings": warnings},
                ),
            )
        return ServiceResult(
            ok=True,
            op=op,
            data=data,
            warnings=warnings,
            meta={"history": evaluation.history},
        )


def _record_pass(iteration: int, changed: int) -> None:
    with trace_span(f"pass_{iteration}") as span:
        if span is not None:
            span.annotate("changed", changed)
