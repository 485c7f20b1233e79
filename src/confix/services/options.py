"""OptionsService — document every option a module set declares."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from confix.domain.errors import ConfixError, EvaluationError
from confix.domain.modules import collect_modules
from confix.domain.options import OptionSet
from confix.services.base import BaseService
from confix.services.result import ServiceError, ServiceResult
from confix.services.telemetry import trace_span, traced


class OptionsService(BaseService):
    """Lists declared options without evaluating any definitions."""

    @traced
    def list_options(
        self,
        paths: Sequence[Path],
        *,
        prefix: str | None = None,
        include_internal: bool = False,
    ) -> ServiceResult:
        """Documentation records for every declared option, in path order.

        Args:
            paths: Module files to load.
            prefix: Only options under this dotted path.
            include_internal: Also list options marked ``internal``.
        """
        try:
            with trace_span("load"):
                loaded = self._load(paths)
            modules = collect_modules(loaded.roots, loaded.registry)
        except ConfixError as exc:
            return ServiceResult(
                ok=False, op="list_options", error=ServiceError.from_exception(exc)
            )

        schema, duplicates = OptionSet.build(d for m in modules for d in m.declarations())
        if duplicates:
            return ServiceResult(
                ok=False,
                op="list_options",
                error=ServiceError.from_exception(EvaluationError(duplicates)),
            )

        records: list[dict[str, Any]] = []
        for declaration in schema.iter_declarations():
            if declaration.internal and not include_internal:
                continue
            record = declaration.describe()
            if prefix and not (record["path"] == prefix or record["path"].startswith(f"{prefix}.")):
                continue
            records.append(record)

        warnings = [
            f"The option `{r['path']}' is deprecated: {r['deprecated']}"
            for r in records
            if r.get("deprecated")
        ]
        return ServiceResult(
            ok=True,
            op="list_options",
            data={"options": records, "count": len(records), "modules": [m.name for m in modules]},
            warnings=warnings,
        )
