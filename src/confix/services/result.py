"""The value every service call returns.

Services never let a :class:`~confix.domain.errors.ConfixError` escape:
it is folded into ``ServiceResult(ok=False, error=...)`` so the CLI, and
any program embedding confix, handles success and failure the same way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from confix.domain.errors import ConfixError


class ServiceError(BaseModel):
    """Why a service call failed: a stable code, a message and its context."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: ConfixError) -> ServiceError:
        return cls(code=exc.code, message=exc.message, detail=exc.to_dict())


class ServiceResult(BaseModel):
    """Outcome of one service call (immutable).

    ``op`` names the call (``"evaluate"``, ``"check"``, ``"list_options"``)
    and selects the renderer.  ``data`` is only meaningful when ``ok``;
    otherwise ``error`` is set.  ``warnings`` go to stderr, and ``meta``
    carries extras such as the change history or telemetry.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    error: ServiceError | None = None
    warnings: list[str] = Field(default_factory=list)
    meta: dict[str, Any] | None = None
