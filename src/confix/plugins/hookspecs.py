"""Pluggy hook specifications for confix module providers.

Two setup-time hooks let plugins contribute named modules and option
types before evaluation; one notification hook runs after every
evaluation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from confix.domain.modules import Module
    from confix.domain.types import OptionType

hookspec = pluggy.HookspecMarker("confix")
hookimpl = pluggy.HookimplMarker("confix")


class ConfixHookSpec:
    """Hook specifications for the confix plugin system."""

    @hookspec
    def confix_modules(self) -> list[Module] | None:
        """Return modules to add to the registry (importable by name)."""

    @hookspec
    def confix_types(self) -> dict[str, OptionType] | None:
        """Return name -> OptionType mappings usable in type expressions."""

    @hookspec
    def post_evaluate(
        self,
        ok: bool,
        iterations: int,
        warnings: list[str],
    ) -> None:
        """Called after an evaluation run, successful or not."""
