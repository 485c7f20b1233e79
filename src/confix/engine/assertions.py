"""Post-resolution assertions and warnings.

Runs once, after the fixed point.  Every assertion is evaluated (no early
exit) so one run reports every inconsistency; warnings never block.
Assertions may read any option, including ones declared by unrelated
modules.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from confix.domain.modules import Assertion, ConfigWarning
    from confix.engine.view import ResolvedConfig

logger = logging.getLogger(__name__)


def check_assertions(
    assertions: Sequence[Assertion], config: ResolvedConfig
) -> list[dict[str, Any]]:
    """Return one failure record per assertion that does not hold.

    A check that raises counts as failed; the exception is appended to the
    message.
    """
    failures: list[dict[str, Any]] = []
    for item in assertions:
        message = item.message
        try:
            ok = bool(item.check(config))
        except Exception as exc:
            logger.debug("Assertion from %s raised", item.origin, exc_info=True)
            ok = False
            message = f"{message} (check raised {type(exc).__name__}: {exc})"
        if not ok:
            failures.append({"message": message, "origin": item.origin, "paths": item.paths})
    return failures


def collect_warnings(warnings: Sequence[ConfigWarning], config: ResolvedConfig) -> list[str]:
    """Messages of every warning whose condition holds, in module order."""
    messages: list[str] = []
    for item in warnings:
        try:
            active = bool(item.when(config))
        except Exception as exc:
            messages.append(
                f"Warning condition in {item.origin} raised {type(exc).__name__}: {exc}"
            )
            continue
        if active:
            messages.append(item.message)
    return messages
