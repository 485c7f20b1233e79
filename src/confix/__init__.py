"""confix — declarative configuration composition.

Modules declare typed options and supply prioritized values; the
evaluator merges them to a fixed point and checks assertions::

    from confix import Module, evaluate, mk_force, mk_option, types

    base = Module(
        "base",
        options={"count": mk_option(types.int_, default=0)},
        config={"count": 5},
    )
    pinned = Module("pinned", config={"count": mk_force(7)})
    evaluate([base, pinned]).config["count"]  # 7
"""

from confix.domain import types
from confix.domain.definitions import (
    computed,
    mk_after,
    mk_before,
    mk_default,
    mk_force,
    mk_if,
    mk_merge,
    mk_order,
    mk_override,
)
from confix.domain.errors import ConfixError
from confix.domain.modules import Module, assertion, warning
from confix.domain.options import mk_option
from confix.domain.paths import OptionPath
from confix.engine.evaluator import Evaluation, Evaluator, evaluate
from confix.engine.view import ConfigView, ResolvedConfig

__version__ = "0.1.0"

__all__ = [
    "ConfigView",
    "ConfixError",
    "Evaluation",
    "Evaluator",
    "Module",
    "OptionPath",
    "ResolvedConfig",
    "__version__",
    "assertion",
    "computed",
    "evaluate",
    "mk_after",
    "mk_before",
    "mk_default",
    "mk_force",
    "mk_if",
    "mk_merge",
    "mk_order",
    "mk_override",
    "mk_option",
    "types",
    "warning",
]
