"""Definition priorities and list ordering.

Lower number = stronger override.  Two values are reserved:

- ``FORCE`` always wins.  Among several forced definitions the first one in
  module load order is kept and no conflict is reported.
- ``OPTION_DEFAULT`` is the weakest tier; declared defaults live there.

Everything in between is an ordinary tier: the strongest non-empty tier of a
non-additive option wins outright.
"""

from __future__ import annotations

FORCE = 50
NORMAL = 100
DEFAULT = 1000
OPTION_DEFAULT = 1500

# --- List ordering within a tier (stable sort, lower = earlier) ---

ORDER_BEFORE = 500
ORDER_NORMAL = 1000
ORDER_AFTER = 1500

_NAMED = {
    FORCE: "force",
    NORMAL: "normal",
    DEFAULT: "default",
    OPTION_DEFAULT: "option-default",
}


def validate_priority(priority: int) -> int:
    """Reject priorities stronger than ``FORCE`` (force must stay strongest)."""
    if isinstance(priority, bool) or not isinstance(priority, int):
        msg = f"Priority must be an int, got {type(priority).__name__}"
        raise TypeError(msg)
    if priority < FORCE:
        msg = f"Priority {priority} is stronger than force ({FORCE})"
        raise ValueError(msg)
    return priority


def describe_priority(priority: int) -> str:
    """Human label used in diagnostics, e.g. ``"force (50)"``."""
    name = _NAMED.get(priority)
    return f"{name} ({priority})" if name else str(priority)
