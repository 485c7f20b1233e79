"""Extension layer — plugin system via pluggy.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints,
plus single-file local plugins.
INVARIANT: Plugin failures are warnings, never errors.
"""

from confix.plugins.hookspecs import hookimpl
from confix.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl"]
