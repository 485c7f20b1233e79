"""Infrastructure layer — module loaders (Python files, YAML data modules).

This layer depends on stdlib and third-party libs (ruamel.yaml).
It builds domain ``Module`` objects; it never evaluates them.
It must never import from engine, services, commands, or output.
"""

from confix.infrastructure.loader import ModuleLoader, load_python_module, load_yaml_module
from confix.infrastructure.registry import ModuleRegistry

__all__ = ["ModuleLoader", "ModuleRegistry", "load_python_module", "load_yaml_module"]
