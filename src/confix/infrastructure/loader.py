"""Module loading from Python files and YAML data files.

Python modules are ordinary ``.py`` files exposing either ``module`` (one
:class:`~confix.domain.modules.Module`) or ``modules`` (a list of them).

YAML data modules describe options and values without code::

    name: web
    imports: [base.yaml, logging]
    options:
      services.web.port: {type: port, default: 8080}
      services.web.hosts: {type: "list_of(str, additive)"}
    config:
      services.web.port: !force 80
      services.web.hosts: !before [localhost]

Tags map onto the priority and ordering wrappers: ``!force``, ``!default``,
``!override {priority: N, value: V}``, ``!before`` and ``!after``.  Imports
that name a sibling ``.yaml``/``.yml``/``.py`` file are loaded relative to
the importing file; any other name is left for the module registry.
"""

from __future__ import annotations

import hashlib
import importlib.util
import logging
import sys
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.constructor import ConstructorError, SafeConstructor
from ruamel.yaml.error import YAMLError
from ruamel.yaml.nodes import MappingNode, ScalarNode, SequenceNode

from confix.domain.definitions import mk_after, mk_before, mk_default, mk_force, mk_override
from confix.domain.errors import ModuleLoadError
from confix.domain.modules import Module
from confix.domain.options import NO_DEFAULT, mk_option
from confix.domain.types import OptionType, parse_type

logger = logging.getLogger(__name__)

PYTHON_SUFFIXES = frozenset({".py"})
YAML_SUFFIXES = frozenset({".yaml", ".yml"})

_YAML_KEYS = frozenset({"name", "description", "imports", "disabled_modules", "options", "config"})
_OPTION_KEYS = frozenset(
    {"type", "default", "description", "example", "read_only", "deprecated", "internal"}
)


# ---------------------------------------------------------------------------
# YAML tags
# ---------------------------------------------------------------------------


class _ModuleConstructor(SafeConstructor):
    """Safe constructor that understands the priority/order tags."""


def _node_value(constructor: SafeConstructor, node: Any) -> Any:
    """Construct a tagged node as if it carried no tag."""
    if isinstance(node, MappingNode):
        return constructor.construct_mapping(node, deep=True)
    if isinstance(node, SequenceNode):
        return constructor.construct_sequence(node, deep=True)
    if not isinstance(node, ScalarNode):
        raise ConstructorError(None, None, f"unexpected YAML node {node!r}", node.start_mark)
    tag = constructor.resolver.resolve(ScalarNode, node.value, (node.style is None, False))
    return constructor.construct_non_recursive_object(node, tag=str(tag))


def _construct_force(constructor: SafeConstructor, node: Any) -> Any:
    return mk_force(_node_value(constructor, node))


def _construct_default(constructor: SafeConstructor, node: Any) -> Any:
    return mk_default(_node_value(constructor, node))


def _construct_before(constructor: SafeConstructor, node: Any) -> Any:
    return mk_before(_node_value(constructor, node))


def _construct_after(constructor: SafeConstructor, node: Any) -> Any:
    return mk_after(_node_value(constructor, node))


def _construct_override(constructor: SafeConstructor, node: Any) -> Any:
    data = _node_value(constructor, node)
    if not isinstance(data, Mapping) or set(data) != {"priority", "value"}:
        raise ConstructorError(
            None, None, "!override expects a mapping with 'priority' and 'value'", node.start_mark
        )
    try:
        return mk_override(data["priority"], data["value"])
    except (TypeError, ValueError) as exc:
        raise ConstructorError(None, None, str(exc), node.start_mark) from exc


_ModuleConstructor.add_constructor("!force", _construct_force)
_ModuleConstructor.add_constructor("!default", _construct_default)
_ModuleConstructor.add_constructor("!before", _construct_before)
_ModuleConstructor.add_constructor("!after", _construct_after)
_ModuleConstructor.add_constructor("!override", _construct_override)


def _new_yaml() -> YAML:
    """Create a fresh safe parser (YAML objects are stateful)."""
    y = YAML(typ="safe", pure=True)
    y.Constructor = _ModuleConstructor
    return y


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class ModuleLoader:
    """Load modules from files, caching each file by resolved path.

    Args:
        types: Extra named option types usable in YAML ``type`` expressions
            (typically contributed by plugins).
    """

    def __init__(self, types: Mapping[str, OptionType] | None = None) -> None:
        self._types = dict(types or {})
        self._cache: dict[Path, list[Module]] = {}
        self._loading: set[Path] = set()

    def load(self, path: Path) -> list[Module]:
        """Load one file, or every module file in a directory (sorted)."""
        if path.is_dir():
            modules: list[Module] = []
            for child in sorted(path.iterdir()):
                if child.name.startswith("_") or not child.is_file():
                    continue
                if child.suffix in PYTHON_SUFFIXES | YAML_SUFFIXES:
                    modules.extend(self.load(child))
            return modules
        if not path.is_file():
            raise ModuleLoadError(str(path), "no such file")
        if path.suffix in PYTHON_SUFFIXES:
            return self.load_python(path)
        if path.suffix in YAML_SUFFIXES:
            return self.load_yaml(path)
        raise ModuleLoadError(str(path), f"unsupported file type {path.suffix!r}")

    def load_all(self, paths: Iterable[Path]) -> list[Module]:
        modules: list[Module] = []
        for path in paths:
            modules.extend(self.load(path))
        return modules

    # ------------------------------------------------------------------
    # Python files
    # ------------------------------------------------------------------

    def load_python(self, path: Path) -> list[Module]:
        resolved = path.resolve()
        if resolved in self._cache:
            return self._cache[resolved]

        digest = hashlib.sha1(str(resolved).encode(), usedforsecurity=False).hexdigest()[:10]
        module_name = f"confix_module_{path.stem}_{digest}"
        spec = importlib.util.spec_from_file_location(module_name, resolved)
        if spec is None or spec.loader is None:
            raise ModuleLoadError(str(path), "could not create a module spec")
        py_module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = py_module
        try:
            spec.loader.exec_module(py_module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            raise ModuleLoadError(str(path), f"{type(exc).__name__}: {exc}") from exc

        if hasattr(py_module, "modules"):
            found = list(py_module.modules)
        elif hasattr(py_module, "module"):
            found = [py_module.module]
        else:
            raise ModuleLoadError(str(path), "defines neither `module' nor `modules'")
        for item in found:
            if not isinstance(item, Module):
                raise ModuleLoadError(str(path), f"{item!r} is not a Module")
            if item.source is None:
                item.source = str(path)

        logger.debug("Loaded %d module(s) from %s", len(found), path)
        self._cache[resolved] = found
        return found

    # ------------------------------------------------------------------
    # YAML files
    # ------------------------------------------------------------------

    def load_yaml(self, path: Path) -> list[Module]:
        resolved = path.resolve()
        if resolved in self._cache:
            return self._cache[resolved]
        if resolved in self._loading:
            raise ModuleLoadError(str(path), "circular file import")

        try:
            data = _new_yaml().load(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeError, YAMLError) as exc:
            raise ModuleLoadError(str(path), str(exc)) from exc
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ModuleLoadError(str(path), "top level must be a mapping")
        unknown = set(data) - _YAML_KEYS
        if unknown:
            raise ModuleLoadError(str(path), f"unknown keys {sorted(unknown)}")

        self._loading.add(resolved)
        try:
            imports = self._yaml_imports(path, data.get("imports") or [])
        finally:
            self._loading.discard(resolved)

        config = data.get("config")
        if config is not None and not isinstance(config, Mapping):
            raise ModuleLoadError(str(path), "`config' must be a mapping")

        module = Module(
            name=str(data.get("name") or path.stem),
            options=self._yaml_options(path, data.get("options") or {}),
            config=config,
            imports=imports,
            disabled_modules=[str(n) for n in data.get("disabled_modules") or []],
            source=str(path),
        )
        logger.debug("Loaded YAML module %s", module.origin)
        self._cache[resolved] = [module]
        return [module]

    def _yaml_imports(self, path: Path, entries: Any) -> list[Module | str]:
        if not isinstance(entries, list):
            raise ModuleLoadError(str(path), "`imports' must be a list")
        imports: list[Module | str] = []
        for entry in entries:
            name = str(entry)
            candidate = path.parent / name
            if candidate.suffix in PYTHON_SUFFIXES | YAML_SUFFIXES and candidate.is_file():
                imports.extend(self.load(candidate))
            else:
                imports.append(name)
        return imports

    def _yaml_options(self, path: Path, entries: Any) -> dict[str, Any]:
        if not isinstance(entries, Mapping):
            raise ModuleLoadError(str(path), "`options' must be a mapping")
        options: dict[str, Any] = {}
        for name, spec in entries.items():
            if isinstance(spec, str):
                spec = {"type": spec}
            if not isinstance(spec, Mapping) or "type" not in spec:
                raise ModuleLoadError(str(path), f"option {name!r} needs a `type'")
            extra = set(spec) - _OPTION_KEYS
            if extra:
                msg = f"option {name!r} has unknown keys {sorted(extra)}"
                raise ModuleLoadError(str(path), msg)
            try:
                option_type = parse_type(str(spec["type"]), self._types)
            except ValueError as exc:
                raise ModuleLoadError(str(path), str(exc)) from exc
            options[str(name)] = mk_option(
                option_type,
                default=spec.get("default", NO_DEFAULT),
                description=str(spec.get("description", "")),
                example=spec.get("example", NO_DEFAULT),
                read_only=bool(spec.get("read_only", False)),
                deprecated=spec.get("deprecated"),
                internal=bool(spec.get("internal", False)),
            )
        return options


def load_python_module(path: Path) -> list[Module]:
    """Load the module(s) defined by a Python file."""
    return ModuleLoader().load_python(path)


def load_yaml_module(path: Path, *, types: Mapping[str, OptionType] | None = None) -> list[Module]:
    """Load a YAML data module (and the sibling files it imports)."""
    return ModuleLoader(types).load_yaml(path)
