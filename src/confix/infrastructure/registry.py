"""Named module registry used to resolve string imports."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping

from confix.domain.modules import Module

logger = logging.getLogger(__name__)


class ModuleRegistry(Mapping[str, Module]):
    """Modules addressable by name (from plugins and loaded files).

    A name can be bound once; registering a *different* module under a
    bound name raises ``ValueError`` unless ``replace=True``.
    """

    def __init__(self, modules: Iterable[Module] = ()) -> None:
        self._modules: dict[str, Module] = {}
        self.register_all(modules)

    def register(self, module: Module, *, replace: bool = False) -> None:
        existing = self._modules.get(module.name)
        if existing is not None and existing is not module and not replace:
            msg = (
                f"Module name {module.name!r} is already registered "
                f"by {existing.origin}; cannot register {module.origin}"
            )
            raise ValueError(msg)
        self._modules[module.name] = module
        logger.debug("Registered module %s", module.origin)

    def register_all(self, modules: Iterable[Module], *, replace: bool = False) -> None:
        for module in modules:
            self.register(module, replace=replace)

    def __getitem__(self, name: str) -> Module:
        return self._modules[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._modules)

    def __len__(self) -> int:
        return len(self._modules)

    def names(self) -> list[str]:
        return sorted(self._modules)

    def __repr__(self) -> str:
        return f"ModuleRegistry({self.names()!r})"
