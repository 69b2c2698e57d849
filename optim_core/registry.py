"""Explicit lookup tables for modules and providers.

Registries are built once at startup and passed to whatever needs lookup by
id. Nothing registers at import time.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any, Generic, TypeVar

from .chat import ChatModule
from .errors import UnknownEntryError
from .module import BaseModule
from .schemas import CompiledArtifact
from .tool_router import ToolRouterModule

T = TypeVar("T")

AnyModule = BaseModule[Any, Any]


class Registry(Generic[T]):
    def __init__(self, key: Callable[[T], str], kind: str = "Entry") -> None:
        self._key = key
        self._kind = kind
        self._entries: dict[str, T] = {}

    def register(self, entry: T) -> T:
        self._entries[self._key(entry)] = entry
        return entry

    def get(self, entry_id: str) -> T:
        try:
            return self._entries[entry_id]
        except KeyError:
            raise UnknownEntryError(f'{self._kind} "{entry_id}" not found') from None

    def ids(self) -> list[str]:
        return list(self._entries)

    def all(self) -> list[T]:
        return list(self._entries.values())

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __iter__(self) -> Iterator[T]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


class ModuleRegistry(Registry[AnyModule]):
    def __init__(self, modules: Iterable[AnyModule] = ()) -> None:
        super().__init__(key=lambda module: module.id, kind="Module")
        for module in modules:
            self.register(module)

    def load_compiled(self, module_id: str, artifact: CompiledArtifact) -> AnyModule:
        module = self.get(module_id)
        module.compile(artifact)
        return module


def build_module_registry() -> ModuleRegistry:
    """Registry holding one instance of every known module variant."""
    return ModuleRegistry([ChatModule(), ToolRouterModule()])
