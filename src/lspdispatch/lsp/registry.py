"""Method name -> handler table."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from ..util.log import Log

log = Log.create({"service": "lsp.registry"})

Handler = Callable[..., Any]
Decorator = Callable[[Handler], Handler]


class HandlerRegistry:
    """Holds one handler per method.

    ``wrap_all`` replaces the table with a new read-only mapping of
    decorated handlers. From then on ``register`` decorates on insert, so
    the table never holds an undecorated handler once wrapped.
    """

    def __init__(self) -> None:
        self._handlers: Mapping[str, Handler] = MappingProxyType({})
        self._decorator: Optional[Decorator] = None

    @property
    def wrapped(self) -> bool:
        return self._decorator is not None

    def register(self, method: str, handler: Handler) -> None:
        if not callable(handler):
            raise TypeError(f"handler for {method} is not callable")
        if self._decorator is not None:
            handler = self._decorator(handler)
        if method in self._handlers:
            log.debug("replacing handler", {"method": method})
        self._handlers = MappingProxyType({**self._handlers, method: handler})

    def wrap_all(self, decorator: Decorator) -> None:
        """Decorate every registered handler exactly once.

        Repeating the call with the same decorator is a no-op; a second,
        different decorator is rejected.
        """
        if self._decorator is decorator:
            return
        if self._decorator is not None:
            raise RuntimeError("handlers are already wrapped")
        self._handlers = MappingProxyType({
            method: decorator(handler) for method, handler in self._handlers.items()
        })
        self._decorator = decorator
        log.debug("wrapped handlers", {"count": len(self._handlers)})

    def lookup(self, method: str) -> Optional[Handler]:
        return self._handlers.get(method)

    def methods(self) -> List[str]:
        return sorted(self._handlers)

    def __contains__(self, method: object) -> bool:
        return method in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    @classmethod
    def from_table(cls, table: Dict[str, Handler]) -> "HandlerRegistry":
        registry = cls()
        for method, handler in table.items():
            registry.register(method, handler)
        return registry
