"""Dynamic capability registrations of one connection."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from .protocol import DYNAMIC_REGISTRATION_PATHS


class RegistrationSet:
    """method -> active registrations, keyed by registration id.

    Args:
        client_capabilities: Capabilities the client advertised in
            ``initialize``; used to tell whether a method was announced
            as dynamically registrable.
    """

    def __init__(self, client_capabilities: Optional[Dict[str, Any]] = None):
        self.client_capabilities = client_capabilities or {}
        self._registrations: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def register(self, registrations: Iterable[Dict[str, Any]]) -> None:
        for reg in registrations:
            self._registrations.setdefault(reg["method"], {})[reg["id"]] = reg

    def unregister(self, unregistrations: Iterable[Dict[str, Any]]) -> None:
        for unreg in unregistrations:
            active = self._registrations.get(unreg["method"])
            if active is None:
                continue
            active.pop(unreg["id"], None)
            if not active:
                del self._registrations[unreg["method"]]

    def get(self, method: str) -> List[Dict[str, Any]]:
        return list(self._registrations.get(method, {}).values())

    def supports_registration(self, method: str) -> bool:
        """Whether the client announced ``dynamicRegistration`` for ``method``."""
        path = DYNAMIC_REGISTRATION_PATHS.get(method)
        if path is None:
            return False
        node: Any = self.client_capabilities
        for key in path:
            if not isinstance(node, dict):
                return False
            node = node.get(key)
        return isinstance(node, dict) and node.get("dynamicRegistration") is True

    def methods(self) -> List[str]:
        return sorted(self._registrations)
