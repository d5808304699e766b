"""Event bus for broadcasting protocol events to observers.

Events are defined once with a pydantic properties model and published
through the bus bound to the current context. A publish may carry a
routing ``pattern`` (for example the progress kind ``"begin"``) so that
observers can subscribe to one slice of an event stream.

Example:
    class ProgressProps(BaseModel):
        client_id: int
        params: Dict[str, Any]

    Progress = BusEvent.define("lsp.progress", ProgressProps)

    unsubscribe = Bus.subscribe(Progress, on_end, pattern="end")
    await Bus.publish(Progress, ProgressProps(...), pattern="end")
    unsubscribe()
"""

import traceback
from contextvars import ContextVar, Token
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel

T = TypeVar('T', bound=BaseModel)

# Lazy logger to avoid circular imports
_log: Optional[Any] = None


def _get_log():
    global _log
    if _log is None:
        from ..util.log import Log
        _log = Log.create({"service": "bus"})
    return _log


class BusEvent(Generic[T]):
    """Event definition: a unique type string plus its properties model."""

    def __init__(self, event_type: str, properties_type: type[T]):
        self.type = event_type
        self.properties_type = properties_type

    @staticmethod
    def define(event_type: str, properties_type: type[T]) -> 'BusEvent[T]':
        """Define and register a new event type."""
        event = BusEvent(event_type, properties_type)
        _registry[event_type] = event
        return event


# Global event registry for introspection
_registry: Dict[str, BusEvent] = {}


class EventPayload(BaseModel):
    """Payload structure delivered to event subscribers.

    Attributes:
        type: Event type identifier
        pattern: Routing key the event was published with, if any
        properties: Event properties as a dictionary
    """
    type: str
    pattern: Optional[str] = None
    properties: Dict[str, Any]


SubscriptionCallback = Callable[[EventPayload], Union[None, Awaitable[None]]]


def _key(event_type: str, pattern: Optional[str]) -> str:
    return event_type if pattern is None else f"{event_type}:{pattern}"


_bus_var: ContextVar['Bus'] = ContextVar('_bus_var')


class Bus:
    """Event bus for publishing and subscribing to events.

    ContextVar-backed: the owner of a dispatch loop provides a Bus
    instance and class methods resolve it transparently.
    """

    def __init__(self) -> None:
        self._subscriptions: Dict[str, List[SubscriptionCallback]] = {}

    @classmethod
    def _current(cls) -> 'Bus':
        try:
            return _bus_var.get()
        except LookupError:
            raise RuntimeError("No Bus is bound to the current context")

    @classmethod
    def provide(cls, bus: 'Bus') -> Token['Bus']:
        return _bus_var.set(bus)

    @classmethod
    def restore(cls, token: Token['Bus']) -> None:
        _bus_var.reset(token)

    @classmethod
    async def publish(
        cls,
        event: BusEvent[T],
        properties: T,
        pattern: Optional[str] = None,
    ) -> None:
        if not isinstance(properties, event.properties_type):
            if isinstance(properties, dict):
                properties = event.properties_type(**properties)
            else:
                raise TypeError(
                    f"Properties must be instance of {event.properties_type.__name__}"
                )

        payload = EventPayload(
            type=event.type,
            pattern=pattern,
            properties=properties.model_dump(),
        )

        bus = cls._current()
        keys = [event.type, "*"]
        if pattern is not None:
            keys.insert(0, _key(event.type, pattern))

        callbacks: List[SubscriptionCallback] = []
        for key in keys:
            callbacks.extend(bus._subscriptions.get(key, []))

        for callback in callbacks:
            try:
                result = callback(payload)
                if hasattr(result, '__await__'):
                    await result
            except Exception as e:
                _get_log().error("subscription callback failed", {
                    "error": str(e),
                    "type": event.type,
                    "pattern": pattern,
                    "traceback": traceback.format_exc(),
                })

    @classmethod
    def subscribe(
        cls,
        event: BusEvent[T],
        callback: SubscriptionCallback,
        pattern: Optional[str] = None,
    ) -> Callable[[], None]:
        """Subscribe to ``event``; with ``pattern`` only matching publishes arrive."""
        return cls._current()._raw_subscribe(_key(event.type, pattern), callback)

    @classmethod
    def subscribe_all(cls, callback: SubscriptionCallback) -> Callable[[], None]:
        return cls._current()._raw_subscribe("*", callback)

    def _raw_subscribe(
        self,
        key: str,
        callback: SubscriptionCallback,
    ) -> Callable[[], None]:
        self._subscriptions.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            subs = self._subscriptions.get(key, [])
            if callback in subs:
                subs.remove(callback)

        return unsubscribe

    def clear(self) -> None:
        self._subscriptions.clear()
