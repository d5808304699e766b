"""Routing of inbound messages to handlers.

Every handler in a registry is wrapped by ``intercept_errors``. The
wrapper is the only place a transport-level ``ResponseError`` is looked
at: "content modified" errors are dropped silently, every other error is
shown once as ``"<client name>: <code>: <message>"`` and the handler is
skipped.
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from ..core.config_schema import HandlerOptions
from ..util.log import Log, LogLevel
from .editor import NotifyLevel
from .protocol import ErrorCodes
from .registry import Decorator, Handler, HandlerRegistry
from .types import HandlerContext, decode_error

if TYPE_CHECKING:
    from .client import Clients
    from .editor import Editor

log = Log.create({"service": "lsp.dispatch"})


class NoHandlerError(LookupError):
    """Raised when a message arrives for a method nobody handles."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"no handler registered for {method}")


async def _call(handler: Handler, *args: Any) -> Any:
    value = handler(*args)
    if hasattr(value, "__await__"):
        value = await value
    return value


def intercept_errors(clients: "Clients", editor: "Editor") -> Decorator:
    """Build the decorator applied to every registered handler."""

    def decorate(fn: Handler) -> Handler:
        @functools.wraps(fn)
        async def handler(err: Any, result: Any, ctx: HandlerContext, config: Any = None) -> Any:
            if log.enabled(LogLevel.TRACE):
                log.trace("default_handler", {
                    "method": ctx.method,
                    "err": err if not hasattr(err, "model_dump") else err.model_dump(),
                    "result": result,
                    "ctx": repr(ctx),
                    "config": repr(config),
                })

            error = decode_error(err)
            if error is not None:
                if error.code != ErrorCodes.ContentModified:
                    name = clients.display_name(ctx.client_id)
                    editor.notify(f"{name}: {error.code}: {error.message}", NotifyLevel.ERROR)
                return None

            return await _call(fn, err, result, ctx, config)

        return handler

    return decorate


def merge_options(defaults: Optional[Mapping[str, Any]], config: Any) -> Any:
    """Overlay call-site options on handler defaults.

    Both sides are normalized through ``HandlerOptions`` so the short and
    long option names merge onto the same keys.
    """
    if not defaults:
        return config
    merged: Dict[str, Any] = HandlerOptions.coerce(defaults).model_dump(exclude_unset=True)
    if config is not None:
        merged.update(HandlerOptions.coerce(config).model_dump(exclude_unset=True))
    return merged


OPTION_NAMES = frozenset(
    [*HandlerOptions.model_fields]
    + [f.alias for f in HandlerOptions.model_fields.values() if f.alias]
)


def with_config(handler: Handler, **defaults: Any) -> Handler:
    """Return ``handler`` with ``defaults`` applied under every call's config.

    Call-site keys must be handler options or one of ``defaults``.

    Raises:
        ValueError: On any other call-site key
    """
    name = getattr(handler, "__name__", type(handler).__name__)

    @functools.wraps(handler)
    def configured(err: Any, result: Any, ctx: HandlerContext, config: Any = None) -> Any:
        if isinstance(config, Mapping):
            for key in config:
                if key not in defaults and key not in OPTION_NAMES:
                    raise ValueError(f"Invalid option for `{name}`: {key}")
        return handler(err, result, ctx, merge_options(defaults, config))

    return configured


class Dispatcher:
    """Looks up and invokes the handler for a message.

    Args:
        registry: Handler table; expected to be wrapped already
        defaults: method -> default handler options (the ``handlers``
            section of the configuration)
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        defaults: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ):
        if not registry.wrapped:
            log.warn("dispatching through an unwrapped handler registry", {"methods": len(registry)})
        self.registry = registry
        self.defaults = dict(defaults or {})

    async def dispatch(
        self,
        err: Any,
        result: Any,
        ctx: HandlerContext,
        config: Any = None,
    ) -> Any:
        """Run the handler of ``ctx.method`` and return its reply verbatim.

        Raises:
            NoHandlerError: If no handler is registered for the method
        """
        handler = self.registry.lookup(ctx.method)
        if handler is None:
            log.warn("no handler registered", {"method": ctx.method, "client_id": ctx.client_id})
            raise NoHandlerError(ctx.method)

        log.debug("dispatching", {"method": ctx.method, "client_id": ctx.client_id})
        return await _call(handler, err, result, ctx, merge_options(self.defaults.get(ctx.method), config))
