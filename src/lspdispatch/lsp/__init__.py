"""Language Server Protocol message dispatch.

Routes server messages and request responses to per-method handlers,
tracks work-done progress, and turns list-shaped results into items for
the editor's list UI.

Example:
    from lspdispatch.lsp import Clients, Dispatcher, HandlerEnv, default_handlers

    clients = Clients()
    client = clients.create("pyright", settings={"python": {"analysis": {}}})
    registry = default_handlers(HandlerEnv(clients, editor, FeatureStore(), make_prompt(editor)))
    dispatcher = Dispatcher(registry)

    # Route a response through the handler of its method
    await dispatcher.dispatch(None, result, HandlerContext("textDocument/definition", client.id, bufnr=1))
"""

from .client import Client, Clients
from .dispatcher import Dispatcher, NoHandlerError, intercept_errors, with_config
from .features import FeatureStore
from .handlers import DefaultHandlers, HandlerEnv, default_handlers
from .items import Item, ListRequest
from .progress import LspProgress, ProgressLedger
from .prompt import make_prompt
from .protocol import NULL, Methods
from .registry import HandlerRegistry
from .types import HandlerContext, ResponseError

__all__ = [
    "Client",
    "Clients",
    "DefaultHandlers",
    "Dispatcher",
    "FeatureStore",
    "HandlerContext",
    "HandlerEnv",
    "HandlerRegistry",
    "Item",
    "ListRequest",
    "LspProgress",
    "Methods",
    "NULL",
    "NoHandlerError",
    "ProgressLedger",
    "ResponseError",
    "default_handlers",
    "intercept_errors",
    "make_prompt",
    "with_config",
]
