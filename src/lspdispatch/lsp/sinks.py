"""Delivery targets for list requests.

Precedence, identical for every list-producing handler:

1. ``secondary_list`` set: fill and open the secondary (location) list.
2. ``on_list`` given: hand the raw ``ListRequest`` to the callback.
3. Otherwise: fill the primary (quickfix) list and open it bottom-right.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from ..core.config_schema import HandlerOptions
from ..util.log import Log
from .editor import Editor
from .items import Item, ListRequest
from .types import HandlerContext

log = Log.create({"service": "lsp.sinks"})

PRIMARY_LIST_SPLIT = "botright"


class ListSink(ABC):
    """Receives one ``ListRequest`` per dispatch."""

    @abstractmethod
    def deliver(self, request: ListRequest) -> None:
        raise NotImplementedError


class CallbackSink(ListSink):
    """Hands the request to a caller-supplied callback."""

    def __init__(self, callback: Callable[[ListRequest], Any]):
        if not callable(callback):
            raise TypeError("on_list is not a function")
        self.callback = callback

    def deliver(self, request: ListRequest) -> None:
        self.callback(request)


class SecondaryListSink(ListSink):
    def __init__(self, editor: Editor):
        self.editor = editor

    def deliver(self, request: ListRequest) -> None:
        self.editor.set_list(request, secondary=True)
        self.editor.open_list(secondary=True)


class PrimaryListSink(ListSink):
    def __init__(self, editor: Editor):
        self.editor = editor

    def deliver(self, request: ListRequest) -> None:
        self.editor.set_list(request, secondary=False)
        self.editor.open_list(secondary=False, split=PRIMARY_LIST_SPLIT)


def select_sink(options: HandlerOptions, editor: Editor) -> ListSink:
    if options.secondary_list:
        return SecondaryListSink(editor)
    if options.on_list is not None:
        return CallbackSink(options.on_list)
    return PrimaryListSink(editor)


def deliver_list(
    title: str,
    items: List[Item],
    ctx: Optional[HandlerContext],
    options: HandlerOptions,
    editor: Editor,
) -> ListSink:
    """Build the request, pick the sink by precedence and deliver."""
    sink = select_sink(options, editor)
    log.debug("delivering list", {
        "title": title,
        "count": len(items),
        "sink": type(sink).__name__,
    })
    sink.deliver(ListRequest(title=title, items=items, context=ctx))
    return sink
