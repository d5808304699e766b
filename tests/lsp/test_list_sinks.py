from __future__ import annotations

import pytest
from pydantic import ValidationError

from lspdispatch.core.config_schema import HandlerOptions
from lspdispatch.lsp.items import Item, ListRequest
from lspdispatch.lsp.sinks import (
    PRIMARY_LIST_SPLIT,
    CallbackSink,
    PrimaryListSink,
    SecondaryListSink,
    deliver_list,
    select_sink,
)
from lspdispatch.lsp.types import HandlerContext
from tests.helpers import FakeEditor

ITEMS = [Item(filename="/a.py", text="x", line=1, column=1)]
CTX = HandlerContext(method="textDocument/references", client_id=1, bufnr=1)


def test_secondary_list_wins_over_callback() -> None:
    editor = FakeEditor()
    received: list[ListRequest] = []
    options = HandlerOptions.coerce({"loclist": True, "on_list": received.append})

    sink = deliver_list("Refs", ITEMS, CTX, options, editor)

    assert isinstance(sink, SecondaryListSink)
    assert received == []
    assert editor.lists[0][1] is True
    assert editor.opened == [(True, None)]


def test_callback_receives_raw_request_and_no_list_opens() -> None:
    editor = FakeEditor()
    received: list[ListRequest] = []

    deliver_list("Refs", ITEMS, CTX, HandlerOptions.coerce({"on_list": received.append}), editor)

    assert received == [ListRequest(title="Refs", items=ITEMS, context=CTX)]
    assert editor.lists == []
    assert editor.opened == []


def test_primary_list_opens_in_fixed_split() -> None:
    editor = FakeEditor()

    sink = deliver_list("Refs", ITEMS, CTX, HandlerOptions(), editor)

    assert isinstance(sink, PrimaryListSink)
    request, secondary = editor.lists[0]
    assert secondary is False
    assert request.title == "Refs"
    assert request.context is CTX
    assert editor.opened == [(False, PRIMARY_LIST_SPLIT)]


def test_non_callable_on_list_fails_loudly() -> None:
    editor = FakeEditor()

    with pytest.raises(TypeError, match="on_list is not a function"):
        select_sink(HandlerOptions.coerce({"on_list": "not callable"}), editor)


def test_callback_sink_rejects_non_callable() -> None:
    with pytest.raises(TypeError):
        CallbackSink(42)  # type: ignore[arg-type]


def test_long_and_short_option_names_are_equivalent() -> None:
    short = HandlerOptions.coerce({"loclist": True, "reuse_win": True})
    long = HandlerOptions.coerce({"secondary_list": True, "reuse_window": True})

    assert short.secondary_list and long.secondary_list
    assert short.reuse_window and long.reuse_window


def test_invalid_option_type_raises_validation_error() -> None:
    with pytest.raises(ValidationError):
        HandlerOptions.coerce({"silent": {"not": "a bool"}})


def test_unknown_options_are_forwarded_to_preview() -> None:
    options = HandlerOptions.coerce({"border": "single", "focus_id": "hover"})

    assert options.preview() == {"border": "single", "focus_id": "hover"}
