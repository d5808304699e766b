from __future__ import annotations

from typing import Any, List

import pytest

from lspdispatch.lsp.client import Clients
from lspdispatch.lsp.dispatcher import Dispatcher, NoHandlerError, intercept_errors, merge_options, with_config
from lspdispatch.lsp.editor import NotifyLevel
from lspdispatch.lsp.protocol import NULL, ErrorCodes
from lspdispatch.lsp.registry import HandlerRegistry
from lspdispatch.lsp.types import HandlerContext, ResponseError
from lspdispatch.util.log import Log, LogFormat, LogLevel
from tests.helpers import FakeEditor


class _Recorder:
    def __init__(self, reply: Any = None) -> None:
        self.calls: List[tuple] = []
        self.reply = reply

    def __call__(self, err, result, ctx, config):  # type: ignore[no-untyped-def]
        self.calls.append((err, result, ctx, config))
        return self.reply


def _setup(reply: Any = None):  # type: ignore[no-untyped-def]
    clients = Clients()
    client = clients.create("pyright")
    editor = FakeEditor()
    handler = _Recorder(reply)
    registry = HandlerRegistry.from_table({"textDocument/hover": handler})
    registry.wrap_all(intercept_errors(clients, editor))
    ctx = HandlerContext(method="textDocument/hover", client_id=client.id, bufnr=1)
    return clients, editor, handler, Dispatcher(registry), ctx


@pytest.mark.anyio
async def test_content_modified_is_dropped_silently() -> None:
    _, editor, handler, dispatcher, ctx = _setup()
    err = ResponseError(code=ErrorCodes.ContentModified, message="content modified")

    assert await dispatcher.dispatch(err, None, ctx) is None

    assert handler.calls == []
    assert editor.notices == []


@pytest.mark.anyio
async def test_other_error_emits_one_notice_and_skips_handler() -> None:
    _, editor, handler, dispatcher, ctx = _setup()

    await dispatcher.dispatch({"code": -32603, "message": "boom"}, None, ctx)

    assert handler.calls == []
    assert editor.notices == [("pyright: -32603: boom", NotifyLevel.ERROR)]


@pytest.mark.anyio
async def test_error_from_closed_connection_uses_fallback_name() -> None:
    clients, editor, _, dispatcher, ctx = _setup()
    clients.remove(ctx.client_id)

    await dispatcher.dispatch(ResponseError(code=-32001, message="gone"), None, ctx)

    assert editor.notices == [(f"client_id={ctx.client_id}: -32001: gone", NotifyLevel.ERROR)]


@pytest.mark.anyio
async def test_success_propagates_reply_unchanged() -> None:
    _, editor, handler, dispatcher, ctx = _setup(reply=NULL)

    reply = await dispatcher.dispatch(None, {"contents": "x"}, ctx, {"silent": True})

    assert reply is NULL
    assert handler.calls == [(None, {"contents": "x"}, ctx, {"silent": True})]
    assert editor.notices == []


@pytest.mark.anyio
async def test_async_handlers_are_awaited() -> None:
    clients = Clients()
    registry = HandlerRegistry()

    async def handler(err, result, ctx, config):  # type: ignore[no-untyped-def]
        return result * 2

    registry.register("x", handler)
    registry.wrap_all(intercept_errors(clients, FakeEditor()))

    assert await Dispatcher(registry).dispatch(None, 21, HandlerContext("x", 1)) == 42


@pytest.mark.anyio
async def test_unknown_method_raises_no_handler_error() -> None:
    *_, dispatcher, _ = _setup()

    with pytest.raises(NoHandlerError) as excinfo:
        await dispatcher.dispatch(None, None, HandlerContext("nope/method", 1))

    assert excinfo.value.method == "nope/method"
    assert isinstance(excinfo.value, LookupError)


@pytest.mark.anyio
async def test_configured_defaults_merge_under_call_site_config() -> None:
    clients = Clients()
    handler = _Recorder()
    registry = HandlerRegistry.from_table({"m": handler})
    registry.wrap_all(intercept_errors(clients, FakeEditor()))
    dispatcher = Dispatcher(registry, {"m": {"loclist": True, "silent": True}})

    await dispatcher.dispatch(None, [], HandlerContext("m", 1), {"silent": False})

    config = handler.calls[0][3]
    assert config["secondary_list"] is True
    assert config["silent"] is False


def test_merge_options_without_defaults_returns_config() -> None:
    config = {"silent": True}

    assert merge_options(None, config) is config


def test_with_config_overlays_call_site_values() -> None:
    handler = _Recorder()
    configured = with_config(handler, reuse_win=True, border="single")

    configured(None, None, HandlerContext("m", 1), {"border": "rounded"})

    config = handler.calls[0][3]
    assert config["reuse_window"] is True
    assert config["border"] == "rounded"


def _options_handler(calls: List[Any]):  # type: ignore[no-untyped-def]
    def hover(err, result, ctx, config):  # type: ignore[no-untyped-def]
        calls.append(config)

    return hover


def test_with_config_passes_defaults_without_call_site_config() -> None:
    calls: List[Any] = []

    with_config(_options_handler(calls), hello="world")(None, None, HandlerContext("m", 1))

    assert calls == [{"hello": "world"}]


def test_with_config_call_site_keys_override_defaults() -> None:
    calls: List[Any] = []

    with_config(_options_handler(calls), other=True, hello="world")(
        None, None, HandlerContext("m", 1), {"hello": "universe"}
    )

    assert calls == [{"hello": "universe", "other": True}]


def test_with_config_rejects_unknown_keys() -> None:
    calls: List[Any] = []
    configured = with_config(_options_handler(calls), hello="world")

    with pytest.raises(ValueError, match="Invalid option for `hover`: invalid"):
        configured(None, None, HandlerContext("m", 1), {"invalid": True})

    assert calls == []


def test_with_config_accepts_handler_option_names() -> None:
    calls: List[Any] = []

    with_config(_options_handler(calls), border="single")(
        None, None, HandlerContext("m", 1), {"loclist": True, "silent": True}
    )

    assert calls[0]["secondary_list"] is True
    assert calls[0]["silent"] is True
    assert calls[0]["border"] == "single"


@pytest.mark.anyio
async def test_trace_record_emitted_only_when_enabled(capsys) -> None:  # type: ignore[no-untyped-def]
    *_, dispatcher, ctx = _setup()

    Log.configure(level=LogLevel.DEBUG, format=LogFormat.KV, console=True, file=False)
    await dispatcher.dispatch(None, {"contents": "a"}, ctx)
    assert "default_handler" not in capsys.readouterr().err

    Log.configure(level=LogLevel.TRACE)
    await dispatcher.dispatch(None, {"contents": "a"}, ctx)
    stderr = capsys.readouterr().err
    assert "msg=default_handler" in stderr
    assert "method=textDocument/hover" in stderr


def test_unwrapped_registry_is_reported(capsys) -> None:  # type: ignore[no-untyped-def]
    Log.configure(level=LogLevel.WARN, format=LogFormat.KV, console=True, file=False)

    Dispatcher(HandlerRegistry.from_table({"m": _Recorder()}))
    _setup()

    stderr = capsys.readouterr().err
    assert stderr.count("unwrapped handler registry") == 1
