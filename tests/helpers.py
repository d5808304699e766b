"""Shared test helpers."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from lspdispatch.lsp.client import Client, Clients
from lspdispatch.lsp.editor import NotifyLevel
from lspdispatch.lsp.features import FeatureStore
from lspdispatch.lsp.handlers import HandlerEnv, default_handlers
from lspdispatch.lsp.dispatcher import Dispatcher
from lspdispatch.lsp.items import ListRequest
from lspdispatch.lsp.prompt import InteractivePrompt, make_prompt
from lspdispatch.lsp.types import HandlerContext


class FakeEditor:
    """Editor surface recording every call."""

    def __init__(
        self,
        *,
        lines: Optional[Dict[str, List[str]]] = None,
        bufnr: int = 1,
        cursor: Tuple[int, int] = (1, 0),
        current_line: str = "",
        choice: Any = None,
        input_choice: int = 0,
        fail_edits: bool = False,
    ) -> None:
        self.lines = lines or {}
        self.bufnr = bufnr
        self._cursor = cursor
        self._current_line = current_line
        self.choice = choice
        self.input_choice = input_choice
        self.fail_edits = fail_edits

        self.notices: List[Tuple[str, NotifyLevel]] = []
        self.echoes: List[str] = []
        self.jumps: List[Tuple[Dict[str, Any], str, bool]] = []
        self.shown: List[Dict[str, Any]] = []
        self.lists: List[Tuple[ListRequest, bool]] = []
        self.opened: List[Tuple[bool, Optional[str]]] = []
        self.previews: List[Dict[str, Any]] = []
        self.edits: List[Dict[str, Any]] = []
        self.text_edits: List[Tuple[List[Dict[str, Any]], Optional[int], str]] = []
        self.highlights: List[Tuple[Optional[int], List[Dict[str, Any]], str]] = []
        self.defaults: List[Tuple[int, int]] = []
        self.completions: List[Tuple[int, List[Dict[str, Any]]]] = []
        self.selects: List[Dict[str, Any]] = []
        self.input_lists: List[List[str]] = []
        self.external: List[str] = []
        self.external_result: Tuple[bool, Optional[str]] = (True, None)

    def notify(self, message: str, level: NotifyLevel = NotifyLevel.INFO) -> None:
        self.notices.append((message, level))

    def echo(self, message: str) -> None:
        self.echoes.append(message)

    def current_buffer(self) -> int:
        return self.bufnr

    def filetype(self, bufnr: int) -> str:
        return "python"

    def get_line(self, filename: str, row: int) -> str:
        rows = self.lines.get(filename, [])
        return rows[row] if 0 <= row < len(rows) else ""

    def cursor(self) -> Tuple[int, int]:
        return self._cursor

    def current_line(self) -> str:
        return self._current_line

    def apply_workspace_edit(self, edit: Dict[str, Any], offset_encoding: str) -> None:
        if self.fail_edits:
            raise RuntimeError("document changed")
        self.edits.append(edit)

    def apply_text_edits(self, edits: List[Dict[str, Any]], bufnr: Optional[int], offset_encoding: str) -> None:
        self.text_edits.append((edits, bufnr, offset_encoding))

    def highlight_references(self, bufnr: Optional[int], references: List[Dict[str, Any]], offset_encoding: str) -> None:
        self.highlights.append((bufnr, references, offset_encoding))

    def apply_client_defaults(self, client_id: int, bufnr: int) -> None:
        self.defaults.append((client_id, bufnr))

    def complete(self, start_column: int, matches: List[Dict[str, Any]]) -> None:
        self.completions.append((start_column, matches))

    def jump_to_location(self, location: Dict[str, Any], offset_encoding: str, reuse_window: bool = False) -> bool:
        self.jumps.append((location, offset_encoding, reuse_window))
        return True

    def show_document(self, location: Dict[str, Any], offset_encoding: str, *, reuse_window: bool, focus: bool) -> bool:
        self.shown.append({"location": location, "reuse_window": reuse_window, "focus": focus})
        return True

    def open_external(self, uri: str) -> Tuple[bool, Optional[str]]:
        self.external.append(uri)
        return self.external_result

    def set_list(self, request: ListRequest, *, secondary: bool) -> None:
        self.lists.append((request, secondary))

    def open_list(self, *, secondary: bool, split: Optional[str] = None) -> None:
        self.opened.append((secondary, split))

    def open_floating_preview(
        self,
        lines: List[str],
        syntax: str,
        options: Dict[str, Any],
        highlight: Optional[Tuple[int, int, int]] = None,
    ) -> Any:
        self.previews.append({"lines": lines, "syntax": syntax, "options": options, "highlight": highlight})
        return "preview"

    def select(
        self,
        items: Sequence[Any],
        prompt: str,
        format_item: Callable[[Any], str],
        on_choice: Callable[[Optional[Any]], None],
    ) -> None:
        self.selects.append({"items": [format_item(i) for i in items], "prompt": prompt})
        on_choice(self.choice)

    def input_list(self, lines: List[str]) -> int:
        self.input_lists.append(lines)
        return self.input_choice


class FakeWatcher:
    def __init__(self) -> None:
        self.registered: List[Tuple[Dict[str, Any], HandlerContext]] = []
        self.unregistered: List[Tuple[Dict[str, Any], HandlerContext]] = []

    def register(self, registration: Dict[str, Any], ctx: HandlerContext) -> None:
        self.registered.append((registration, ctx))

    def unregister(self, unregistration: Dict[str, Any], ctx: HandlerContext) -> None:
        self.unregistered.append((unregistration, ctx))


class Harness:
    """One connection, the default handlers and recording fakes."""

    def __init__(
        self,
        editor: Optional[FakeEditor] = None,
        *,
        prompt: Optional[InteractivePrompt] = None,
        defaults: Optional[Dict[str, Dict[str, Any]]] = None,
        **client_kwargs: Any,
    ) -> None:
        self.editor = editor or FakeEditor()
        self.clients = Clients()
        self.client: Client = self.clients.create("fake-ls", **client_kwargs)
        self.watcher = FakeWatcher()
        self.features = FeatureStore()
        self.env = HandlerEnv(
            clients=self.clients,
            editor=self.editor,
            features=self.features,
            prompt=prompt or make_prompt(self.editor),
            watcher=self.watcher,
            get_line=self.editor.get_line,
        )
        self.registry = default_handlers(self.env)
        self.dispatcher = Dispatcher(self.registry, defaults)

    def ctx(self, method: str, params: Any = None, *, bufnr: Optional[int] = 1, client_id: Optional[int] = None) -> HandlerContext:
        return HandlerContext(
            method=method,
            client_id=self.client.id if client_id is None else client_id,
            bufnr=bufnr,
            params=params,
        )

    async def dispatch(self, method: str, result: Any, *, err: Any = None, config: Any = None, **ctx_kwargs: Any) -> Any:
        return await self.dispatcher.dispatch(err, result, self.ctx(method, **ctx_kwargs), config)


def location(uri: str, line: int, character: int = 0) -> Dict[str, Any]:
    pos = {"line": line, "character": character}
    return {"uri": uri, "range": {"start": pos, "end": pos}}
