"""Interfaces of the collaborators handlers talk to.

The editing surface, the list UI, the floating preview, the picker, the
file watcher and the per-feature engines live outside this package.
Handlers only see the protocols below.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from .items import ListRequest
from .position import OffsetEncoding
from .types import HandlerContext


class NotifyLevel(IntEnum):
    """Severity of a user-visible notice."""
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4


class Editor(Protocol):
    """Editing surface, list UI, preview and picker."""

    # notices
    def notify(self, message: str, level: NotifyLevel = NotifyLevel.INFO) -> None: ...

    def echo(self, message: str) -> None: ...

    # documents
    def current_buffer(self) -> int: ...

    def filetype(self, bufnr: int) -> str: ...

    def get_line(self, filename: str, row: int) -> str: ...

    def cursor(self) -> Tuple[int, int]:
        """(1-based row, 0-based byte column) of the cursor in the current window."""
        ...

    def current_line(self) -> str: ...

    def apply_workspace_edit(self, edit: Dict[str, Any], offset_encoding: OffsetEncoding) -> None: ...

    def apply_text_edits(
        self,
        edits: List[Dict[str, Any]],
        bufnr: Optional[int],
        offset_encoding: OffsetEncoding,
    ) -> None: ...

    def highlight_references(
        self,
        bufnr: Optional[int],
        references: List[Dict[str, Any]],
        offset_encoding: OffsetEncoding,
    ) -> None: ...

    def apply_client_defaults(self, client_id: int, bufnr: int) -> None: ...

    def complete(self, start_column: int, matches: List[Dict[str, Any]]) -> None: ...

    # navigation
    def jump_to_location(
        self,
        location: Dict[str, Any],
        offset_encoding: OffsetEncoding,
        reuse_window: bool = False,
    ) -> bool: ...

    def show_document(
        self,
        location: Dict[str, Any],
        offset_encoding: OffsetEncoding,
        *,
        reuse_window: bool,
        focus: bool,
    ) -> bool: ...

    def open_external(self, uri: str) -> Tuple[bool, Optional[str]]:
        """Open ``uri`` with the system handler; returns (ok, error message)."""
        ...

    # lists
    def set_list(self, request: ListRequest, *, secondary: bool) -> None: ...

    def open_list(self, *, secondary: bool, split: Optional[str] = None) -> None: ...

    # preview
    def open_floating_preview(
        self,
        lines: List[str],
        syntax: str,
        options: Dict[str, Any],
        highlight: Optional[Tuple[int, int, int]] = None,
    ) -> Any: ...

    # picker
    def select(
        self,
        items: Sequence[Any],
        prompt: str,
        format_item: Callable[[Any], str],
        on_choice: Callable[[Optional[Any]], None],
    ) -> None: ...

    def input_list(self, lines: List[str]) -> int:
        """Show numbered ``lines`` and block for a choice; 0 or out of range means none."""
        ...


class FileWatcher(Protocol):
    """Receives ``workspace/didChangeWatchedFiles`` (un)registrations verbatim."""

    def register(self, registration: Dict[str, Any], ctx: HandlerContext) -> None: ...

    def unregister(self, unregistration: Dict[str, Any], ctx: HandlerContext) -> None: ...


Handler = Callable[[Any, Any, HandlerContext, Any], Any]


class Features(Protocol):
    """Engines for diagnostics, code lens, inlay hints and semantic tokens.

    Each method has the handler calling convention and is registered as
    the handler of its method.
    """

    def on_publish_diagnostics(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> Any: ...

    def on_diagnostic(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> Any: ...

    def on_codelens(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> Any: ...

    def on_inlay_hint(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> Any: ...

    def on_inlay_hint_refresh(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> Any: ...

    def on_semantic_tokens_refresh(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> Any: ...
