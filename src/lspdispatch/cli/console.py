"""Terminal editor surface used by the CLI.

Nothing is edited on disk: edits, jumps and highlights are printed so a
replayed session shows what an editor would have done.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import IntPrompt
from rich.table import Table
from rich.text import Text

from ..lsp.editor import NotifyLevel
from ..lsp.items import ListRequest
from ..lsp.position import FileLines, LineGetter, OffsetEncoding, byte_index, uri_to_fname
from ..util.log import Log

log = Log.create({"service": "cli.console"})

LEVEL_STYLES = {
    NotifyLevel.TRACE: "dim",
    NotifyLevel.DEBUG: "dim",
    NotifyLevel.INFO: "",
    NotifyLevel.WARN: "yellow",
    NotifyLevel.ERROR: "red",
}


class ConsoleEditor:
    """``Editor`` implementation printing to a rich ``Console``.

    Args:
        console: Output console
        get_line: Source line reader; reads files from disk when unset
        bufnr: Handle reported as the current document
    """

    def __init__(
        self,
        console: Console,
        *,
        get_line: Optional[LineGetter] = None,
        bufnr: int = 0,
    ):
        self.console = console
        self.get_line = get_line or FileLines()
        self.bufnr = bufnr
        self.lists: Dict[bool, ListRequest] = {}

    def notify(self, message: str, level: NotifyLevel = NotifyLevel.INFO) -> None:
        self.console.print(Text(message, style=LEVEL_STYLES.get(level, "")))

    def echo(self, message: str) -> None:
        self.console.print(Text(message))

    def current_buffer(self) -> int:
        return self.bufnr

    def filetype(self, bufnr: int) -> str:
        return ""

    def cursor(self) -> Tuple[int, int]:
        return 1, 0

    def current_line(self) -> str:
        return ""

    def _position(self, location: Dict[str, Any], offset_encoding: OffsetEncoding) -> str:
        uri = location.get("uri") or location.get("targetUri", "")
        rng = location.get("range") or location.get("targetSelectionRange")
        filename = uri_to_fname(uri)
        if not rng:
            return filename
        start = rng["start"]
        line = self.get_line(filename, start["line"])
        column = byte_index(line, start["character"], offset_encoding) + 1
        return f"{filename}:{start['line'] + 1}:{column}"

    def apply_workspace_edit(self, edit: Dict[str, Any], offset_encoding: OffsetEncoding) -> None:
        changes = edit.get("changes") or {}
        document_changes = edit.get("documentChanges") or []
        for uri, edits in changes.items():
            self.console.print(f"[cyan]edit[/cyan] {uri_to_fname(uri)} ({len(edits)} changes)")
        for change in document_changes:
            if "textDocument" in change:
                uri = change["textDocument"]["uri"]
                self.console.print(
                    f"[cyan]edit[/cyan] {uri_to_fname(uri)} ({len(change.get('edits') or [])} changes)"
                )
            else:
                self.console.print(f"[cyan]{change.get('kind', 'change')}[/cyan] {change.get('uri', '')}")

    def apply_text_edits(
        self,
        edits: List[Dict[str, Any]],
        bufnr: Optional[int],
        offset_encoding: OffsetEncoding,
    ) -> None:
        self.console.print(f"[cyan]format[/cyan] buffer {bufnr} ({len(edits)} edits)")

    def highlight_references(
        self,
        bufnr: Optional[int],
        references: List[Dict[str, Any]],
        offset_encoding: OffsetEncoding,
    ) -> None:
        self.console.print(f"[cyan]highlight[/cyan] buffer {bufnr} ({len(references)} references)")

    def apply_client_defaults(self, client_id: int, bufnr: int) -> None:
        log.debug("client defaults", {"client_id": client_id, "bufnr": bufnr})

    def complete(self, start_column: int, matches: List[Dict[str, Any]]) -> None:
        table = Table(title=f"Completion (column {start_column})")
        table.add_column("Word", style="cyan")
        table.add_column("Kind")
        table.add_column("Detail", style="dim")
        for match in matches:
            table.add_row(match["word"], match["kind"], match["menu"])
        self.console.print(table)

    def jump_to_location(
        self,
        location: Dict[str, Any],
        offset_encoding: OffsetEncoding,
        reuse_window: bool = False,
    ) -> bool:
        self.console.print(f"[green]jump[/green] {self._position(location, offset_encoding)}")
        return True

    def show_document(
        self,
        location: Dict[str, Any],
        offset_encoding: OffsetEncoding,
        *,
        reuse_window: bool,
        focus: bool,
    ) -> bool:
        verb = "show" if focus else "open"
        self.console.print(f"[green]{verb}[/green] {self._position(location, offset_encoding)}")
        return True

    def open_external(self, uri: str) -> Tuple[bool, Optional[str]]:
        code = typer.launch(uri)
        if code != 0:
            return False, f"failed to open {uri} (exit code {code})"
        return True, None

    def set_list(self, request: ListRequest, *, secondary: bool) -> None:
        self.lists[secondary] = request

    def open_list(self, *, secondary: bool, split: Optional[str] = None) -> None:
        request = self.lists.get(secondary)
        if request is None:
            return
        table = Table(title=request.title)
        table.add_column("File", style="cyan")
        table.add_column("Line", justify="right")
        table.add_column("Col", justify="right")
        table.add_column("Text")
        for item in request.items:
            table.add_row(item.filename, str(item.line), str(item.column), item.text)
        self.console.print(table)

    def open_floating_preview(
        self,
        lines: List[str],
        syntax: str,
        options: Dict[str, Any],
        highlight: Optional[Tuple[int, int, int]] = None,
    ) -> Any:
        text = "\n".join(lines)
        body = Markdown(text) if syntax == "markdown" else Text(text)
        self.console.print(Panel(body, title=options.get("focus_id")))
        return None

    def select(
        self,
        items: Sequence[Any],
        prompt: str,
        format_item: Callable[[Any], str],
        on_choice: Callable[[Optional[Any]], None],
    ) -> None:
        self.console.print(Text(prompt))
        for i, item in enumerate(items, start=1):
            self.console.print(f"  {i}. {format_item(item)}", markup=False)
        choice = self._ask()
        on_choice(items[choice - 1] if 1 <= choice <= len(items) else None)

    def input_list(self, lines: List[str]) -> int:
        for line in lines:
            self.console.print(line, markup=False)
        return self._ask()

    def _ask(self) -> int:
        try:
            return IntPrompt.ask("Choice", console=self.console, default=0)
        except EOFError:
            # No terminal input: treat as declined.
            return 0
