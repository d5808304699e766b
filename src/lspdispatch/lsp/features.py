"""Default engines for diagnostics, code lens, inlay hints and semantic tokens.

``FeatureStore`` keeps the latest results per connection and document so
that an embedding application can render them.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel

from ..util.log import Log
from .position import uri_to_fname
from .protocol import NULL
from .types import HandlerContext

log = Log.create({"service": "lsp.features"})


class LSPDiagnostic(BaseModel):
    """LSP diagnostic information.

    Attributes:
        range: Location of the diagnostic
        message: Diagnostic message
        severity: Severity level (1=Error, 2=Warning, 3=Info, 4=Hint)
        source: Source of the diagnostic (e.g., "pyright")
        code: Optional diagnostic code
    """
    range: Dict[str, Any]
    message: str
    severity: int = 1
    source: Optional[str] = None
    code: Optional[Any] = None


SEVERITY_NAMES = {1: "ERROR", 2: "WARN", 3: "INFO", 4: "HINT"}


def format_diagnostic(diagnostic: LSPDiagnostic) -> str:
    """Format a diagnostic as ``SEVERITY [line:col] message`` (1-based)."""
    severity = SEVERITY_NAMES.get(diagnostic.severity, "ERROR")
    start = diagnostic.range.get("start", {})
    line = start.get("line", 0) + 1
    col = start.get("character", 0) + 1
    return f"{severity} [{line}:{col}] {diagnostic.message}"


def _document_path(ctx: HandlerContext) -> Optional[str]:
    params = ctx.params if isinstance(ctx.params, dict) else {}
    uri = (params.get("textDocument") or {}).get("uri")
    return uri_to_fname(uri) if uri else None


class FeatureStore:
    """In-memory implementation of the ``Features`` protocol."""

    def __init__(self) -> None:
        self.diagnostics: Dict[Tuple[int, str], List[LSPDiagnostic]] = {}
        self.codelens: Dict[Tuple[int, Optional[int]], List[Dict[str, Any]]] = {}
        self.inlay_hints: Dict[Tuple[int, Optional[int]], List[Dict[str, Any]]] = {}
        self.semantic_tokens_stale: Set[int] = set()

    def _store_diagnostics(self, client_id: int, path: str, raw: List[Dict[str, Any]]) -> None:
        diagnostics = [LSPDiagnostic.model_validate(d) for d in raw]
        self.diagnostics[(client_id, path)] = diagnostics
        log.info("diagnostics", {"path": path, "count": len(diagnostics), "client_id": client_id})

    def on_publish_diagnostics(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        self._store_diagnostics(ctx.client_id, uri_to_fname(result["uri"]), result.get("diagnostics") or [])

    def on_diagnostic(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        path = _document_path(ctx)
        if path is None or not result:
            return
        if result.get("kind") == "unchanged":
            return
        self._store_diagnostics(ctx.client_id, path, result.get("items") or [])

    def on_codelens(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        self.codelens[(ctx.client_id, ctx.bufnr)] = list(result or [])

    def on_inlay_hint(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        self.inlay_hints[(ctx.client_id, ctx.bufnr)] = list(result or [])

    def on_inlay_hint_refresh(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> Any:
        for key in [k for k in self.inlay_hints if k[0] == ctx.client_id]:
            del self.inlay_hints[key]
        return NULL

    def on_semantic_tokens_refresh(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> Any:
        self.semantic_tokens_stale.add(ctx.client_id)
        return NULL

