"""Completion results to editor completion matches."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Tuple

from .protocol import CompletionItemKind

_SNIPPET_PLACEHOLDER = re.compile(r"\$\{\d+:([^}]*)\}|\$\{\d+\}|\$\d+")
_KEYWORD_TAIL = re.compile(r"\w*$")

SNIPPET_FORMAT = 2


def completion_word(item: Dict[str, Any]) -> str:
    """Text inserted for ``item``; snippet placeholders become their defaults."""
    text_edit = item.get("textEdit")
    if isinstance(text_edit, dict) and text_edit.get("newText") is not None:
        word = text_edit["newText"]
    elif item.get("insertText"):
        word = item["insertText"]
    else:
        word = item.get("label", "")
    if item.get("insertTextFormat") == SNIPPET_FORMAT:
        word = _SNIPPET_PLACEHOLDER.sub(lambda m: m.group(1) or "", word)
    return word


def _documentation(item: Dict[str, Any]) -> str:
    doc = item.get("documentation")
    if isinstance(doc, dict):
        return doc.get("value") or ""
    return doc or ""


def _kind_name(kind: Any) -> str:
    try:
        return CompletionItemKind(kind).name
    except ValueError:
        return "Unknown"


def keyword_prefix(line: str, column: int) -> Tuple[int, str]:
    """Keyword before byte ``column`` of ``line`` and its 0-based start column."""
    before = line.encode("utf-8")[:column].decode("utf-8", errors="ignore")
    prefix = _KEYWORD_TAIL.search(before).group(0)
    start = len(before[: len(before) - len(prefix)].encode("utf-8"))
    return start, prefix


def lsp_to_complete_items(result: Any, prefix: str) -> List[Dict[str, Any]]:
    """Filter ``CompletionItem[] | CompletionList`` by ``prefix`` and convert."""
    items = result.get("items", []) if isinstance(result, dict) else (result or [])

    candidates = [
        item for item in items
        if (item.get("filterText") or item.get("label", "")).startswith(prefix)
    ]
    candidates.sort(key=lambda item: item.get("sortText") or item.get("label", ""))

    return [
        {
            "word": completion_word(item),
            "abbr": item.get("label", ""),
            "kind": _kind_name(item.get("kind")),
            "menu": item.get("detail") or "",
            "info": _documentation(item),
            "icase": 1,
            "dup": 1,
            "empty": 1,
        }
        for item in candidates
    ]
