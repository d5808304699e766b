"""Normalized list items and the mappers producing them.

Every list-producing handler converts its result into ``Item`` records
through one of the mappers below and hands a ``ListRequest`` to a sink.
Lines and columns are 1-based; columns are byte offsets.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from itertools import groupby
from typing import Any, Dict, List, Optional, Sequence

from .position import FileLines, LineGetter, OffsetEncoding, byte_index, uri_to_fname
from .protocol import symbol_kind_name
from .types import (
    AnyCall,
    AnyLocation,
    AnySymbol,
    DocumentSymbol,
    HandlerContext,
    Location,
    Range,
    SymbolInformation,
    TypeHierarchyItem,
)


@dataclass
class Item:
    """One actionable entry of a location list."""
    filename: str
    text: str
    line: int
    column: int
    kind: Optional[str] = None
    user_data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class ListRequest:
    """Items plus title and originating context, delivered to one sink."""
    title: str
    items: List[Item] = field(default_factory=list)
    context: Optional[HandlerContext] = None


def _target(location: AnyLocation) -> tuple[str, Range]:
    if isinstance(location, Location):
        return location.uri, location.range
    return location.target_uri, location.target_selection_range


def locations_to_items(
    locations: Sequence[AnyLocation],
    offset_encoding: OffsetEncoding,
    get_line: Optional[LineGetter] = None,
) -> List[Item]:
    """One item per location, grouped by file and sorted by position.

    The item text is the source line the location points at.
    """
    get_line = get_line or FileLines()
    rows = sorted(
        ((*_target(loc), loc) for loc in locations),
        key=lambda row: (row[0], row[1].start.line, row[1].start.character),
    )

    items: List[Item] = []
    for uri, group in groupby(rows, key=lambda row: row[0]):
        filename = uri_to_fname(uri)
        for _, rng, loc in group:
            pos = rng.start
            line = get_line(filename, pos.line)
            items.append(Item(
                filename=filename,
                text=line,
                line=pos.line + 1,
                column=byte_index(line, pos.character, offset_encoding) + 1,
                user_data=loc.model_dump(by_alias=True, exclude_none=True),
            ))
    return items


def symbols_to_items(symbols: Sequence[AnySymbol], filename: Optional[str] = None) -> List[Item]:
    """Flatten symbols depth-first, in declaration order.

    ``filename`` names the document that ``DocumentSymbol`` trees belong
    to; ``SymbolInformation`` carries its own URI.
    """
    items: List[Item] = []

    def visit(nodes: Sequence[AnySymbol]) -> None:
        for symbol in nodes:
            kind = symbol_kind_name(symbol.kind)
            text = f"[{kind}] {symbol.name}"
            if isinstance(symbol, SymbolInformation):
                start = symbol.location.range.start if symbol.location.range else None
                items.append(Item(
                    filename=uri_to_fname(symbol.location.uri),
                    text=text,
                    line=(start.line if start else 0) + 1,
                    column=(start.character if start else 0) + 1,
                    kind=kind,
                ))
            elif isinstance(symbol, DocumentSymbol):
                start = symbol.selection_range.start
                items.append(Item(
                    filename=filename or "",
                    text=text,
                    line=start.line + 1,
                    column=start.character + 1,
                    kind=kind,
                ))
                visit(symbol.children)

    visit(symbols)
    return items


def call_hierarchy_to_items(calls: Sequence[AnyCall]) -> List[Item]:
    """One item per ``fromRanges`` entry of every edge."""
    items: List[Item] = []
    for call in calls:
        endpoint = call.endpoint()
        filename = uri_to_fname(endpoint.uri)
        for rng in call.from_ranges:
            items.append(Item(
                filename=filename,
                text=endpoint.name,
                line=rng.start.line + 1,
                column=rng.start.character + 1,
            ))
    return items


def type_hierarchy_to_items(
    nodes: Sequence[TypeHierarchyItem],
    offset_encoding: OffsetEncoding,
    get_line: Optional[LineGetter] = None,
) -> List[Item]:
    get_line = get_line or FileLines()
    items: List[Item] = []
    for node in nodes:
        filename = uri_to_fname(node.uri)
        start = node.range.start
        line = get_line(filename, start.line)
        items.append(Item(
            filename=filename,
            text=f"{node.name} {node.detail}" if node.detail else node.name,
            line=start.line + 1,
            column=byte_index(line, start.character, offset_encoding) + 1,
        ))
    return items
