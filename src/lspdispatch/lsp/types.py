"""Typed protocol records.

Result payloads arrive as decoded JSON. Each result family has a
``decode_*`` function that validates it into one tagged pydantic model
per shape (``Location`` vs ``LocationLink``, ``DocumentSymbol`` vs
``SymbolInformation`` and so on), so the mappers downstream can switch
on the model type instead of probing dictionary keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class LSPModel(BaseModel):
    """Base for protocol records: camelCase on the wire, extra keys kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class Position(LSPModel):
    line: int
    character: int


class Range(LSPModel):
    start: Position
    end: Position


class Location(LSPModel):
    uri: str
    range: Range


class LocationLink(LSPModel):
    target_uri: str
    target_range: Range
    target_selection_range: Range
    origin_selection_range: Optional[Range] = None


class SymbolLocation(LSPModel):
    """``Location`` or the range-less ``{uri}`` form of workspace symbols."""
    uri: str
    range: Optional[Range] = None


class SymbolInformation(LSPModel):
    name: str
    kind: int
    location: SymbolLocation
    container_name: Optional[str] = None


class DocumentSymbol(LSPModel):
    name: str
    kind: int
    range: Range
    selection_range: Range
    detail: Optional[str] = None
    children: List["DocumentSymbol"] = Field(default_factory=list)


class CallHierarchyItem(LSPModel):
    name: str
    kind: int
    uri: str
    range: Range
    selection_range: Range
    detail: Optional[str] = None


class CallHierarchyIncomingCall(LSPModel):
    from_: CallHierarchyItem = Field(alias="from")
    from_ranges: List[Range]

    def endpoint(self) -> CallHierarchyItem:
        return self.from_


class CallHierarchyOutgoingCall(LSPModel):
    to: CallHierarchyItem
    from_ranges: List[Range]

    def endpoint(self) -> CallHierarchyItem:
        return self.to


class TypeHierarchyItem(LSPModel):
    name: str
    kind: int
    uri: str
    range: Range
    selection_range: Range
    detail: Optional[str] = None


class ResponseError(LSPModel):
    """Error member of a JSON-RPC response."""
    code: int
    message: str
    data: Any = None


@dataclass(frozen=True, slots=True)
class HandlerContext:
    """Per-invocation context created by the transport for each message.

    Attributes:
        method: Protocol method name
        client_id: Id of the owning connection
        bufnr: Originating document handle; ``None`` for workspace messages
        params: Original request/notification payload
    """
    method: str
    client_id: int
    bufnr: Optional[int] = None
    params: Any = None


AnyLocation = Union[Location, LocationLink]
AnySymbol = Union[DocumentSymbol, SymbolInformation]
AnyCall = Union[CallHierarchyIncomingCall, CallHierarchyOutgoingCall]

_locations = TypeAdapter(List[AnyLocation])
_symbols = TypeAdapter(List[AnySymbol])
_incoming = TypeAdapter(List[CallHierarchyIncomingCall])
_outgoing = TypeAdapter(List[CallHierarchyOutgoingCall])
_type_items = TypeAdapter(List[TypeHierarchyItem])


def _as_list(result: Any) -> List[Any]:
    if result is None:
        return []
    if isinstance(result, (list, tuple)):
        return list(result)
    return [result]


def decode_locations(result: Any) -> List[AnyLocation]:
    """Decode ``Location | Location[] | LocationLink[] | null``."""
    return _locations.validate_python(_as_list(result))


def decode_symbols(result: Any) -> List[AnySymbol]:
    """Decode ``DocumentSymbol[] | SymbolInformation[] | WorkspaceSymbol[] | null``."""
    return _symbols.validate_python(_as_list(result))


def decode_calls(result: Any, direction: Literal["from", "to"]) -> List[AnyCall]:
    """Decode incoming (``"from"``) or outgoing (``"to"``) call-hierarchy edges."""
    adapter = _incoming if direction == "from" else _outgoing
    return adapter.validate_python(_as_list(result))


def decode_type_hierarchy(result: Any) -> List[TypeHierarchyItem]:
    return _type_items.validate_python(_as_list(result))


def decode_error(err: Any) -> Optional[ResponseError]:
    """Accept a ``ResponseError``, its wire mapping, or ``None``."""
    if err is None or isinstance(err, ResponseError):
        return err
    return ResponseError.model_validate(err)
