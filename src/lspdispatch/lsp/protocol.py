"""Protocol constants: method names, error codes, message and symbol kinds."""

from enum import IntEnum
from typing import Any, Dict, Optional


class _Null:
    """Explicit JSON ``null`` reply, distinct from "no reply" (``None``)."""

    _instance: Optional["_Null"] = None

    def __new__(cls) -> "_Null":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NULL"

    def __bool__(self) -> bool:
        return False


NULL = _Null()


def to_json(value: Any) -> Any:
    """Replace ``NULL`` sentinels with ``None`` so the value can be encoded."""
    if value is NULL:
        return None
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


class Methods:
    """Method names handled by the default handler table."""
    callHierarchy_incomingCalls = "callHierarchy/incomingCalls"
    callHierarchy_outgoingCalls = "callHierarchy/outgoingCalls"
    client_registerCapability = "client/registerCapability"
    client_unregisterCapability = "client/unregisterCapability"
    dollar_progress = "$/progress"
    textDocument_completion = "textDocument/completion"
    textDocument_codeLens = "textDocument/codeLens"
    textDocument_declaration = "textDocument/declaration"
    textDocument_definition = "textDocument/definition"
    textDocument_diagnostic = "textDocument/diagnostic"
    textDocument_documentHighlight = "textDocument/documentHighlight"
    textDocument_documentSymbol = "textDocument/documentSymbol"
    textDocument_formatting = "textDocument/formatting"
    textDocument_hover = "textDocument/hover"
    textDocument_implementation = "textDocument/implementation"
    textDocument_inlayHint = "textDocument/inlayHint"
    textDocument_publishDiagnostics = "textDocument/publishDiagnostics"
    textDocument_rangeFormatting = "textDocument/rangeFormatting"
    textDocument_references = "textDocument/references"
    textDocument_rename = "textDocument/rename"
    textDocument_signatureHelp = "textDocument/signatureHelp"
    textDocument_typeDefinition = "textDocument/typeDefinition"
    typeHierarchy_subtypes = "typeHierarchy/subtypes"
    typeHierarchy_supertypes = "typeHierarchy/supertypes"
    window_logMessage = "window/logMessage"
    window_showDocument = "window/showDocument"
    window_showMessage = "window/showMessage"
    window_showMessageRequest = "window/showMessageRequest"
    window_workDoneProgress_create = "window/workDoneProgress/create"
    workspace_applyEdit = "workspace/applyEdit"
    workspace_configuration = "workspace/configuration"
    workspace_didChangeWatchedFiles = "workspace/didChangeWatchedFiles"
    workspace_executeCommand = "workspace/executeCommand"
    workspace_inlayHint_refresh = "workspace/inlayHint/refresh"
    workspace_semanticTokens_refresh = "workspace/semanticTokens/refresh"
    workspace_symbol = "workspace/symbol"
    workspace_workspaceFolders = "workspace/workspaceFolders"


class ErrorCodes(IntEnum):
    ParseError = -32700
    InvalidRequest = -32600
    MethodNotFound = -32601
    InvalidParams = -32602
    InternalError = -32603
    ServerNotInitialized = -32002
    UnknownErrorCode = -32001
    RequestFailed = -32803
    ServerCancelled = -32802
    ContentModified = -32801
    RequestCancelled = -32800


class MessageType(IntEnum):
    Error = 1
    Warning = 2
    Info = 3
    Log = 4
    Debug = 5


class SymbolKind(IntEnum):
    File = 1
    Module = 2
    Namespace = 3
    Package = 4
    Class = 5
    Method = 6
    Property = 7
    Field = 8
    Constructor = 9
    Enum = 10
    Interface = 11
    Function = 12
    Variable = 13
    Constant = 14
    String = 15
    Number = 16
    Boolean = 17
    Array = 18
    Object = 19
    Key = 20
    Null = 21
    EnumMember = 22
    Struct = 23
    Event = 24
    Operator = 25
    TypeParameter = 26


def symbol_kind_name(kind: int) -> str:
    try:
        return SymbolKind(kind).name
    except ValueError:
        return "Unknown"


class CompletionItemKind(IntEnum):
    Text = 1
    Method = 2
    Function = 3
    Constructor = 4
    Field = 5
    Variable = 6
    Class = 7
    Interface = 8
    Module = 9
    Property = 10
    Unit = 11
    Value = 12
    Enum = 13
    Keyword = 14
    Snippet = 15
    Color = 16
    File = 17
    Reference = 18
    Folder = 19
    EnumMember = 20
    Constant = 21
    Struct = 22
    Event = 23
    Operator = 24
    TypeParameter = 25


# Client capability paths checked before accepting a dynamic registration.
DYNAMIC_REGISTRATION_PATHS: Dict[str, tuple[str, ...]] = {
    "workspace/didChangeConfiguration": ("workspace", "didChangeConfiguration"),
    Methods.workspace_didChangeWatchedFiles: ("workspace", "didChangeWatchedFiles"),
    Methods.workspace_executeCommand: ("workspace", "executeCommand"),
    Methods.workspace_symbol: ("workspace", "symbol"),
    "workspace/didChangeWorkspaceFolders": ("workspace", "workspaceFolders"),
    "textDocument/didOpen": ("textDocument", "synchronization"),
    "textDocument/didChange": ("textDocument", "synchronization"),
    "textDocument/didSave": ("textDocument", "synchronization"),
    "textDocument/didClose": ("textDocument", "synchronization"),
    Methods.textDocument_completion: ("textDocument", "completion"),
    Methods.textDocument_hover: ("textDocument", "hover"),
    Methods.textDocument_signatureHelp: ("textDocument", "signatureHelp"),
    Methods.textDocument_declaration: ("textDocument", "declaration"),
    Methods.textDocument_definition: ("textDocument", "definition"),
    Methods.textDocument_typeDefinition: ("textDocument", "typeDefinition"),
    Methods.textDocument_implementation: ("textDocument", "implementation"),
    Methods.textDocument_references: ("textDocument", "references"),
    Methods.textDocument_documentHighlight: ("textDocument", "documentHighlight"),
    Methods.textDocument_documentSymbol: ("textDocument", "documentSymbol"),
    Methods.textDocument_codeLens: ("textDocument", "codeLens"),
    Methods.textDocument_formatting: ("textDocument", "formatting"),
    Methods.textDocument_rangeFormatting: ("textDocument", "rangeFormatting"),
    Methods.textDocument_rename: ("textDocument", "rename"),
    Methods.textDocument_inlayHint: ("textDocument", "inlayHint"),
    Methods.textDocument_diagnostic: ("textDocument", "diagnostic"),
    "textDocument/prepareCallHierarchy": ("textDocument", "callHierarchy"),
    "textDocument/prepareTypeHierarchy": ("textDocument", "typeHierarchy"),
    "textDocument/semanticTokens": ("textDocument", "semanticTokens"),
}
