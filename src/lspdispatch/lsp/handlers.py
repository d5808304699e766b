"""Default handlers for server-initiated messages and request responses.

Every handler takes ``(err, result, ctx, config)``. Transport errors never
reach them: ``default_handlers`` wraps the whole table with
``intercept_errors`` before anything can be dispatched.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..core.config_schema import HandlerOptions
from ..util.log import Log
from .client import Client, Clients
from .completion import keyword_prefix, lsp_to_complete_items
from .dispatcher import intercept_errors
from .editor import Editor, Features, FileWatcher, NotifyLevel
from .items import (
    Item,
    call_hierarchy_to_items,
    locations_to_items,
    symbols_to_items,
    type_hierarchy_to_items,
)
from .markdown import convert_input_to_markdown_lines, convert_signature_help_to_markdown_lines
from .position import LineGetter, uri_to_fname
from .prompt import InteractivePrompt
from .protocol import NULL, ErrorCodes, MessageType, Methods
from .registry import Handler, HandlerRegistry
from .sinks import deliver_list
from .types import (
    HandlerContext,
    decode_calls,
    decode_locations,
    decode_symbols,
    decode_type_hierarchy,
)

log = Log.create({"service": "lsp.handlers"})
server_log = Log.create({"service": "lsp.server"})

UNSUPPORTED_REGISTRATION = (
    "The language server {name} triggers a registerCapability handler for {methods} "
    "despite dynamicRegistration set to false. Report upstream, this warning is harmless"
)


@dataclass
class HandlerEnv:
    """Collaborators shared by the default handlers.

    Attributes:
        clients: Live connections by id
        editor: Editing surface, list UI, notices and picker
        features: Diagnostics, code lens, inlay hint and semantic token engines
        prompt: Answers ``window/showMessageRequest``
        watcher: Receives watched-files (un)registrations
        get_line: Source line reader for list item text; reads files when unset
    """
    clients: Clients
    editor: Editor
    features: Features
    prompt: InteractivePrompt
    watcher: Optional[FileWatcher] = None
    get_line: Optional[LineGetter] = None


def _is_empty(result: Any) -> bool:
    return result is None or result is NULL or (isinstance(result, (list, dict)) and not result)


def _relative(path: str) -> str:
    """``path`` relative to the working directory when it lies below it."""
    try:
        rel = os.path.relpath(path)
    except ValueError:
        return path
    return path if rel.startswith("..") else rel


def _document_filename(ctx: HandlerContext) -> Optional[str]:
    params = ctx.params if isinstance(ctx.params, dict) else {}
    uri = (params.get("textDocument") or {}).get("uri")
    return uri_to_fname(uri) if uri else None


class DefaultHandlers:
    """The default handler of every supported method, bound to one ``HandlerEnv``."""

    def __init__(self, env: HandlerEnv):
        self.env = env

    @property
    def editor(self) -> Editor:
        return self.env.editor

    def _error(self, *parts: Any) -> None:
        self.editor.notify("".join(str(p) for p in parts), NotifyLevel.ERROR)

    def _client(self, ctx: HandlerContext) -> Optional[Client]:
        return self.env.clients.get(ctx.client_id)

    def _live_client(self, ctx: HandlerContext) -> Optional[Client]:
        """The connection of ``ctx``, or ``None`` after a shut-down notice."""
        client = self._client(ctx)
        if client is None:
            self._error("LSP[id=", ctx.client_id, "] client has shut down after sending the message")
        return client

    def _client_name(self, client: Optional[Client], client_id: int) -> str:
        return client.name if client else f"id={client_id}"

    def _nothing_found(self, entity: str, options: HandlerOptions) -> None:
        if not options.silent:
            self.editor.notify(f"No {entity} found")

    # -- workspace and window requests --

    def execute_command(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        # Errors are reported by the wrapping decorator.
        return None

    async def progress(self, err: Any, params: Any, ctx: HandlerContext, config: Any) -> Any:
        client = self._client(ctx)
        if client is None:
            self._error("LSP[id=", ctx.client_id, "] client has shut down during progress update")
            return NULL
        await client.progress.on_progress(params)
        return None

    def work_done_progress_create(self, err: Any, params: Any, ctx: HandlerContext, config: Any) -> Any:
        client = self._client(ctx)
        if client is None:
            self._error("LSP[id=", ctx.client_id, "] client has shut down during progress update")
            return NULL
        client.progress.on_create(params["token"])
        return NULL

    async def show_message_request(self, err: Any, params: Any, ctx: HandlerContext, config: Any) -> Any:
        actions: List[Dict[str, Any]] = params.get("actions") or []
        return await self.env.prompt.choose(params["message"], actions)

    def register_capability(self, err: Any, params: Any, ctx: HandlerContext, config: Any) -> Any:
        client = self._client(ctx)
        if client is None:
            self._error("LSP[id=", ctx.client_id, "] client has shut down after sending the message")
            return NULL

        registrations = params.get("registrations") or []
        client.dynamic_capabilities.register(registrations)
        for bufnr in sorted(client.attached_buffers):
            self.editor.apply_client_defaults(client.id, bufnr)

        unsupported: List[str] = []
        for reg in registrations:
            if reg["method"] == Methods.workspace_didChangeWatchedFiles:
                if self.env.watcher is not None:
                    self.env.watcher.register(reg, ctx)
            elif not client.dynamic_capabilities.supports_registration(reg["method"]):
                unsupported.append(reg["method"])
        if unsupported:
            log.warn(UNSUPPORTED_REGISTRATION.format(name=client.name, methods=", ".join(unsupported)))
        return NULL

    def unregister_capability(self, err: Any, params: Any, ctx: HandlerContext, config: Any) -> Any:
        client = self._client(ctx)
        if client is None:
            self._error("LSP[id=", ctx.client_id, "] client has shut down after sending the message")
            return NULL

        # The protocol spells the key "unregisterations".
        unregistrations = params.get("unregisterations") or params.get("unregistrations") or []
        client.dynamic_capabilities.unregister(unregistrations)
        for unreg in unregistrations:
            if unreg["method"] == Methods.workspace_didChangeWatchedFiles and self.env.watcher is not None:
                self.env.watcher.unregister(unreg, ctx)
        return NULL

    def apply_edit(self, err: Any, params: Any, ctx: HandlerContext, config: Any) -> Any:
        if not params:
            raise ValueError(
                "workspace/applyEdit must be called with `ApplyWorkspaceEditParams`. "
                "Server is violating the protocol"
            )
        client = self._client(ctx)
        if client is None:
            self._error("LSP[id=", ctx.client_id, "] client has shut down after sending the message")
            return NULL

        if params.get("label"):
            log.info("workspace edit", {"label": params["label"], "client_id": client.id})
        try:
            self.editor.apply_workspace_edit(params["edit"], client.offset_encoding)
        except Exception as e:
            log.warn("workspace edit failed", {"client_id": client.id, "error": e})
            return {"applied": False, "failureReason": str(e)}
        return {"applied": True}

    def configuration(self, err: Any, params: Any, ctx: HandlerContext, config: Any) -> Any:
        client = self._client(ctx)
        if client is None:
            self._error(
                "LSP[", ctx.client_id,
                "] client has shut down after sending a workspace/configuration request",
            )
            return NULL
        items = (params or {}).get("items")
        if not items:
            return []
        return [client.setting(item.get("section") or "") for item in items]

    def workspace_folders(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> Any:
        client = self._client(ctx)
        if client is None:
            self._error("LSP[id=", ctx.client_id, "] client has shut down after sending the message")
            return NULL
        return client.workspace_folders if client.workspace_folders is not None else NULL

    # -- lists --

    def _deliver(
        self,
        title: str,
        items: List[Item],
        ctx: HandlerContext,
        options: HandlerOptions,
    ) -> None:
        deliver_list(title, items, ctx, options, self.editor)

    def references(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        options = HandlerOptions.coerce(config)
        if _is_empty(result):
            self._nothing_found("references", options)
            return
        client = self._live_client(ctx)
        if client is None:
            return
        items = locations_to_items(decode_locations(result), client.offset_encoding, self.env.get_line)
        self._deliver("References", items, ctx, options)

    def document_symbol(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        options = HandlerOptions.coerce(config)
        if _is_empty(result):
            self._nothing_found("document symbols", options)
            return
        filename = _document_filename(ctx)
        title = f"Symbols in {_relative(filename)}" if filename else "Symbols"
        self._deliver(title, symbols_to_items(decode_symbols(result), filename), ctx, options)

    def workspace_symbol(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        options = HandlerOptions.coerce(config)
        if _is_empty(result):
            self._nothing_found("workspace symbols", options)
            return
        query = (ctx.params or {}).get("query", "")
        self._deliver(f"Symbols matching '{query}'", symbols_to_items(decode_symbols(result)), ctx, options)

    def location(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        """Jump to a single location, list several."""
        options = HandlerOptions.coerce(config)
        if _is_empty(result):
            log.info("No location found", {"method": ctx.method})
            self._nothing_found("locations", options)
            return
        client = self._live_client(ctx)
        if client is None:
            return

        locations = decode_locations(result)
        if len(locations) == 1:
            self.editor.jump_to_location(
                locations[0].model_dump(by_alias=True, exclude_none=True),
                client.offset_encoding,
                options.reuse_window,
            )
            return
        items = locations_to_items(locations, client.offset_encoding, self.env.get_line)
        self._deliver("LSP locations", items, ctx, options)

    def _call_hierarchy(self, direction: str, entity: str) -> Handler:
        def handler(err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
            options = HandlerOptions.coerce(config)
            if _is_empty(result):
                self._nothing_found(entity, options)
                return
            items = call_hierarchy_to_items(decode_calls(result, direction))
            self._deliver("LSP call hierarchy", items, ctx, options)

        return handler

    def _type_hierarchy(self, entity: str) -> Handler:
        def handler(err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
            options = HandlerOptions.coerce(config)
            if _is_empty(result):
                self._nothing_found(entity, options)
                return
            client = self._live_client(ctx)
            if client is None:
                return
            items = type_hierarchy_to_items(
                decode_type_hierarchy(result), client.offset_encoding, self.env.get_line
            )
            self._deliver("LSP type hierarchy", items, ctx, options)

        return handler

    # -- edits --

    def rename(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        if not result:
            self.editor.notify("Language server couldn't provide rename result", NotifyLevel.INFO)
            return
        client = self._live_client(ctx)
        if client is None:
            return
        self.editor.apply_workspace_edit(result, client.offset_encoding)

    def formatting(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        if not result:
            return
        client = self._live_client(ctx)
        if client is None:
            return
        self.editor.apply_text_edits(result, ctx.bufnr, client.offset_encoding)

    def completion(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        if _is_empty(result):
            return
        _, col = self.editor.cursor()
        start, prefix = keyword_prefix(self.editor.current_line(), col)
        self.editor.complete(start + 1, lsp_to_complete_items(result, prefix))

    # -- previews --

    def hover(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> Any:
        options = HandlerOptions.coerce(config)
        options.focus_id = ctx.method
        if self.editor.current_buffer() != ctx.bufnr:
            # Result of a slow server for a document that is no longer current
            return None

        contents = result.get("contents") if isinstance(result, dict) else None
        if not contents:
            if not options.silent:
                self.editor.notify("No information available")
            return None

        syntax = "markdown"
        if isinstance(contents, dict) and contents.get("kind") == "plaintext":
            syntax = "plaintext"
            lines = (contents.get("value") or "").strip("\n").split("\n")
            if lines == [""]:
                lines = []
        else:
            lines = convert_input_to_markdown_lines(contents)

        if not lines:
            if not options.silent:
                self.editor.notify("No information available")
            return None
        return self.editor.open_floating_preview(lines, syntax, options.preview())

    def signature_help(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> Any:
        options = HandlerOptions.coerce(config)
        options.focus_id = ctx.method
        if self.editor.current_buffer() != ctx.bufnr:
            return None

        if not (isinstance(result, dict) and result.get("signatures")):
            if not options.silent:
                self.editor.echo("No signature help available")
            return None

        filetype = self.editor.filetype(ctx.bufnr) if ctx.bufnr is not None else None
        lines, active = convert_signature_help_to_markdown_lines(result, filetype)
        if not lines:
            if not options.silent:
                self.editor.echo("No signature help available")
            return None

        highlight = None
        if active is not None:
            # The label sits on the second line when wrapped in a code fence.
            row = 1 if lines[0].startswith("```") else 0
            highlight = (row, active[0], active[1])
        return self.editor.open_floating_preview(lines, "markdown", options.preview(), highlight)

    def document_highlight(self, err: Any, result: Any, ctx: HandlerContext, config: Any) -> None:
        if not result:
            return
        client = self._live_client(ctx)
        if client is None:
            return
        self.editor.highlight_references(ctx.bufnr, result, client.offset_encoding)

    # -- messages --

    def log_message(self, err: Any, params: Any, ctx: HandlerContext, config: Any) -> Any:
        client = self._client(ctx)
        name = self._client_name(client, ctx.client_id)
        message = params["message"]
        if client is None:
            self._error("LSP[", name, "] client has shut down after sending ", message)

        message_type = params.get("type")
        extra = {"client": name}
        if message_type == MessageType.Error:
            server_log.error(message, extra)
        elif message_type == MessageType.Warning:
            server_log.warn(message, extra)
        elif message_type in (MessageType.Info, MessageType.Log):
            server_log.info(message, extra)
        else:
            server_log.debug(message, extra)
        return params

    def show_message(self, err: Any, params: Any, ctx: HandlerContext, config: Any) -> Any:
        client = self._client(ctx)
        name = self._client_name(client, ctx.client_id)
        message = params["message"]
        if client is None:
            self._error("LSP[", name, "] client has shut down after sending ", message)

        message_type = params.get("type")
        if message_type == MessageType.Error:
            self._error("LSP[", name, "] ", message)
        else:
            try:
                type_name = MessageType(message_type).name
            except ValueError:
                type_name = str(message_type)
            self.editor.notify(f"LSP[{name}][{type_name}] {message}", NotifyLevel.INFO)
        return params

    def show_document(self, err: Any, params: Any, ctx: HandlerContext, config: Any) -> Any:
        uri = params["uri"]

        if params.get("external"):
            ok, error = self.editor.open_external(uri)
            if not ok:
                return {
                    "success": False,
                    "error": {"code": int(ErrorCodes.UnknownErrorCode), "message": error},
                }
            return {"success": True}

        client = self._client(ctx)
        if client is None:
            name = self._client_name(client, ctx.client_id)
            self._error("LSP[", name, "] client has shut down after sending ", ctx.method)
            return NULL

        location = {"uri": uri, "range": params.get("selection")}
        success = self.editor.show_document(
            location,
            client.offset_encoding,
            reuse_window=True,
            focus=params.get("takeFocus", True),
        )
        return {"success": bool(success)}

    def table(self) -> Dict[str, Handler]:
        """Method -> handler for every supported method."""
        features = self.env.features
        location = self.location
        return {
            Methods.workspace_executeCommand: self.execute_command,
            Methods.dollar_progress: self.progress,
            Methods.window_workDoneProgress_create: self.work_done_progress_create,
            Methods.window_showMessageRequest: self.show_message_request,
            Methods.client_registerCapability: self.register_capability,
            Methods.client_unregisterCapability: self.unregister_capability,
            Methods.workspace_applyEdit: self.apply_edit,
            Methods.workspace_configuration: self.configuration,
            Methods.workspace_workspaceFolders: self.workspace_folders,
            Methods.textDocument_publishDiagnostics: features.on_publish_diagnostics,
            Methods.textDocument_diagnostic: features.on_diagnostic,
            Methods.textDocument_codeLens: features.on_codelens,
            Methods.textDocument_inlayHint: features.on_inlay_hint,
            Methods.workspace_inlayHint_refresh: features.on_inlay_hint_refresh,
            Methods.workspace_semanticTokens_refresh: features.on_semantic_tokens_refresh,
            Methods.textDocument_references: self.references,
            Methods.textDocument_documentSymbol: self.document_symbol,
            Methods.workspace_symbol: self.workspace_symbol,
            Methods.textDocument_declaration: location,
            Methods.textDocument_definition: location,
            Methods.textDocument_typeDefinition: location,
            Methods.textDocument_implementation: location,
            Methods.callHierarchy_incomingCalls: self._call_hierarchy("from", "incoming calls"),
            Methods.callHierarchy_outgoingCalls: self._call_hierarchy("to", "outgoing calls"),
            Methods.typeHierarchy_supertypes: self._type_hierarchy("supertypes"),
            Methods.typeHierarchy_subtypes: self._type_hierarchy("subtypes"),
            Methods.textDocument_rename: self.rename,
            Methods.textDocument_formatting: self.formatting,
            Methods.textDocument_rangeFormatting: self.formatting,
            Methods.textDocument_completion: self.completion,
            Methods.textDocument_hover: self.hover,
            Methods.textDocument_signatureHelp: self.signature_help,
            Methods.textDocument_documentHighlight: self.document_highlight,
            Methods.window_logMessage: self.log_message,
            Methods.window_showMessage: self.show_message,
            Methods.window_showDocument: self.show_document,
        }


def default_handlers(env: HandlerEnv) -> HandlerRegistry:
    """Registry of all default handlers, wrapped with ``intercept_errors``."""
    registry = HandlerRegistry.from_table(DefaultHandlers(env).table())
    registry.wrap_all(intercept_errors(env.clients, env.editor))
    return registry
