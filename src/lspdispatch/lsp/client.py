"""Connections to language servers.

A ``Client`` holds the per-connection state handlers read (settings,
offset encoding, workspace folders, dynamic registrations, progress) and,
once started against a server process, speaks JSON-RPC over its stdio.
Server-initiated requests and notifications are turned into a
``HandlerContext`` and routed through the dispatcher; responses to our
own requests can be routed through the same handlers.
"""

from __future__ import annotations

import asyncio
import subprocess
from contextvars import Context, copy_context
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from pylsp_jsonrpc.streams import JsonRpcStreamReader, JsonRpcStreamWriter

from ..util.log import Log
from .capabilities import RegistrationSet
from .dispatcher import Dispatcher, NoHandlerError
from .position import OffsetEncoding, fname_to_uri
from .progress import ProgressLedger
from .protocol import NULL, ErrorCodes, to_json
from .types import HandlerContext, ResponseError

log = Log.create({"service": "lsp.client"})

CLIENT_CAPABILITIES: Dict[str, Any] = {
    "general": {"positionEncodings": ["utf-8", "utf-16", "utf-32"]},
    "window": {
        "workDoneProgress": True,
        "showMessage": {"messageActionItem": {"additionalPropertiesSupport": False}},
        "showDocument": {"support": True},
    },
    "workspace": {
        "applyEdit": True,
        "configuration": True,
        "workspaceFolders": True,
        "didChangeWatchedFiles": {"dynamicRegistration": True},
        "symbol": {"dynamicRegistration": False},
        "semanticTokens": {"refreshSupport": True},
        "inlayHint": {"refreshSupport": True},
    },
    "textDocument": {
        "synchronization": {"didSave": True, "dynamicRegistration": False},
        "publishDiagnostics": {"relatedInformation": True},
        "hover": {"contentFormat": ["markdown", "plaintext"]},
        "definition": {"linkSupport": True},
        "declaration": {"linkSupport": True},
        "typeDefinition": {"linkSupport": True},
        "implementation": {"linkSupport": True},
        "documentSymbol": {"hierarchicalDocumentSymbolSupport": True},
        "rename": {"prepareSupport": True},
        "callHierarchy": {"dynamicRegistration": False},
        "typeHierarchy": {"dynamicRegistration": False},
    },
}


def lookup_section(settings: Any, section: str) -> Any:
    """Resolve a dotted ``section`` in nested ``settings``; ``None`` if missing."""
    node = settings
    for key in section.split("."):
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


class Client:
    """One language-server connection.

    Attributes:
        id: Connection id carried by every ``HandlerContext``
        name: Display name used in notices
        settings: Nested settings served to ``workspace/configuration``
        offset_encoding: Unit of ``character`` offsets in positions
        workspace_folders: Folders reported to the server, or ``None``
        dynamic_capabilities: Registrations made by the server
        progress: Work-done progress ledger
        attached_buffers: Documents currently bound to this connection
        server_capabilities: Capabilities from the ``initialize`` result
    """

    def __init__(
        self,
        client_id: int,
        name: str,
        *,
        settings: Optional[Dict[str, Any]] = None,
        offset_encoding: OffsetEncoding = "utf-16",
        workspace_folders: Optional[List[Dict[str, str]]] = None,
        capabilities: Optional[Dict[str, Any]] = None,
        server_capabilities: Optional[Dict[str, Any]] = None,
    ):
        self.id = client_id
        self.name = name
        self.settings: Dict[str, Any] = settings or {}
        self.offset_encoding: OffsetEncoding = offset_encoding
        self.workspace_folders = workspace_folders
        self.capabilities = capabilities if capabilities is not None else CLIENT_CAPABILITIES
        self.dynamic_capabilities = RegistrationSet(self.capabilities)
        self.progress = ProgressLedger(client_id)
        self.attached_buffers: Set[int] = set()
        self.server_capabilities: Dict[str, Any] = server_capabilities or {}

        self._dispatcher: Optional[Dispatcher] = None
        self._process: Optional[subprocess.Popen] = None
        self._request_id = 0
        self._pending_requests: Dict[int, asyncio.Future] = {}
        self._reader_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_context: Context | None = None
        self._stream_reader: Optional[JsonRpcStreamReader] = None
        self._stream_writer: Optional[JsonRpcStreamWriter] = None

    def setting(self, section: str) -> Any:
        """Value of a dotted settings path, or ``NULL``.

        An empty section without an explicit ``""`` key is the whole
        settings mapping.
        """
        value = lookup_section(self.settings, section)
        if value is None and section == "":
            value = self.settings
        return NULL if value is None else value

    # -- transport --

    def bind(self, dispatcher: Dispatcher, writer: Optional[JsonRpcStreamWriter] = None) -> None:
        """Route messages through ``dispatcher`` without a server process.

        Replies go to ``writer`` when given and are dropped otherwise.
        """
        self._dispatcher = dispatcher
        self._stream_writer = writer

    async def start(self, process: subprocess.Popen, dispatcher: Dispatcher) -> None:
        """Attach to a spawned server process and start reading messages."""
        if not process.stdout or not process.stdin:
            raise RuntimeError(f"LSP server stdio not available for {self.name}")

        self._process = process
        self._dispatcher = dispatcher
        self._loop = asyncio.get_running_loop()
        self._loop_context = copy_context()
        self._stream_reader = JsonRpcStreamReader(process.stdout)
        self._stream_writer = JsonRpcStreamWriter(process.stdin)
        self._reader_task = asyncio.create_task(self._read_messages())
        log.info("client started", {"client_id": self.id, "name": self.name})

    async def initialize(self, root: str, timeout: float = 45.0) -> Dict[str, Any]:
        """Run the ``initialize`` handshake and record server capabilities."""
        root_uri = fname_to_uri(root)
        err, result = await asyncio.wait_for(
            self.request("initialize", {
                "rootUri": root_uri,
                "processId": None,
                "workspaceFolders": self.workspace_folders,
                "capabilities": self.capabilities,
            }),
            timeout=timeout,
        )
        if err is not None:
            raise RuntimeError(f"{self.name}: initialize failed: {err.code}: {err.message}")

        result = result or {}
        self.server_capabilities = result.get("capabilities") or {}
        encoding = self.server_capabilities.get("positionEncoding") or result.get("offsetEncoding")
        if encoding in ("utf-8", "utf-16", "utf-32"):
            self.offset_encoding = encoding

        await self.notify("initialized", {})
        if self.settings:
            await self.notify("workspace/didChangeConfiguration", {"settings": self.settings})
        log.info("client initialized", {"client_id": self.id, "encoding": self.offset_encoding})
        return result

    async def _read_messages(self) -> None:
        if not self._stream_reader:
            return

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                self._stream_reader.listen,
                self._consume_message_from_reader_thread,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.error("error reading LSP messages", {"client_id": self.id, "error": str(e)})

    def _consume_message_from_reader_thread(self, message: Dict[str, Any]) -> None:
        """Bridge reader-thread messages into the asyncio event loop."""
        if not self._loop or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(
            self._schedule_message,
            message,
            context=self._loop_context,
        )

    def _schedule_message(self, message: Dict[str, Any]) -> None:
        task = asyncio.create_task(self.handle_message(message))
        task.add_done_callback(self._on_message_done)

    def _on_message_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("error handling LSP message", {"client_id": self.id, "error": exc})

    async def handle_message(self, message: Dict[str, Any]) -> None:
        """Route one decoded JSON-RPC message."""
        if "method" not in message:
            future = self._pending_requests.get(message.get("id"))
            if future is not None and not future.done():
                error = message.get("error")
                err = ResponseError.model_validate(error) if error is not None else None
                future.set_result((err, message.get("result")))
            return

        if self._dispatcher is None:
            raise RuntimeError(f"client {self.name} has no dispatcher")

        method = message["method"]
        params = message.get("params")
        ctx = HandlerContext(method=method, client_id=self.id, params=params)
        is_request = "id" in message

        try:
            reply = await self._dispatcher.dispatch(None, params, ctx)
        except NoHandlerError as e:
            if is_request:
                await self._send_error(message["id"], ErrorCodes.MethodNotFound, str(e))
            return
        except Exception as e:
            log.error("handler failed", {"method": method, "client_id": self.id, "error": e})
            if is_request:
                await self._send_error(message["id"], ErrorCodes.InternalError, str(e))
            return

        if is_request:
            if reply is None:
                log.debug("request handler returned no reply", {"method": method})
            await self._send_response(message["id"], to_json(reply))

    async def request(self, method: str, params: Any) -> Tuple[Optional[ResponseError], Any]:
        """Send a request and wait for ``(error, result)``."""
        self._request_id += 1
        request_id = self._request_id

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending_requests[request_id] = future
        try:
            await self._send_message({
                "jsonrpc": "2.0",
                "id": request_id,
                "method": method,
                "params": params,
            })
            return await future
        finally:
            self._pending_requests.pop(request_id, None)

    async def request_and_handle(
        self,
        method: str,
        params: Any,
        *,
        bufnr: Optional[int] = None,
        config: Any = None,
    ) -> Any:
        """Send a request and pass the response through the method's handler."""
        if self._dispatcher is None:
            raise RuntimeError(f"client {self.name} has no dispatcher")
        err, result = await self.request(method, params)
        ctx = HandlerContext(method=method, client_id=self.id, bufnr=bufnr, params=params)
        return await self._dispatcher.dispatch(err, result, ctx, config)

    async def notify(self, method: str, params: Any) -> None:
        await self._send_message({"jsonrpc": "2.0", "method": method, "params": params})

    async def _send_response(self, request_id: Any, result: Any) -> None:
        await self._send_message({"jsonrpc": "2.0", "id": request_id, "result": result})

    async def _send_error(self, request_id: Any, code: int, message: str) -> None:
        await self._send_message({
            "jsonrpc": "2.0",
            "id": request_id,
            "error": {"code": int(code), "message": message},
        })

    async def _send_message(self, message: Dict[str, Any]) -> None:
        if not self._stream_writer:
            return
        await asyncio.get_running_loop().run_in_executor(
            None, self._stream_writer.write, message
        )

    async def shutdown(self) -> None:
        """Stop the server process and fail pending requests."""
        log.info("shutting down", {"client_id": self.id})

        if self._stream_writer:
            self._stream_writer.close()

        if self._process is not None:
            self._process.terminate()
            try:
                await asyncio.to_thread(self._process.wait, 5)
            except subprocess.TimeoutExpired:
                self._process.kill()

        if self._reader_task:
            self._reader_task.cancel()
            try:
                await asyncio.wait_for(self._reader_task, timeout=1.0)
            except (asyncio.TimeoutError, asyncio.CancelledError):
                pass

        for future in self._pending_requests.values():
            if not future.done():
                future.cancel()
        self._pending_requests.clear()


class Clients:
    """Registry of live connections by id.

    ``get`` returns ``None`` once a connection is removed; callers must
    handle that case.
    """

    def __init__(self) -> None:
        self._clients: Dict[int, Client] = {}
        self._next_id = 1

    def next_id(self) -> int:
        client_id = self._next_id
        self._next_id += 1
        return client_id

    def create(self, name: str, **kwargs: Any) -> Client:
        client = Client(self.next_id(), name, **kwargs)
        self.add(client)
        return client

    def add(self, client: Client) -> None:
        self._clients[client.id] = client
        self._next_id = max(self._next_id, client.id + 1)

    def remove(self, client_id: int) -> Optional[Client]:
        return self._clients.pop(client_id, None)

    def get(self, client_id: int) -> Optional[Client]:
        return self._clients.get(client_id)

    def display_name(self, client_id: int) -> str:
        client = self.get(client_id)
        return client.name if client else f"client_id={client_id}"

    def __iter__(self) -> Iterator[Client]:
        return iter(list(self._clients.values()))

    def __len__(self) -> int:
        return len(self._clients)
