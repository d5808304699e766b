"""Replay of recorded language server traffic."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Dict, List

from pylsp_jsonrpc.streams import JsonRpcStreamReader, JsonRpcStreamWriter

from ..core.bus import Bus
from ..core.config import ConfigManager
from ..lsp.client import Clients
from ..lsp.dispatcher import Dispatcher
from ..lsp.editor import Editor
from ..lsp.features import FeatureStore
from ..lsp.handlers import HandlerEnv, default_handlers
from ..lsp.position import OffsetEncoding
from ..lsp.prompt import make_prompt
from ..util.log import Log

log = Log.create({"service": "cli.replay"})


def read_transcript(path: Path) -> List[Dict[str, Any]]:
    """Decode every Content-Length framed message in ``path``."""
    messages: List[Dict[str, Any]] = []
    with open(path, "rb") as f:
        JsonRpcStreamReader(f).listen(messages.append)
    return messages


async def replay_transcript(
    path: Path,
    editor: Editor,
    *,
    client_name: str = "replay",
    offset_encoding: OffsetEncoding = "utf-16",
    directory: str = ".",
) -> List[Dict[str, Any]]:
    """Dispatch the server messages of a transcript and collect the replies.

    Responses in the transcript are skipped: without the matching client
    request there is no method to route them to.
    """
    config = ConfigManager.load(directory)
    token = Bus.provide(Bus())
    try:
        clients = Clients()
        client = clients.create(
            client_name,
            settings=config.settings.get(client_name),
            offset_encoding=offset_encoding,
        )
        env = HandlerEnv(
            clients=clients,
            editor=editor,
            features=FeatureStore(),
            prompt=make_prompt(editor, config.prompt),
        )
        out = io.BytesIO()
        client.bind(Dispatcher(default_handlers(env), config.handlers), JsonRpcStreamWriter(out))

        for message in read_transcript(path):
            if "method" not in message:
                log.debug("skipping response", {"id": message.get("id")})
                continue
            await client.handle_message(message)

        replies: List[Dict[str, Any]] = []
        JsonRpcStreamReader(io.BytesIO(out.getvalue())).listen(replies.append)
        log.info("replayed transcript", {"path": str(path), "replies": len(replies)})
        return replies
    finally:
        Bus.restore(token)
