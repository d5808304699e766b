"""Work-done progress bookkeeping for one connection.

Only ``begin`` payloads carry a title on the wire. The ledger remembers
it per token and copies it onto the ``report`` and ``end`` payloads of
the same token, so observers that only see part of a lifecycle still
know what it is about. Messages are assumed to arrive in order; the
ledger does not reorder or deduplicate them.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, Iterator, Optional, Union

from pydantic import BaseModel

from ..core.bus import Bus, BusEvent
from ..util.log import Log

log = Log.create({"service": "lsp.progress"})

ProgressToken = Union[int, str]


class ProgressProps(BaseModel):
    """Properties for the ``lsp.progress`` event.

    Attributes:
        client_id: Connection the progress belongs to
        params: The ``$/progress`` params, with the title filled in
    """
    client_id: int
    params: Dict[str, Any]


# Published with the progress kind ("begin", "report", "end") as pattern
LspProgress = BusEvent.define("lsp.progress", ProgressProps)


class ProgressLedger:
    """Per-connection progress state.

    Attributes:
        pending: token -> title of every begun, not yet ended lifecycle
    """

    def __init__(self, client_id: int, history: Optional[int] = None):
        self.client_id = client_id
        self.pending: Dict[ProgressToken, Optional[str]] = {}
        self._sequence: Deque[Dict[str, Any]] = deque(maxlen=history)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(list(self._sequence))

    def __len__(self) -> int:
        return len(self._sequence)

    def _merge(self, token: ProgressToken, value: Dict[str, Any]) -> Optional[str]:
        kind = value.get("kind")
        if kind == "begin":
            if token in self.pending:
                log.debug("progress begin for active token", {"token": token})
            self.pending[token] = value.get("title")
        elif kind in ("report", "end"):
            if token not in self.pending:
                log.debug("progress without begin", {"token": token, "kind": kind})
            value["title"] = self.pending.get(token)
            if kind == "end":
                self.pending.pop(token, None)
        return kind

    async def on_progress(self, params: Dict[str, Any]) -> Optional[str]:
        """Record one ``$/progress`` payload and broadcast it.

        Returns the payload kind, or ``None`` for payloads that are not
        work-done progress (partial results).
        """
        token = params.get("token")
        value = params.get("value")
        kind = self._merge(token, value) if isinstance(value, dict) else None

        self._sequence.append(params)
        await Bus.publish(
            LspProgress,
            ProgressProps(client_id=self.client_id, params=params),
            pattern=kind,
        )
        return kind

    def on_create(self, token: ProgressToken) -> None:
        """Record a server-initiated ``window/workDoneProgress/create``."""
        self._sequence.append({"token": token})
