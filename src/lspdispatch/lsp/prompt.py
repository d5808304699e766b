"""Answering ``window/showMessageRequest`` with a user choice.

``SelectPrompt`` suspends the handling task while the editor's picker is
open and resumes it from the picker callback. ``InputListPrompt`` is for
hosts that cannot suspend: it blocks on a numbered text list. Both reply
with the chosen action item or ``NULL``.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Optional

from ..util.log import Log
from .editor import Editor
from .protocol import NULL

log = Log.create({"service": "lsp.prompt"})

PromptMode = Literal["select", "inputlist"]


def format_title(title: str) -> str:
    """Escape line breaks so a title fits on one line."""
    return title.replace("\r\n", "\\r\\n").replace("\n", "\\n")


class InteractivePrompt(ABC):
    @abstractmethod
    async def choose(self, message: str, actions: List[Dict[str, Any]]) -> Any:
        """Return the chosen action, or ``NULL`` if the user declined."""
        raise NotImplementedError


class SelectPrompt(InteractivePrompt):
    """Picker-backed prompt that suspends the caller until a choice is made."""

    def __init__(self, editor: Editor):
        self.editor = editor

    async def choose(self, message: str, actions: List[Dict[str, Any]]) -> Any:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        def resolve(choice: Any) -> None:
            if not future.done():
                future.set_result(choice)

        def on_choice(choice: Optional[Any]) -> None:
            # Pickers may answer synchronously from inside select().
            loop.call_soon_threadsafe(resolve, NULL if choice is None else choice)

        self.editor.select(
            actions,
            f"{message}: ",
            lambda action: format_title(action["title"]),
            on_choice,
        )
        choice = await future
        log.debug("message request answered", {"choice": None if choice is NULL else choice.get("title")})
        return choice


class InputListPrompt(InteractivePrompt):
    """Blocking numbered-list prompt."""

    def __init__(self, editor: Editor):
        self.editor = editor

    async def choose(self, message: str, actions: List[Dict[str, Any]]) -> Any:
        return self.choose_now(message, actions)

    def choose_now(self, message: str, actions: List[Dict[str, Any]]) -> Any:
        lines = [message, "\nRequest Actions:"]
        lines.extend(
            f"{i}. {format_title(action['title'])}" for i, action in enumerate(actions, start=1)
        )
        choice = self.editor.input_list(lines)
        if choice < 1 or choice > len(actions):
            return NULL
        return actions[choice - 1]


def make_prompt(editor: Editor, mode: PromptMode = "select") -> InteractivePrompt:
    if mode == "inputlist":
        return InputListPrompt(editor)
    if mode == "select":
        return SelectPrompt(editor)
    raise ValueError(f"invalid prompt mode: {mode}")
