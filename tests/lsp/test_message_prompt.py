from __future__ import annotations

import pytest

from lspdispatch.lsp.prompt import InputListPrompt, SelectPrompt, format_title, make_prompt
from lspdispatch.lsp.protocol import NULL
from tests.helpers import FakeEditor, Harness

ACTIONS = [{"title": "Retry"}, {"title": "Open\nlog"}]


def test_format_title_escapes_line_breaks() -> None:
    assert format_title("a\r\nb\nc") == "a\\r\\nb\\nc"


@pytest.mark.anyio
async def test_select_prompt_resumes_with_choice() -> None:
    editor = FakeEditor(choice=ACTIONS[1])

    choice = await SelectPrompt(editor).choose("Server crashed", ACTIONS)

    assert choice == ACTIONS[1]
    assert editor.selects == [{"items": ["Retry", "Open\\nlog"], "prompt": "Server crashed: "}]


@pytest.mark.anyio
async def test_select_prompt_maps_decline_to_null() -> None:
    editor = FakeEditor(choice=None)

    assert await SelectPrompt(editor).choose("Pick", ACTIONS) is NULL


@pytest.mark.anyio
async def test_input_list_prompt_enumerates_actions() -> None:
    editor = FakeEditor(input_choice=1)

    choice = await InputListPrompt(editor).choose("Server crashed", ACTIONS)

    assert choice == ACTIONS[0]
    assert editor.input_lists == [["Server crashed", "\nRequest Actions:", "1. Retry", "2. Open\\nlog"]]


@pytest.mark.parametrize("picked", [0, 3, -1])
def test_input_list_out_of_range_is_null(picked: int) -> None:
    editor = FakeEditor(input_choice=picked)

    assert InputListPrompt(editor).choose_now("Pick", ACTIONS) is NULL


@pytest.mark.anyio
@pytest.mark.parametrize("mode", ["select", "inputlist"])
async def test_both_modes_reply_with_the_same_shape(mode: str) -> None:
    editor = FakeEditor(choice=ACTIONS[0], input_choice=1)
    harness = Harness(editor, prompt=make_prompt(editor, mode))  # type: ignore[arg-type]

    reply = await harness.dispatch(
        "window/showMessageRequest",
        {"type": 3, "message": "Reload?", "actions": ACTIONS},
    )

    assert reply == {"title": "Retry"}


@pytest.mark.anyio
async def test_show_message_request_without_actions() -> None:
    editor = FakeEditor(input_choice=1)
    harness = Harness(editor, prompt=make_prompt(editor, "inputlist"))

    reply = await harness.dispatch("window/showMessageRequest", {"type": 1, "message": "Oops"})

    assert reply is NULL
    assert editor.input_lists == [["Oops", "\nRequest Actions:"]]


def test_make_prompt_rejects_unknown_mode() -> None:
    with pytest.raises(ValueError):
        make_prompt(FakeEditor(), "popup")  # type: ignore[arg-type]
