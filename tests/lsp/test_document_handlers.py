from __future__ import annotations

import pytest

from lspdispatch.lsp.editor import NotifyLevel
from tests.helpers import FakeEditor, Harness


@pytest.mark.anyio
async def test_hover_markdown_opens_preview_with_focus_id() -> None:
    harness = Harness()

    reply = await harness.dispatch(
        "textDocument/hover",
        {"contents": {"kind": "markdown", "value": "# Title\nbody"}},
        config={"border": "single"},
    )

    assert reply == "preview"
    assert harness.editor.previews == [{
        "lines": ["# Title", "body"],
        "syntax": "markdown",
        "options": {"border": "single", "focus_id": "textDocument/hover"},
        "highlight": None,
    }]


@pytest.mark.anyio
async def test_hover_plaintext_trims_empty_edges() -> None:
    harness = Harness()

    await harness.dispatch("textDocument/hover", {"contents": {"kind": "plaintext", "value": "\nint x\n\n"}})

    assert harness.editor.previews[0]["lines"] == ["int x"]
    assert harness.editor.previews[0]["syntax"] == "plaintext"


@pytest.mark.anyio
async def test_hover_marked_strings_are_fenced() -> None:
    harness = Harness()

    await harness.dispatch("textDocument/hover", {"contents": [{"language": "python", "value": "def f(): ..."}, "doc"]})

    assert harness.editor.previews[0]["lines"] == ["```python", "def f(): ...", "```", "doc"]


@pytest.mark.anyio
@pytest.mark.parametrize("result", [None, {"contents": ""}, {"contents": []}, {"contents": {"kind": "plaintext", "value": ""}}])
async def test_hover_without_information(result) -> None:  # type: ignore[no-untyped-def]
    harness = Harness()

    await harness.dispatch("textDocument/hover", result)

    assert harness.editor.notices == [("No information available", NotifyLevel.INFO)]
    assert harness.editor.previews == []


@pytest.mark.anyio
async def test_hover_silent_and_stale_buffer() -> None:
    harness = Harness(FakeEditor(bufnr=1))

    await harness.dispatch("textDocument/hover", None, config={"silent": True})
    await harness.dispatch("textDocument/hover", {"contents": "x"}, bufnr=2)

    assert harness.editor.notices == []
    assert harness.editor.previews == []


@pytest.mark.anyio
async def test_signature_help_highlights_active_parameter() -> None:
    harness = Harness()
    result = {
        "signatures": [{
            "label": "f(a, b)",
            "parameters": [{"label": "a"}, {"label": [5, 6]}],
        }],
        "activeParameter": 1,
    }

    await harness.dispatch("textDocument/signatureHelp", result)

    preview = harness.editor.previews[0]
    assert preview["lines"] == ["```python", "f(a, b)", "```"]
    assert preview["highlight"] == (1, 5, 6)
    assert preview["options"] == {"focus_id": "textDocument/signatureHelp"}


@pytest.mark.anyio
async def test_signature_help_label_parameter_is_located_by_name() -> None:
    harness = Harness()
    result = {"signatures": [{"label": "g(count, c)", "parameters": [{"label": "count"}, {"label": "c"}]}], "activeParameter": 1}

    await harness.dispatch("textDocument/signatureHelp", result)

    assert harness.editor.previews[0]["highlight"] == (1, 9, 10)


@pytest.mark.anyio
@pytest.mark.parametrize("result", [None, {"signatures": []}])
async def test_signature_help_unavailable_is_echoed(result) -> None:  # type: ignore[no-untyped-def]
    harness = Harness()

    await harness.dispatch("textDocument/signatureHelp", result)
    await harness.dispatch("textDocument/signatureHelp", result, config={"silent": True})

    assert harness.editor.echoes == ["No signature help available"]
    assert harness.editor.notices == []


@pytest.mark.anyio
async def test_completion_uses_keyword_before_cursor() -> None:
    editor = FakeEditor(cursor=(3, 9), current_line="    os.pa")
    harness = Harness(editor)
    result = {
        "isIncomplete": False,
        "items": [
            {"label": "path", "kind": 9, "detail": "module"},
            {"label": "pardir", "kind": 21, "sortText": "0"},
            {"label": "sep", "kind": 21},
        ],
    }

    await harness.dispatch("textDocument/completion", result)

    start, matches = editor.completions[0]
    assert start == 8
    assert [m["word"] for m in matches] == ["pardir", "path"]
    assert matches[1]["kind"] == "Module"
    assert matches[1]["menu"] == "module"


@pytest.mark.anyio
async def test_completion_snippets_insert_placeholder_defaults() -> None:
    editor = FakeEditor(cursor=(1, 2), current_line="pr")
    harness = Harness(editor)

    await harness.dispatch("textDocument/completion", [
        {"label": "print", "insertText": "print(${1:value})$0", "insertTextFormat": 2},
    ])

    assert editor.completions[0] == (1, [{
        "word": "print(value)",
        "abbr": "print",
        "kind": "Unknown",
        "menu": "",
        "info": "",
        "icase": 1,
        "dup": 1,
        "empty": 1,
    }])


@pytest.mark.anyio
async def test_completion_empty_result_does_nothing() -> None:
    harness = Harness()

    await harness.dispatch("textDocument/completion", [])

    assert harness.editor.completions == []


@pytest.mark.anyio
async def test_rename_applies_workspace_edit() -> None:
    harness = Harness(offset_encoding="utf-8")
    edit = {"changes": {"file:///src/a.py": [{"range": {}, "newText": "y"}]}}

    await harness.dispatch("textDocument/rename", edit)
    await harness.dispatch("textDocument/rename", None)

    assert harness.editor.edits == [edit]
    assert harness.editor.notices == [("Language server couldn't provide rename result", NotifyLevel.INFO)]


@pytest.mark.anyio
@pytest.mark.parametrize("method", ["textDocument/formatting", "textDocument/rangeFormatting"])
async def test_formatting_applies_text_edits_to_buffer(method: str) -> None:
    harness = Harness(offset_encoding="utf-32")
    edits = [{"range": {}, "newText": "x"}]

    await harness.dispatch(method, edits, bufnr=4)
    await harness.dispatch(method, None, bufnr=4)

    assert harness.editor.text_edits == [(edits, 4, "utf-32")]


@pytest.mark.anyio
async def test_document_highlight() -> None:
    harness = Harness()
    refs = [{"range": {}, "kind": 1}]

    await harness.dispatch("textDocument/documentHighlight", refs, bufnr=2)

    assert harness.editor.highlights == [(2, refs, "utf-16")]
