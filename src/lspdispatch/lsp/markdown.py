"""Conversion of hover and signature payloads into preview lines."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple


def _split(text: str, trimempty: bool = False) -> List[str]:
    lines = text.replace("\r\n", "\n").split("\n")
    if trimempty:
        while lines and lines[0] == "":
            lines.pop(0)
        while lines and lines[-1] == "":
            lines.pop()
    return lines


def convert_input_to_markdown_lines(value: Any, contents: Optional[List[str]] = None) -> List[str]:
    """Flatten ``MarkedString | MarkedString[] | MarkupContent`` into lines.

    A result consisting of a single empty line is returned as ``[]``.
    """
    contents = [] if contents is None else contents
    if isinstance(value, str):
        contents.extend(_split(value))
    elif isinstance(value, dict):
        if "kind" in value:
            contents.extend(_split(value.get("value") or ""))
        elif "language" in value:
            contents.append(f"```{value['language']}")
            contents.extend(_split(value.get("value") or ""))
            contents.append("```")
    elif isinstance(value, list):
        for marked in value:
            convert_input_to_markdown_lines(marked, contents)
    else:
        raise TypeError(f"unexpected hover contents: {type(value).__name__}")

    if len(contents) == 1 and contents[0] == "":
        return []
    return contents


def _find_parameter(label: str, name: str) -> Optional[Tuple[int, int]]:
    match = re.search(r"(?<!\w)" + re.escape(name) + r"(?!\w)", label)
    if match is None:
        start = label.find(name)
        if start < 0:
            return None
        return start, start + len(name)
    return match.start(), match.end()


def convert_signature_help_to_markdown_lines(
    signature_help: Dict[str, Any],
    filetype: Optional[str] = None,
) -> Tuple[List[str], Optional[Tuple[int, int]]]:
    """Render the active signature.

    Returns the lines and, when the active parameter can be located, its
    ``(start, end)`` span within the signature label.
    """
    signatures = signature_help.get("signatures") or []
    if not signatures:
        return [], None

    active = signature_help.get("activeSignature") or 0
    if active < 0 or active >= len(signatures):
        active = 0
    signature = signatures[active]

    label = signature.get("label", "")
    if filetype:
        label = f"```{filetype}\n{label}\n```"
    contents = _split(label, trimempty=True)

    documentation = signature.get("documentation")
    if documentation:
        if isinstance(documentation, str):
            documentation = {"kind": "plaintext", "value": documentation}
        convert_input_to_markdown_lines(documentation, contents)

    highlight: Optional[Tuple[int, int]] = None
    parameters = signature.get("parameters") or []
    if parameters:
        index = signature.get("activeParameter", signature_help.get("activeParameter")) or 0
        if index < 0 or index >= len(parameters):
            index = 0
        parameter = parameters[index]
        param_label = parameter.get("label")
        if isinstance(param_label, list) and len(param_label) == 2:
            highlight = (param_label[0], param_label[1])
        elif isinstance(param_label, str) and param_label:
            highlight = _find_parameter(signature.get("label", ""), param_label)
        if parameter.get("documentation"):
            convert_input_to_markdown_lines(parameter["documentation"], contents)

    return contents, highlight
