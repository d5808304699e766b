"""URI and position helpers.

Protocol positions count ``character`` in the connection's offset
encoding; list items carry byte columns. ``byte_index`` converts one
into the other given the text of the line.
"""

from __future__ import annotations

import os
from typing import Callable, Dict, List, Literal
from urllib.parse import quote, unquote, urlparse

OffsetEncoding = Literal["utf-8", "utf-16", "utf-32"]

LineGetter = Callable[[str, int], str]


def fname_to_uri(path: str) -> str:
    """Convert a file path to a ``file://`` URI."""
    path = os.path.abspath(path)
    if os.name == "nt":
        path = "/" + path.replace("\\", "/")
    return "file://" + quote(path, safe="/:")


def uri_to_fname(uri: str) -> str:
    """Convert a ``file://`` URI to a path; other schemes are returned as-is."""
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        return uri
    path = unquote(parsed.path)
    if os.name == "nt" and path.startswith("/"):
        path = path[1:]
    return os.path.normpath(path)


def byte_index(line: str, index: int, encoding: OffsetEncoding) -> int:
    """Byte offset in ``line`` of the ``index``-th unit in ``encoding``.

    The line text is often unknown (unreadable file, non-file URI). Units
    past the end of ``line`` count as one byte each, so an empty line
    gives back ``index``.
    """
    if encoding == "utf-8":
        return index

    if encoding == "utf-32":
        return len(line[:index].encode("utf-8")) + max(index - len(line), 0)

    if encoding != "utf-16":
        raise ValueError(f"invalid offset encoding: {encoding}")

    units = 0
    for i, ch in enumerate(line):
        if units >= index:
            return len(line[:i].encode("utf-8"))
        units += 2 if ord(ch) > 0xFFFF else 1
    return len(line.encode("utf-8")) + max(index - units, 0)


class FileLines:
    """Line source reading files from disk, cached per file.

    Missing files and rows yield an empty string.
    """

    def __init__(self) -> None:
        self._cache: Dict[str, List[str]] = {}

    def __call__(self, filename: str, row: int) -> str:
        lines = self._cache.get(filename)
        if lines is None:
            try:
                with open(filename, "r", encoding="utf-8", errors="replace") as f:
                    lines = f.read().splitlines()
            except OSError:
                lines = []
            self._cache[filename] = lines
        if 0 <= row < len(lines):
            return lines[row]
        return ""
