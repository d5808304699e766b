"""Reading of ``lspdispatch.json[c]`` files.

Files are JSONC (``//`` and ``#`` comments) with ``{env:VAR}``
placeholders. A missing file is an empty source; a file that exists but
cannot be read or is not a JSON object is a ``ConfigError``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict

import commentjson

from ..util.log import Log

log = Log.create({"service": "config.loader"})

_ENV_PLACEHOLDER = re.compile(r"\{env:([^}]+)\}")


class ConfigError(Exception):
    """Configuration error."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Config error in {path}: {message}")


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested mappings merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def substitute_env_vars(text: str) -> str:
    """Expand ``{env:VAR}``; unset variables expand to an empty string."""
    return _ENV_PLACEHOLDER.sub(lambda m: os.environ.get(m.group(1), ""), text)


def load_json_file(filepath: str) -> Dict[str, Any]:
    """Parse one config file.

    Raises:
        ConfigError: If the file is unreadable, not JSONC or not an object
    """
    path = Path(filepath)
    if not path.is_file():
        return {}

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(filepath, f"cannot read file: {e}") from e

    try:
        data = commentjson.loads(substitute_env_vars(text))
    except (ValueError, commentjson.JSONLibraryException) as e:
        raise ConfigError(filepath, f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(filepath, f"expected a JSON object, got {type(data).__name__}")
    log.debug("parsed config file", {"path": filepath, "keys": sorted(data)})
    return data
