"""Error formatting utilities.

Turns the errors this package raises or receives into one-line,
user-facing messages.
"""

import json
from typing import Any

from pydantic import ValidationError


def format_error(error: Any) -> str | None:
    """Format known errors into user-friendly messages.

    Returns None if the error type is not recognized, allowing
    fallback to format_unknown_error.
    """
    from ..core.config import ConfigError
    from ..lsp.dispatcher import NoHandlerError
    from ..lsp.types import ResponseError

    if isinstance(error, ConfigError):
        return str(error)

    if isinstance(error, ResponseError):
        return f"{error.code}: {error.message}"

    if isinstance(error, NoHandlerError):
        return f"No handler registered for \"{error.method}\""

    if isinstance(error, ValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in e['loc']) or '<root>'}: {e['msg']}"
            for e in error.errors()
        )
        return f"Invalid {error.title}: {problems}"

    return None


def format_unknown_error(error: Any) -> str:
    """Format any error into a string representation.

    Handles Exception objects, serializable objects, and primitives.
    """
    if isinstance(error, Exception):
        import traceback
        if error.__traceback__:
            return ''.join(traceback.format_exception(type(error), error, error.__traceback__))
        return f"{error.__class__.__name__}: {str(error)}"

    if isinstance(error, (dict, list)):
        try:
            return json.dumps(error, indent=2)
        except (TypeError, ValueError):
            return "Unexpected error (unserializable)"

    return str(error)
