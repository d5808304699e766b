"""lsp-dispatch - message dispatch and result aggregation for LSP clients."""

__version__ = "0.1.0"

# Lazy imports to avoid circular dependencies
def __getattr__(name: str):
    """Lazy import module components."""
    if name in ("GlobalPath", "Bus", "BusEvent"):
        from . import core
        return getattr(core, name)
    if name == "Log":
        from .util.log import Log
        return Log
    if name in ("Client", "Clients", "Dispatcher", "HandlerContext", "HandlerEnv", "default_handlers"):
        from . import lsp
        return getattr(lsp, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Version
    "__version__",
    # Core
    "GlobalPath",
    "Bus",
    "BusEvent",
    "Log",
    # LSP
    "Client",
    "Clients",
    "Dispatcher",
    "HandlerContext",
    "HandlerEnv",
    "default_handlers",
]
