"""Core infrastructure modules."""

from .global_paths import GlobalPath
from .bus import Bus, BusEvent

__all__ = ["GlobalPath", "Bus", "BusEvent"]

# Configuration is imported from its own modules to keep this package light:
# from lspdispatch.core.config import ConfigManager
