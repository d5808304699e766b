"""Global XDG-compliant directory paths for lsp-dispatch.

Log files and the global configuration file live in the per-user
directories reported by ``platformdirs``.
"""

import os
from pathlib import Path

from platformdirs import user_config_dir, user_data_dir, user_state_dir

APP_NAME = "lsp-dispatch"


class GlobalPath:
    """Global path management for lsp-dispatch directories."""

    _initialized = False

    @classmethod
    def home(cls) -> str:
        """Get user home directory, with override for testing."""
        return os.environ.get("LSPDISPATCH_TEST_HOME", str(Path.home()))

    @classmethod
    def data(cls) -> str:
        """Application data directory."""
        return user_data_dir(APP_NAME)

    @classmethod
    def log(cls) -> str:
        """Log file directory."""
        return str(Path(cls.data()) / "log")

    @classmethod
    def config(cls) -> str:
        """Configuration directory."""
        return user_config_dir(APP_NAME)

    @classmethod
    def state(cls) -> str:
        """State/runtime data directory."""
        return user_state_dir(APP_NAME)

    @classmethod
    def initialize(cls) -> None:
        """Create all required directories."""
        if cls._initialized:
            return

        for path in [cls.data(), cls.config(), cls.state(), cls.log()]:
            Path(path).mkdir(parents=True, exist_ok=True)

        cls._initialized = True
