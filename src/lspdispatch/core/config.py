"""Configuration management.

Loads and merges configuration from multiple sources with proper precedence.
"""

import json
import os
from contextvars import ContextVar, Token
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config_loader import ConfigError, deep_merge, load_json_file
from .config_schema import Config, HandlerOptions, LoggingConfig
from .global_paths import GlobalPath
from ..util.log import Log, LogFormat, LogLevel

log = Log.create({"service": "config"})

__all__ = [
    "Config",
    "ConfigError",
    "ConfigManager",
    "HandlerOptions",
    "LoggingConfig",
]

CONFIG_FILENAMES = ("lspdispatch.json", "lspdispatch.jsonc")
CONFIG_ENV = "LSPDISPATCH_CONFIG_CONTENT"


_config_var: ContextVar['ConfigManager'] = ContextVar('_config_var')


class ConfigManager:
    """Configuration management.

    Instance-based with ContextVar for scoping. Class methods delegate
    to the current instance.

    Sources, lowest precedence first:
    1. Global config (``GlobalPath.config()/lspdispatch.json``)
    2. Project configs found walking up from the directory (root first)
    3. Inline JSON from ``LSPDISPATCH_CONFIG_CONTENT``
    """

    def __init__(self) -> None:
        self._cache: Optional[Config] = None
        self._sources: List[str] = []

    @classmethod
    def current(cls) -> 'ConfigManager':
        try:
            return _config_var.get()
        except LookupError:
            instance = cls()
            _config_var.set(instance)
            return instance

    @classmethod
    def provide(cls, instance: 'ConfigManager') -> Token['ConfigManager']:
        return _config_var.set(instance)

    @classmethod
    def restore(cls, token: Token['ConfigManager']) -> None:
        _config_var.reset(token)

    @classmethod
    def reset(cls) -> None:
        """Reset cached configuration."""
        inst = cls.current()
        inst._cache = None
        inst._sources = []

    @classmethod
    def load(cls, directory: str = ".") -> Config:
        return cls.current()._load(directory)

    @classmethod
    def get(cls) -> Config:
        inst = cls.current()
        if inst._cache is None:
            return inst._load()
        return inst._cache

    @classmethod
    def sources(cls) -> List[str]:
        return cls.current()._sources.copy()

    @classmethod
    def apply_logging(cls, config: Config) -> None:
        """Push the ``logging`` section into the global logger."""
        section = config.logging
        Log.configure(
            level=LogLevel.parse(section.level) if section.level else None,
            format=LogFormat.parse(section.format) if section.format else None,
            console=section.console,
            file=section.file,
        )

    def _load(self, directory: str = ".") -> Config:
        if self._cache is not None:
            return self._cache

        result: Dict[str, Any] = {}
        sources: List[str] = []

        def merge(filepath: str) -> None:
            nonlocal result
            data = load_json_file(filepath)
            if data:
                result = deep_merge(result, data)
                sources.append(filepath)
                log.info("loaded config", {"path": filepath})

        for filename in CONFIG_FILENAMES:
            merge(os.path.join(GlobalPath.config(), filename))

        project_configs: List[str] = []
        current = Path(directory).resolve()
        while True:
            for filename in CONFIG_FILENAMES:
                filepath = current / filename
                if filepath.exists():
                    project_configs.append(str(filepath))
            if current == current.parent:
                break
            current = current.parent

        for filepath in reversed(project_configs):
            merge(filepath)

        env_config = os.environ.get(CONFIG_ENV)
        if env_config:
            try:
                data = json.loads(env_config)
            except json.JSONDecodeError as e:
                raise ConfigError(CONFIG_ENV, str(e)) from e
            if not isinstance(data, dict):
                raise ConfigError(CONFIG_ENV, "expected a JSON object")
            result = deep_merge(result, data)
            sources.append(CONFIG_ENV)
            log.info("loaded config from environment", {"variable": CONFIG_ENV})

        self._sources = sources
        self._cache = Config.model_validate(result)
        return self._cache
