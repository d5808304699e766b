"""Structured logging with tagged loggers and optional file output.

Every module creates one service-tagged logger::

    log = Log.create({"service": "lsp.dispatch"})
    log.info("dispatching", {"method": "textDocument/hover"})

Levels run TRACE < DEBUG < INFO < WARN < ERROR. TRACE exists for the
per-message records the handler decorator emits; check
``log.enabled(LogLevel.TRACE)`` before building expensive payloads.
"""

import json
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from ..core.global_paths import GlobalPath


class LogLevel(str, Enum):
    """Log severity levels."""
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, value: str | None) -> "LogLevel":
        if value is None:
            return cls.INFO
        text = value.strip().lower()
        if text in {"warn", "warning"}:
            return cls.WARN
        for level in cls:
            if level.value.lower() == text:
                return level
        raise ValueError(f"invalid log level: {value}")


class LogFormat(str, Enum):
    """Log output format."""

    KV = "kv"
    JSON = "json"
    PRETTY = "pretty"

    @classmethod
    def parse(cls, value: str | None) -> "LogFormat":
        if value is None:
            return cls.KV
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"invalid log format: {value}") from None


LEVEL_PRIORITY = {
    LogLevel.TRACE: 0,
    LogLevel.DEBUG: 1,
    LogLevel.INFO: 2,
    LogLevel.WARN: 3,
    LogLevel.ERROR: 4,
}


@dataclass
class LogConfig:
    """Global logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.KV
    console: bool = False
    file: bool = False
    log_file_path: Optional[str] = None
    _file_handle: Optional[TextIO] = None


_config = LogConfig()
_last_timestamp = time.time()


class Logger:
    """Structured logger carrying a fixed set of tags."""

    def __init__(self, tags: Optional[Dict[str, Any]] = None):
        self.tags = tags or {}

    def enabled(self, level: LogLevel) -> bool:
        """Whether records at ``level`` reach any sink."""
        return LEVEL_PRIORITY[level] >= LEVEL_PRIORITY[_config.level]

    def _normalize(self, value: Any) -> Any:
        if isinstance(value, BaseException):
            text = f"{type(value).__name__}: {value}"
            if value.__cause__ is not None:
                text += f" Caused by: {self._normalize(value.__cause__)}"
            return text
        if value is None or isinstance(value, (dict, list, tuple, int, float, bool)):
            return value
        return str(value)

    def _value(self, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, (dict, list, tuple)):
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
        text = str(value)
        if text == "" or any(ch.isspace() for ch in text) or "=" in text:
            return json.dumps(text, ensure_ascii=False)
        return text

    def _render(
        self,
        level: LogLevel,
        message: Any,
        extra: Optional[Dict[str, Any]] = None,
    ) -> str:
        global _last_timestamp

        now = time.time()
        delta_ms = int((now - _last_timestamp) * 1000)
        _last_timestamp = now

        data = {
            k: self._normalize(v)
            for k, v in {**self.tags, **(extra or {})}.items()
            if v is not None
        }
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")

        if _config.format == LogFormat.JSON:
            payload = {
                "time": stamp,
                "delta_ms": delta_ms,
                "level": level.value.lower(),
                "msg": self._normalize(message),
                **data,
            }
            return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str) + "\n"

        pairs = " ".join(f"{k}={self._value(v)}" for k, v in data.items())
        if _config.format == LogFormat.PRETTY:
            text = "" if message is None else str(message)
            suffix = f" ({pairs})" if pairs else ""
            return f"{stamp} {level.value} {text}{suffix} +{delta_ms}ms\n"

        parts = [
            stamp,
            f"+{delta_ms}ms",
            f"level={level.value.lower()}",
            f"msg={self._value(self._normalize(message))}",
            pairs,
        ]
        return " ".join(part for part in parts if part) + "\n"

    def _emit(self, level: LogLevel, message: Any, extra: Optional[Dict[str, Any]]) -> None:
        if not self.enabled(level):
            return
        line = self._render(level, message, extra)
        if _config.console:
            sys.stderr.write(line)
            sys.stderr.flush()
        if _config.file and _config._file_handle:
            _config._file_handle.write(line)
            _config._file_handle.flush()

    def trace(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log trace message."""
        self._emit(LogLevel.TRACE, message, extra)

    def debug(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log debug message."""
        self._emit(LogLevel.DEBUG, message, extra)

    def info(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log info message."""
        self._emit(LogLevel.INFO, message, extra)

    def warn(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log warning message."""
        self._emit(LogLevel.WARN, message, extra)

    def warning(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        """Compatibility alias for warn()."""
        self._emit(LogLevel.WARN, message, extra)

    def error(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log error message."""
        self._emit(LogLevel.ERROR, message, extra)

    def clone(self) -> 'Logger':
        """Create a copy of this logger with the same tags."""
        return Logger(tags=self.tags.copy())


class Log:
    """Global logging interface and factory."""

    _loggers: Dict[str, Logger] = {}

    @classmethod
    def create(cls, tags: Optional[Dict[str, Any]] = None) -> Logger:
        """Create or retrieve a cached logger instance.

        Loggers tagged with a ``service`` are cached by service name.
        """
        tags = tags or {}
        service = tags.get("service")
        if not isinstance(service, str) or not service:
            return Logger(tags=tags)

        logger = cls._loggers.get(service)
        if logger is None:
            logger = cls._loggers[service] = Logger(tags=tags)
        return logger

    @classmethod
    def level(cls) -> LogLevel:
        return _config.level

    @classmethod
    def configure(
        cls,
        *,
        level: LogLevel | None = None,
        format: LogFormat | None = None,
        console: bool | None = None,
        file: bool | None = None,
        dev: bool = False,
    ) -> None:
        """Configure logging sinks and output format.

        File output goes to ``GlobalPath.log()``; ``dev`` writes a fixed
        ``dev.log`` instead of a timestamped file.
        """
        if level is not None:
            _config.level = level
        if format is not None:
            _config.format = format
        if console is not None:
            _config.console = console
        if file is not None:
            _config.file = file

        cls.close()
        if not _config.file:
            _config.log_file_path = None
            return

        log_dir = Path(GlobalPath.log())
        log_dir.mkdir(parents=True, exist_ok=True)
        cls._cleanup_logs(log_dir)
        if dev:
            log_path = log_dir / "dev.log"
        else:
            stamp = datetime.now().isoformat().split(".")[0].replace(":", "")
            log_path = log_dir / f"{stamp}.log"

        _config.log_file_path = str(log_path)
        _config._file_handle = log_path.open("w", encoding="utf-8")

    @classmethod
    def file(cls) -> str:
        """Get the current log file path."""
        return _config.log_file_path or ""

    @classmethod
    def _cleanup_logs(cls, log_dir: Path) -> None:
        """Remove old log files, keeping only the most recent 10."""
        log_files = sorted(
            log_dir.glob("????-??-??T??????.log"),
            key=lambda p: p.stat().st_mtime,
        )
        for old_file in log_files[:-10]:
            old_file.unlink(missing_ok=True)

    @classmethod
    def close(cls) -> None:
        """Close the log file handle if open."""
        if _config._file_handle:
            _config._file_handle.close()
            _config._file_handle = None
