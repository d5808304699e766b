from __future__ import annotations

import json
from pathlib import Path

import pytest

from lspdispatch.core.global_paths import GlobalPath
from lspdispatch.util.log import Log, LogFormat, LogLevel


def test_log_writes_console_and_file(monkeypatch, tmp_path: Path, capsys) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setattr(GlobalPath, "log", classmethod(lambda cls: str(tmp_path)))
    Log.configure(level=LogLevel.INFO, format=LogFormat.KV, console=True, file=True, dev=True)

    log = Log.create({"service": "test.log"})
    log.info("dispatching", {"method": "textDocument/hover"})
    Log.close()

    stderr = capsys.readouterr().err
    text = (tmp_path / "dev.log").read_text(encoding="utf-8")

    assert "msg=dispatching" in stderr
    assert "service=test.log" in stderr
    assert "method=textDocument/hover" in text


def test_log_supports_json_format(monkeypatch, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setattr(GlobalPath, "log", classmethod(lambda cls: str(tmp_path)))
    Log.configure(level=LogLevel.INFO, format=LogFormat.JSON, console=False, file=True, dev=True)

    log = Log.create({"service": "test.json"})
    log.warn("slow server", {"params": {"k": "v"}})
    Log.close()

    payload = json.loads((tmp_path / "dev.log").read_text(encoding="utf-8").strip())

    assert payload["level"] == "warn"
    assert payload["msg"] == "slow server"
    assert payload["service"] == "test.json"
    assert payload["params"] == {"k": "v"}


def test_trace_is_below_debug(capsys) -> None:  # type: ignore[no-untyped-def]
    Log.configure(level=LogLevel.DEBUG, console=True, file=False)
    log = Log.create({"service": "test.trace"})

    assert log.enabled(LogLevel.DEBUG)
    assert not log.enabled(LogLevel.TRACE)
    log.trace("hidden")
    log.debug("shown")

    stderr = capsys.readouterr().err
    assert "hidden" not in stderr
    assert "level=debug" in stderr


def test_exceptions_render_with_cause(capsys) -> None:  # type: ignore[no-untyped-def]
    Log.configure(level=LogLevel.INFO, console=True, file=False)
    log = Log.create({"service": "test.error"})
    try:
        try:
            raise KeyError("token")
        except KeyError as e:
            raise RuntimeError("progress failed") from e
    except RuntimeError as e:
        log.error("handler failed", {"error": e})

    stderr = capsys.readouterr().err
    assert "RuntimeError: progress failed Caused by: KeyError" in stderr


def test_loggers_are_cached_by_service() -> None:
    assert Log.create({"service": "same"}) is Log.create({"service": "same"})
    assert Log.create({"service": "same"}).clone() is not Log.create({"service": "same"})


@pytest.mark.parametrize(
    ("text", "level"),
    [("trace", LogLevel.TRACE), ("Warning", LogLevel.WARN), (None, LogLevel.INFO)],
)
def test_level_parse(text, level) -> None:  # type: ignore[no-untyped-def]
    assert LogLevel.parse(text) == level


def test_invalid_level_and_format() -> None:
    with pytest.raises(ValueError, match="invalid log level"):
        LogLevel.parse("loud")
    with pytest.raises(ValueError, match="invalid log format"):
        LogFormat.parse("xml")
