from collections.abc import Iterator

import pytest

from lspdispatch.core.bus import Bus
from lspdispatch.core.config import ConfigManager
from lspdispatch.util.log import Log, LogFormat, LogLevel


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def bus_context() -> Iterator[None]:
    token = Bus.provide(Bus())
    try:
        yield
    finally:
        Bus.restore(token)


@pytest.fixture(autouse=True)
def _config_teardown() -> Iterator[None]:
    yield
    ConfigManager.reset()


@pytest.fixture(autouse=True)
def _log_teardown() -> Iterator[None]:
    level = Log.level()
    yield
    Log.configure(level=level, format=LogFormat.KV, console=False, file=False)
