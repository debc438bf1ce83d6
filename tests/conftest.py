from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest
from httpx import ASGITransport, AsyncClient

from scopelog.config import get_settings
from scopelog.context.store import reset_store
from scopelog.demo.app import create_app
from scopelog.logger import set_default_sink
from scopelog.sinks import MemorySink


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv("SCOPELOG_REENTRANT_FRAMES", raising=False)
    monkeypatch.delenv("SCOPELOG_OUTPUT", raising=False)
    get_settings.cache_clear()
    reset_store()

    yield

    reset_store()
    set_default_sink(None)
    get_settings.cache_clear()


@pytest.fixture
def sink() -> MemorySink:
    memory = MemorySink()
    set_default_sink(memory)
    return memory


@pytest.fixture
async def api_client(sink: MemorySink) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
