"""
Shared fixtures: 以 httpx.MockTransport 取代網路
"""

import asyncio

import httpx
import pytest

from region_pulse.collectors.base import FetchContext
from region_pulse.storage.resilience_cache import ResilienceCaches


class FakeClock:
    """可手動推進的 monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingHandler:
    """記錄所有 request 的 MockTransport handler"""

    def __init__(self, respond):
        self.respond = respond
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def caches(clock):
    return ResilienceCaches(clock=clock)


@pytest.fixture
def run_adapter(caches):
    """
    以 MockTransport 執行 adapter

    用法: result = run_adapter(bluesky.collect, publisher, respond)
    """
    def _run(adapter, publisher, respond, settings=None, telegram=None):
        handler = respond if isinstance(respond, RecordingHandler) else RecordingHandler(respond)

        async def _main():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                ctx = FetchContext(client, caches=caches, settings=settings, telegram=telegram)
                return await adapter(publisher, ctx)

        return asyncio.run(_main())

    return _run


@pytest.fixture
def recorder():
    """RecordingHandler factory"""
    return RecordingHandler
