"""Shared test fixtures for pollcast."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from pollcast._errors import FetchError
from pollcast.observability.collector import StatsCollector
from pollcast.observability.logger import SocketLogger
from pollcast.reactive.signals import ValueSignal
from pollcast.transport import ClientConnection


class FakeConnection(ClientConnection):
    """In-memory connection handle recording everything pushed to it."""

    def __init__(self, path: str = "/", *, fail: bool = False, answer_pings: bool = True) -> None:
        super().__init__(path=path)
        self.sent: list[Any] = []
        self.fail = fail
        self.answer_pings = answer_pings
        self.pings = 0
        self.terminated = False

    async def send(self, message: str) -> None:
        if self.fail:
            raise ConnectionError("socket gone")
        self.sent.append(json.loads(message))

    async def ping(self) -> None:
        self.pings += 1
        if self.answer_pings:
            self.mark_alive()

    def terminate(self) -> None:
        self.terminated = True


class FakeSocket:
    """Async iterator of incoming frames that ends when ``close()`` is called."""

    def __init__(self) -> None:
        self._closed = asyncio.Event()

    def __aiter__(self) -> FakeSocket:
        return self

    async def __anext__(self) -> str:
        await self._closed.wait()
        raise StopAsyncIteration

    def close(self) -> None:
        self._closed.set()


class StubFetcher:
    """Fetcher returning queued payloads per source type.

    Each fetch pops the next queued item; the last one repeats.  Queued
    exceptions are raised.  Set ``gate`` to hold fetches until it is set.
    """

    def __init__(self, responses: dict[str, list[Any]] | None = None) -> None:
        self.responses = {k: list(v) for k, v in (responses or {}).items()}
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None
        self.active = 0
        self.max_active = 0

    async def fetch(self, source: Any) -> Any:
        self.calls.append(source.type)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            queue = self.responses.get(source.type) or []
            if not queue:
                raise FetchError(source.type, "no stub response")
            item = queue.pop(0) if len(queue) > 1 else queue[0]
            if isinstance(item, Exception):
                raise item
            return item
        finally:
            self.active -= 1


async def settle(rounds: int = 5) -> None:
    """Let pending callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def logger() -> SocketLogger:
    return SocketLogger(enabled=False)


@pytest.fixture
def collector() -> StatsCollector:
    return StatsCollector()


@pytest.fixture
def paused() -> ValueSignal[bool]:
    return ValueSignal(True, "paused")
