"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from typing import Any

import httpx
import pytest

from firewatch.client import RealtimeClient

DATABASE_URL = "https://example.firebaseio.com/rooms"


class ControlledStream(httpx.AsyncByteStream):
    """Response body that the test feeds chunk by chunk.

    With ``hold_open=True`` the stream blocks after the queued chunks until
    ``end()`` or ``fail()`` is called, or the response is closed. A
    ``close_delay`` makes closing take that many seconds.
    """

    def __init__(
        self,
        chunks: Iterable[bytes] = (),
        *,
        hold_open: bool = False,
        close_delay: float = 0.0,
    ):
        self._queue: asyncio.Queue[bytes | Exception | None] = asyncio.Queue()
        for chunk in chunks:
            self._queue.put_nowait(chunk)
        if not hold_open:
            self._queue.put_nowait(None)
        self.close_count = 0
        self._close_delay = close_delay

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def feed(self, chunk: bytes) -> None:
        self._queue.put_nowait(chunk)

    def end(self) -> None:
        self._queue.put_nowait(None)

    def fail(self, error: Exception) -> None:
        self._queue.put_nowait(error)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                return
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    async def aclose(self) -> None:
        if self._close_delay:
            await asyncio.sleep(self._close_delay)
        self.close_count += 1


class FakeDatabase:
    """Serves queued event streams through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.streams: list[ControlledStream] = []
        self.status_code = 200
        self._pending: list[ControlledStream] = []

    def queue_stream(
        self,
        chunks: Iterable[bytes] = (),
        *,
        hold_open: bool = False,
        close_delay: float = 0.0,
    ) -> ControlledStream:
        stream = ControlledStream(chunks, hold_open=hold_open, close_delay=close_delay)
        self._pending.append(stream)
        return stream

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        stream = self._pending.pop(0) if self._pending else ControlledStream(hold_open=True)
        self.streams.append(stream)
        return httpx.Response(
            self.status_code,
            headers={"Content-Type": "text/event-stream"},
            stream=stream,
        )

    def client(self, url: str = DATABASE_URL, **kwargs: Any) -> RealtimeClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return RealtimeClient(url=url, _http_client=http_client, **kwargs)


@pytest.fixture
def database() -> FakeDatabase:
    """Fake database serving event streams."""
    return FakeDatabase()


async def _collect(channel: Any, timeout: float = 2.0) -> list[Any]:
    async def drain() -> list[Any]:
        return [item async for item in channel]

    return await asyncio.wait_for(drain(), timeout=timeout)


@pytest.fixture
def collect():
    """Drain a channel until it closes (fails after a timeout)."""
    return _collect
