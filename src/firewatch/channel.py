"""EventChannel - closable in-process handoff between producer and consumer.

The watch read loop is the single producer; the caller is the consumer.
Closing the channel tells the consumer that the watch has ended.

Usage:
    channel: EventChannel[Event] = EventChannel()
    await client.start_watch(channel)
    async for event in channel:
        ...
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Generic, TypeVar

from .errors import ChannelClosedError

T = TypeVar("T")


class _Closed:
    """Sentinel queued behind the last item on close."""


_CLOSED = _Closed()


class EventChannel(Generic[T]):
    """Unbounded FIFO channel that can be closed exactly once.

    Items sent before ``close()`` are still delivered; after they are
    drained, ``receive()`` raises ChannelClosedError and iteration stops.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[T | _Closed] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def qsize(self) -> int:
        """Number of undelivered items."""
        size = self._queue.qsize()
        return size - 1 if self._closed and size else size

    async def send(self, item: T) -> None:
        """Queue an item for the consumer."""
        if self._closed:
            raise ChannelClosedError("send on closed channel")
        await self._queue.put(item)

    def close(self) -> None:
        """Close the channel. Calling it again is a no-op."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def receive(self) -> T:
        """Wait for the next item."""
        item = await self._queue.get()
        if isinstance(item, _Closed):
            # Leave the sentinel for any other waiting receiver
            self._queue.put_nowait(item)
            raise ChannelClosedError("receive on closed channel")
        return item

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            try:
                item = await self.receive()
            except ChannelClosedError:
                return
            yield item
