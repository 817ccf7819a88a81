"""Watch Session - a single streaming subscription per client.

Owns the watching/not-watching state, opens the event stream through the
request collaborator, and runs the read loop as a background task that
decodes frames and forwards Events to the consumer channel.

Lifecycle:
- start_watch(): idle -> connecting -> watching (read loop started)
- stop_watch() or stream end / terminal event: watching -> idle
- The consumer channel is closed once the read loop has finished sending.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import httpx

from .channel import EventChannel
from .errors import (
    ChannelClosedError,
    FrameDecodeError,
    WatchError,
    WatchSetupError,
    WatchStreamError,
)
from .transport.base import (
    DEFAULT_MAX_FRAME_BYTES,
    EVENT_STREAM_MEDIA_TYPE,
    Event,
    EventType,
    RequestExecutor,
)
from .transport.framing import FrameScanner
from .transport.sse import decode_frame

logger = logging.getLogger(__name__)

# Callback types
ErrorHandler = Callable[[WatchError], None]
AuthRevokedHandler = Callable[[Event], None]


class WatchState(str, Enum):
    """Watch state machine."""

    IDLE = "idle"
    CONNECTING = "connecting"
    WATCHING = "watching"


@dataclass
class _Watch:
    """Resources owned by one watch, from connect to teardown."""

    response: httpx.Response
    channel: EventChannel[Event]
    stop: asyncio.Event = field(default_factory=asyncio.Event)
    response_closed: bool = False


class WatchSession:
    """Runs at most one watch at a time for a request collaborator.

    Errors after the watch is established never propagate to the caller.
    They are logged, kept in ``last_error`` and passed to ``on_error``.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        *,
        max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES,
        on_error: ErrorHandler | None = None,
        on_auth_revoked: AuthRevokedHandler | None = None,
    ):
        self._executor = executor
        self._max_frame_bytes = max_frame_bytes
        self._on_error = on_error
        self._on_auth_revoked = on_auth_revoked
        self._state = WatchState.IDLE
        self._watch: _Watch | None = None
        # Read loops that have not finished, including ones for stopped watches
        self._reader_tasks: set[asyncio.Task[None]] = set()
        self._last_error: WatchError | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> WatchState:
        """Current watch state."""
        return self._state

    @property
    def watching(self) -> bool:
        """Check if a watch is active."""
        return self._state == WatchState.WATCHING

    @property
    def last_error(self) -> WatchError | None:
        """Most recent error reported by a read loop."""
        return self._last_error

    async def start_watch(self, channel: EventChannel[Event]) -> None:
        """Open the event stream and forward its events to ``channel``.

        Returns as soon as the connection is open. If a watch is already
        active, ``channel`` is closed immediately and nothing else happens.

        Raises:
            WatchSetupError: The request could not be built or executed.
        """
        async with self._lock:
            if self._state == WatchState.WATCHING:
                logger.warning("Already watching; closing the channel passed to start_watch")
                channel.close()
                return

            self._state = WatchState.CONNECTING
            try:
                request = self._executor.make_request("GET", None)
                request.headers["Accept"] = EVENT_STREAM_MEDIA_TYPE
                response = await self._executor.execute(request)
            except Exception as e:
                self._state = WatchState.IDLE
                raise WatchSetupError(f"Failed to start watch: {e}") from e
            except BaseException:
                self._state = WatchState.IDLE
                raise

            watch = _Watch(response=response, channel=channel)
            self._watch = watch
            self._state = WatchState.WATCHING
            task = asyncio.create_task(self._read_loop(watch))
            self._reader_tasks.add(task)
            task.add_done_callback(self._reader_tasks.discard)

            logger.info(f"Watching {request.url.copy_remove_param('auth')}")

    def stop_watch(self) -> None:
        """Signal the active watch to stop. No-op when not watching."""
        watch = self._watch
        if watch is None:
            return

        logger.info("Stopping watch")
        watch.stop.set()
        self._release(watch)

    async def wait_closed(self) -> None:
        """Wait until every read loop has finished, not only the newest one."""
        while self._reader_tasks:
            await asyncio.wait(set(self._reader_tasks))

    async def aclose(self) -> None:
        """Stop watching and wait for teardown."""
        self.stop_watch()
        await self.wait_closed()

    def _release(self, watch: _Watch) -> None:
        """Mark ``watch`` as no longer active, if it still is."""
        if self._watch is watch:
            self._watch = None
            self._state = WatchState.IDLE

    async def _read_loop(self, watch: _Watch) -> None:
        """Pump frames until the stream ends or a stop is requested."""
        pump = asyncio.create_task(self._pump(watch))
        stop_requested = asyncio.create_task(watch.stop.wait())
        try:
            await asyncio.wait({pump, stop_requested}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_requested.cancel()
            # Interrupts a pending read when stop won the race
            pump.cancel()
            outcome, _ = await asyncio.gather(pump, stop_requested, return_exceptions=True)

            await self._close_response(watch)
            self._release(watch)

            if isinstance(outcome, Exception) and not watch.stop.is_set():
                self._report(self._as_stream_error(outcome))

            watch.channel.close()
            logger.info("Watch ended")

    async def _pump(self, watch: _Watch) -> None:
        """Decode frames from the response and forward them in order."""
        scanner = FrameScanner(watch.response.aiter_bytes(), self._max_frame_bytes)

        async for frame in scanner:
            try:
                event = decode_frame(frame)
            except FrameDecodeError as e:
                self._report(e)
                continue

            if event is None:
                continue

            if watch.stop.is_set():
                return

            if event.type == EventType.KEEP_ALIVE.value:
                logger.debug("Received keep-alive")
                continue

            try:
                await watch.channel.send(event)
            except ChannelClosedError:
                logger.info("Consumer closed the channel; ending watch")
                return

            if event.type == EventType.AUTH_REVOKED.value:
                self._notify_auth_revoked(event)

            if event.is_terminal():
                logger.info(f"Server ended the watch with '{event.type}'")
                return

        logger.info("Event stream closed by server")

    async def _close_response(self, watch: _Watch) -> None:
        """Close the response stream once."""
        if watch.response_closed:
            return
        watch.response_closed = True
        try:
            await watch.response.aclose()
        except httpx.HTTPError as e:
            logger.debug(f"Error closing event stream: {e}")

    @staticmethod
    def _as_stream_error(error: Exception) -> WatchStreamError:
        if isinstance(error, WatchStreamError):
            return error
        stream_error = WatchStreamError(f"Event stream failed: {error}")
        stream_error.__cause__ = error
        return stream_error

    def _report(self, error: WatchError) -> None:
        """Record an asynchronous error and hand it to on_error."""
        self._last_error = error
        if isinstance(error, FrameDecodeError):
            logger.warning(f"Skipping malformed frame: {error}")
        else:
            logger.error(f"Watch error: {error}")

        if self._on_error is not None:
            try:
                self._on_error(error)
            except Exception:
                logger.exception("Error in on_error handler")

    def _notify_auth_revoked(self, event: Event) -> None:
        if self._on_auth_revoked is None:
            return
        try:
            self._on_auth_revoked(event)
        except Exception:
            logger.exception("Error in on_auth_revoked handler")
