"""Realtime database client.

Builds and executes streaming requests for one database location and
exposes the watch operations of its WatchSession.

Usage:
    async with create_client("https://example.firebaseio.com/rooms") as client:
        channel: EventChannel[Event] = EventChannel()
        await client.start_watch(channel)
        async for event in channel:
            print(event.type, event.path, event.data)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from .channel import EventChannel
from .session import AuthRevokedHandler, ErrorHandler, WatchSession, WatchState
from .transport.base import Event, WatchConfig

logger = logging.getLogger(__name__)


@dataclass
class RealtimeClient:
    """Client for one location of a realtime database.

    Implements the RequestExecutor protocol used by WatchSession. Only one
    watch can be active per client; use ``child()`` or another client for
    concurrent watches.
    """

    url: str
    auth: str | None = None
    config: WatchConfig = field(default_factory=WatchConfig)
    on_error: ErrorHandler | None = field(default=None, repr=False)
    on_auth_revoked: AuthRevokedHandler | None = field(default=None, repr=False)
    _http_client: httpx.AsyncClient | None = field(default=None, repr=False)
    _owns_http_client: bool = field(default=True, repr=False)
    _session: WatchSession = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = WatchSession(
            self,
            max_frame_bytes=self.config.max_frame_bytes,
            on_error=self.on_error,
            on_auth_revoked=self.on_auth_revoked,
        )

    @property
    def session(self) -> WatchSession:
        """Watch session for this location."""
        return self._session

    @property
    def watching(self) -> bool:
        """Check if a watch is active."""
        return self._session.watching

    @property
    def state(self) -> WatchState:
        """Current watch state."""
        return self._session.state

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.config.http_timeout(),
                follow_redirects=True,
            )
        return self._http_client

    def child(self, path: str) -> RealtimeClient:
        """Client for a location below this one, sharing the HTTP client."""
        return RealtimeClient(
            url=f"{self.url.rstrip('/')}/{path.strip('/')}",
            auth=self.auth,
            config=self.config,
            on_error=self.on_error,
            on_auth_revoked=self.on_auth_revoked,
            _http_client=self._get_http_client(),
            _owns_http_client=False,
        )

    def make_request(self, method: str, body: Any = None) -> httpx.Request:
        """Build a request for this location's JSON endpoint."""
        params: dict[str, str] = dict(self.config.params)
        if self.auth:
            params["auth"] = self.auth

        return self._get_http_client().build_request(
            method,
            f"{self.url.rstrip('/')}/.json",
            params=params or None,
            json=body,
        )

    async def execute(self, request: httpx.Request) -> httpx.Response:
        """Send a request, leaving the response body unread.

        Raises:
            httpx.HTTPStatusError: The server answered with an error status.
        """
        logger.debug(f"{request.method} {request.url.copy_remove_param('auth')}")
        response = await self._get_http_client().send(request, stream=True)
        if response.is_error:
            await response.aclose()
            response.raise_for_status()
        return response

    async def start_watch(self, channel: EventChannel[Event]) -> None:
        """Watch this location, forwarding events to ``channel``."""
        await self._session.start_watch(channel)

    def stop_watch(self) -> None:
        """Stop the active watch, if any."""
        self._session.stop_watch()

    async def aclose(self) -> None:
        """Stop watching and close the HTTP client."""
        await self._session.aclose()
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> RealtimeClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


def create_client(url: str, auth: str | None = None) -> RealtimeClient:
    """Create a client configured from FIREWATCH_* environment variables.

    Args:
        url: Database location, e.g. https://example.firebaseio.com/rooms
        auth: Optional auth token sent as the ``auth`` query parameter

    Returns:
        RealtimeClient for the location
    """
    return RealtimeClient(url=url, auth=auth, config=WatchConfig.from_env())
