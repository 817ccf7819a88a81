"""Transport base types.

Defines the event shape delivered to consumers, the watch configuration,
and the collaborator protocol that builds and executes streaming requests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel

EVENT_STREAM_MEDIA_TYPE = "text/event-stream"

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_FRAME_BYTES = 64 * 1024 * 1024


class EventType(str, Enum):
    """Event types sent by the database stream."""

    PUT = "put"
    PATCH = "patch"
    KEEP_ALIVE = "keep-alive"
    CANCEL = "cancel"
    AUTH_REVOKED = "auth_revoked"


# Event types that carry a JSON payload line
PAYLOAD_EVENT_TYPES = frozenset({EventType.PUT.value, EventType.PATCH.value})

# Event types after which the server stops sending
TERMINAL_EVENT_TYPES = frozenset({EventType.CANCEL.value, EventType.AUTH_REVOKED.value})


class Event(BaseModel):
    """A change notification received while watching a location.

    Unknown event types are kept verbatim in ``type``. ``path`` and ``data``
    are only populated for ``put`` and ``patch``.
    """

    type: str
    path: str = ""
    data: Any = None

    def is_terminal(self) -> bool:
        """Check if the server ends the stream after this event."""
        return self.type in TERMINAL_EVENT_TYPES


def _env_float(name: str, default: float | None) -> float | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    if value.lower() == "none":
        return None
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e


@dataclass
class WatchConfig:
    """Watch configuration.

    ``max_frame_bytes`` limits a single frame, and the first ``put`` of a watch
    carries the whole subtree at the watched location. It is therefore the
    largest initial snapshot a watch can receive. Raise it (or set
    FIREWATCH_MAX_FRAME_BYTES) for locations holding more than 64 MiB.
    """

    # Connect/write/pool timeout for opening the stream
    timeout: float = DEFAULT_TIMEOUT

    # Maximum silence between bytes before the stream fails (None = wait forever)
    idle_timeout: float | None = None

    # Upper bound for a single buffered frame, including the initial snapshot
    max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES

    # Extra query parameters added to every request
    params: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_frame_bytes <= 0:
            raise ValueError("max_frame_bytes must be positive")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.idle_timeout is not None and self.idle_timeout <= 0:
            raise ValueError("idle_timeout must be positive or None")

    @classmethod
    def from_env(cls) -> WatchConfig:
        """Build a config from FIREWATCH_* environment variables."""
        timeout = _env_float("FIREWATCH_TIMEOUT", DEFAULT_TIMEOUT)
        return cls(
            timeout=DEFAULT_TIMEOUT if timeout is None else timeout,
            idle_timeout=_env_float("FIREWATCH_IDLE_TIMEOUT", None),
            max_frame_bytes=_env_int("FIREWATCH_MAX_FRAME_BYTES", DEFAULT_MAX_FRAME_BYTES),
        )

    def http_timeout(self) -> httpx.Timeout:
        """Timeout for the streaming connection."""
        return httpx.Timeout(self.timeout, read=self.idle_timeout)


@runtime_checkable
class RequestExecutor(Protocol):
    """Collaborator that builds and executes the streaming request.

    Implementations:
    - RealtimeClient: httpx-backed client for a database location
    """

    def make_request(self, method: str, body: Any = None) -> httpx.Request:
        """Build a request for the watched location."""
        ...

    async def execute(self, request: httpx.Request) -> httpx.Response:
        """Send the request and return a response with an unread body."""
        ...
