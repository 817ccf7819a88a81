"""firewatch - streaming change notifications from a realtime database.

Opens a long-lived event-stream connection to a database location and
delivers typed Events through an EventChannel.
"""

from .channel import EventChannel
from .client import RealtimeClient, create_client
from .errors import (
    ChannelClosedError,
    FrameDecodeError,
    FrameTooLargeError,
    WatchError,
    WatchSetupError,
    WatchStreamError,
)
from .session import WatchSession, WatchState
from .transport.base import Event, EventType, RequestExecutor, WatchConfig

__all__ = [
    "RealtimeClient",
    "create_client",
    "EventChannel",
    "WatchSession",
    "WatchState",
    "Event",
    "EventType",
    "RequestExecutor",
    "WatchConfig",
    "WatchError",
    "WatchSetupError",
    "WatchStreamError",
    "FrameDecodeError",
    "FrameTooLargeError",
    "ChannelClosedError",
]
