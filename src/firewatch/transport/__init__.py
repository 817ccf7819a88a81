"""Transport layer.

Frame tokenizing and decoding for the database event stream.
"""

from .base import (
    EVENT_STREAM_MEDIA_TYPE,
    Event,
    EventType,
    RequestExecutor,
    WatchConfig,
)
from .framing import FrameScanner, find_frame_end, is_complete_frame, split_frame
from .sse import decode_frame

__all__ = [
    "EVENT_STREAM_MEDIA_TYPE",
    "Event",
    "EventType",
    "RequestExecutor",
    "WatchConfig",
    "FrameScanner",
    "find_frame_end",
    "is_complete_frame",
    "split_frame",
    "decode_frame",
]
