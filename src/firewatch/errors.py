"""Exceptions raised and reported by the watch client.

Setup errors are raised synchronously from ``start_watch``. Everything that
happens after the read loop starts is reported through logging and the
session's ``on_error`` callback instead.
"""

from __future__ import annotations


class WatchError(Exception):
    """Base class for watch failures."""


class WatchSetupError(WatchError):
    """Building or executing the streaming request failed."""


class WatchStreamError(WatchError):
    """The event stream failed after the watch was established."""


class FrameTooLargeError(WatchStreamError):
    """An incomplete frame grew past the configured buffer limit."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Frame exceeds {limit} bytes (buffered {size})")
        self.size = size
        self.limit = limit


class FrameDecodeError(WatchError):
    """A frame could not be decoded into an Event."""

    def __init__(self, message: str, frame: bytes | str):
        super().__init__(message)
        self.frame = frame


class ChannelClosedError(Exception):
    """Send or receive on a closed EventChannel."""
