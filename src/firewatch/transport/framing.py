"""Frame tokenizer for the event stream.

A frame is every byte up to and including a blank line, i.e. the first
two consecutive newline bytes:

    event: put\\n
    data: {"path":"/","data":{"foo":"bar"}}\\n
    \\n
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator

from ..errors import FrameTooLargeError
from .base import DEFAULT_MAX_FRAME_BYTES

logger = logging.getLogger(__name__)

FRAME_BOUNDARY = b"\n\n"

def find_frame_end(data: bytes | bytearray, start: int = 0) -> int:
    """Return the offset just past the first frame boundary, or -1.

    The search begins at ``start``. A caller that already searched a prefix
    should pass one byte before its end so a boundary split across two
    appends is still found.
    """
    end = data.find(FRAME_BOUNDARY, start)
    if end == -1:
        return -1
    return end + len(FRAME_BOUNDARY)


def split_frame(data: bytes, at_eof: bool) -> tuple[int, bytes]:
    """Split the next frame off the front of ``data``.

    Returns ``(advance, token)``. When ``data`` holds a blank-line boundary the
    token ends with it. Otherwise the whole input comes back as one incomplete
    frame and it is up to the caller to append more bytes and split again
    (or give up when ``at_eof``). Never raises.
    """
    advance = find_frame_end(data)
    if advance == -1:
        return len(data), bytes(data)
    return advance, bytes(data[:advance])


def is_complete_frame(token: bytes) -> bool:
    """Check if a token returned by split_frame ends on a frame boundary."""
    return token.endswith(FRAME_BOUNDARY)


class FrameScanner:
    """Async iterator turning a byte-chunk stream into frames.

    Incomplete frames stay buffered until more bytes arrive. Each chunk is
    searched once, so a large frame costs time linear in its size. At end
    of stream a trailing non-blank remainder is yielded as the last frame.
    """

    def __init__(
        self,
        chunks: AsyncIterable[bytes],
        max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES,
    ):
        self._chunks = chunks
        self._max_frame_bytes = max_frame_bytes
        self._buffer = bytearray()
        # Bytes at the front of the buffer known to hold no boundary
        self._searched = 0

    @property
    def buffered(self) -> int:
        """Bytes held for the frame in progress."""
        return len(self._buffer)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._chunks:
            if not chunk:
                continue
            self._buffer.extend(chunk)

            while self._buffer:
                advance = find_frame_end(self._buffer, max(self._searched - 1, 0))
                if advance == -1:
                    self._searched = len(self._buffer)
                    break
                token = bytes(self._buffer[:advance])
                del self._buffer[:advance]
                self._searched = 0
                yield token

            if len(self._buffer) > self._max_frame_bytes:
                raise FrameTooLargeError(len(self._buffer), self._max_frame_bytes)

        remainder = bytes(self._buffer)
        self._buffer.clear()
        self._searched = 0
        if remainder.strip():
            _, token = split_frame(remainder, at_eof=True)
            logger.debug(f"Stream ended inside a frame ({len(token)} bytes)")
            yield token
