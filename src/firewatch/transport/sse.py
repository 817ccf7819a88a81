"""Decoding of event-stream frames into Events.

Frames look like:

    event: put
    data: {"path":"/","data":{"foo":"bar"}}

Only ``put`` and ``patch`` carry a data line that must be decoded.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from ..errors import FrameDecodeError
from .base import PAYLOAD_EVENT_TYPES, Event


class ChangePayload(BaseModel):
    """JSON body of a put/patch data line."""

    path: str
    data: Any = None


def _field_value(line: str, name: str) -> str | None:
    """Value of an ``name: value`` line, or None if the line is another field."""
    prefix = f"{name}:"
    if not line.startswith(prefix):
        return None
    value = line[len(prefix) :]
    if value.startswith(" "):
        value = value[1:]
    return value


def frame_lines(frame: bytes | str) -> list[str]:
    """Split a frame into its non-empty lines."""
    if isinstance(frame, bytes):
        try:
            text = frame.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FrameDecodeError(f"Frame is not valid UTF-8: {e}", frame) from e
    else:
        text = frame
    return [line.rstrip("\r") for line in text.split("\n") if line.rstrip("\r")]


def decode_frame(frame: bytes | str) -> Event | None:
    """Decode one frame into an Event.

    Returns None for a blank frame. Raises FrameDecodeError when a put/patch
    frame has no usable payload.
    """
    lines = frame_lines(frame)
    if not lines:
        return None

    event_type = _field_value(lines[0], "event")
    if event_type is None:
        event_type = lines[0]

    if event_type not in PAYLOAD_EVENT_TYPES:
        return Event(type=event_type)

    data_line = None
    for line in lines[1:]:
        data_line = _field_value(line, "data")
        if data_line is not None:
            break
    if data_line is None:
        raise FrameDecodeError(f"'{event_type}' frame has no data line", frame)

    try:
        payload = ChangePayload.model_validate_json(data_line)
    except ValidationError as e:
        raise FrameDecodeError(f"Invalid '{event_type}' payload: {e}", frame) from e

    return Event(type=event_type, path=payload.path, data=payload.data)
