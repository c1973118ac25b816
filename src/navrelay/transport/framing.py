"""Native messaging framing.

Each message is a UTF-8 JSON object preceded by a 32-bit unsigned length
header in the machine's native byte order:

    +----------------+---------------------------+
    | length (=I, 4) | JSON body (length bytes)  |
    +----------------+---------------------------+

The browser enforces different limits per direction, so callers pass the
limit that applies to the direction they are reading or writing.
"""

from __future__ import annotations

import asyncio
import json
import struct
from collections.abc import Mapping
from typing import Any

from ..errors import FrameError, SendError

# Native byte order, standard 4-byte size, no alignment padding
HEADER = struct.Struct("=I")
HEADER_SIZE = HEADER.size

# Browser limits for native messaging
MAX_TO_HOST = 64 * 1024 * 1024
MAX_FROM_HOST = 1024 * 1024

ENCODING = "utf-8"


def encode_frame(message: Mapping[str, Any], max_size: int = MAX_TO_HOST) -> bytes:
    """Encode a message as header + JSON body.

    Raises:
        SendError: If the message is not JSON-serializable or the body
            exceeds ``max_size``.
    """
    try:
        body = json.dumps(dict(message), ensure_ascii=False, separators=(",", ":")).encode(ENCODING)
    except (TypeError, ValueError) as e:
        raise SendError(f"Message is not JSON-serializable: {e}") from e

    if len(body) > max_size:
        raise SendError(f"Message of {len(body)} bytes exceeds limit of {max_size} bytes")

    return HEADER.pack(len(body)) + body


def decode_body(body: bytes) -> dict[str, Any]:
    """Decode a frame body into a JSON object."""
    try:
        data = json.loads(body.decode(ENCODING))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise FrameError(f"Invalid JSON in frame: {e}") from e

    if not isinstance(data, dict):
        raise FrameError(f"Frame body is {type(data).__name__}, expected a JSON object")
    return data


def decode_frame(raw: bytes, max_size: int = MAX_FROM_HOST) -> tuple[dict[str, Any], bytes] | None:
    """Decode one frame from the start of ``raw``.

    Returns:
        ``(message, remainder)``, or None if ``raw`` does not yet hold a
        complete frame.
    """
    if len(raw) < HEADER_SIZE:
        return None

    (length,) = HEADER.unpack_from(raw)
    if length > max_size:
        raise FrameError(f"Frame of {length} bytes exceeds limit of {max_size} bytes")

    end = HEADER_SIZE + length
    if len(raw) < end:
        return None
    return decode_body(raw[HEADER_SIZE:end]), raw[end:]


async def read_frame(reader: asyncio.StreamReader, max_size: int = MAX_FROM_HOST) -> dict[str, Any] | None:
    """Read one frame from a stream.

    Returns:
        The decoded message, or None on a clean EOF between frames.

    Raises:
        FrameError: On EOF inside a frame, an oversized frame or a bad body.
    """
    try:
        header = await reader.readexactly(HEADER_SIZE)
    except asyncio.IncompleteReadError as e:
        if not e.partial:
            return None
        raise FrameError("Stream closed inside a frame header") from e

    (length,) = HEADER.unpack(header)
    if length > max_size:
        raise FrameError(f"Frame of {length} bytes exceeds limit of {max_size} bytes")

    try:
        body = await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        raise FrameError(f"Stream closed after {len(e.partial)} of {length} body bytes") from e

    return decode_body(body)
