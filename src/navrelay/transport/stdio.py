"""stdio message channel.

Both ends of the relay talk native messaging over a pair of byte streams:

- Relay side: the native host is spawned as a subprocess and the channel
  runs over its stdin/stdout (see ``connect_native``).
- Host side: the channel runs over the process's own stdin/stdout (see
  ``open_stdio_channel``).

The channel disconnects when the read side reaches EOF, when a frame is
invalid, or when the transport raises.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from collections.abc import Mapping
from typing import Any, BinaryIO

from ..errors import ChannelError, ConnectError, SendError
from .base import MessageChannel
from .framing import MAX_FROM_HOST, MAX_TO_HOST, encode_frame, read_frame
from .manifest import find_manifest

logger = logging.getLogger(__name__)


class StreamChannel(MessageChannel):
    """Message channel over an asyncio reader/writer pair.

    Args:
        reader: Stream the peer writes to
        writer: Stream the peer reads from
        max_send_size: Largest body this side may send
        max_receive_size: Largest body this side accepts
        process: The peer process, when this side launched it
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        max_send_size: int = MAX_TO_HOST,
        max_receive_size: int = MAX_FROM_HOST,
        process: asyncio.subprocess.Process | None = None,
    ):
        super().__init__()
        self._reader = reader
        self._writer = writer
        self._max_send_size = max_send_size
        self._max_receive_size = max_receive_size
        self._process = process
        self._reader_task: asyncio.Task[None] | None = None

    @property
    def process(self) -> asyncio.subprocess.Process | None:
        return self._process

    def start(self) -> None:
        """Start delivering inbound messages to the registered handlers."""
        if self._reader_task is None:
            self._reader_task = asyncio.get_running_loop().create_task(self._read_loop())

    def _write(self, message: Mapping[str, Any]) -> None:
        frame = encode_frame(message, self._max_send_size)
        if self._writer.is_closing():
            self._peer_lost(ChannelError("Peer stopped reading"))
            raise SendError("Channel is disconnected")
        self._writer.write(frame)

    async def drain(self) -> None:
        """Wait until the write buffer has been handed to the peer."""
        if not self.is_connected:
            return
        try:
            await self._writer.drain()
        except (ConnectionError, OSError) as e:
            self._peer_lost(ChannelError(f"Transport write failed: {e}"))

    async def close(self) -> None:
        """Close the channel and stop the peer process if this side owns it."""
        self._mark_closed()

        if self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task

        await self._close_writer()

        if self._process is not None and self._process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self._process.terminate()
            await self._process.wait()

    async def _read_loop(self) -> None:
        error: ChannelError | None = None
        try:
            while self.is_connected:
                message = await read_frame(self._reader, self._max_receive_size)
                if message is None:
                    break
                self._deliver(message)
        except ChannelError as e:
            error = e
        except (ConnectionError, OSError) as e:
            error = ChannelError(f"Transport read failed: {e}")

        self._peer_lost(error)
        await self._close_writer()

        if self._process is not None:
            code = await self._process.wait()
            logger.info(f"Native host exited with code {code}")

    async def _close_writer(self) -> None:
        if self._writer.is_closing():
            return
        self._writer.close()
        with contextlib.suppress(Exception):
            await self._writer.wait_closed()


async def connect_native(
    peer_id: str,
    *,
    manifest_dirs: list[str] | None = None,
    origin: str | None = None,
) -> StreamChannel:
    """Launch the native host registered as ``peer_id`` and connect to it.

    The host receives ``origin`` as its first argument, matching how browsers
    launch native messaging hosts.
    Inbound messages flow once the caller invokes ``start()``.

    Raises:
        ConnectError: If the manifest cannot be found or validated, the origin
            is not allowed, or the process cannot be started.
    """
    manifest = find_manifest(peer_id, manifest_dirs)

    if origin is not None and origin not in manifest.allowed_origins:
        raise ConnectError(f"Origin {origin} is not allowed by native host {peer_id}")

    args = [origin] if origin is not None else []
    try:
        process = await asyncio.create_subprocess_exec(
            manifest.path,
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ConnectError(f"Failed to start native host {peer_id}: {e}") from e

    channel = StreamChannel(
        process.stdout,
        process.stdin,
        max_send_size=MAX_TO_HOST,
        max_receive_size=MAX_FROM_HOST,
        process=process,
    )
    logger.info(f"Connected to native host {peer_id} (pid {process.pid})")
    return channel


async def open_stdio_channel(
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> StreamChannel:
    """Open the host side of the channel on this process's stdin/stdout.

    Nothing else may write to stdout once this channel is open.
    Inbound messages flow once the caller invokes ``start()``.
    """
    loop = asyncio.get_running_loop()

    reader = asyncio.StreamReader(limit=MAX_TO_HOST)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, stdin or sys.stdin.buffer)

    transport, proto = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin,
        stdout or sys.stdout.buffer,
    )
    writer = asyncio.StreamWriter(transport, proto, None, loop)

    channel = StreamChannel(
        reader,
        writer,
        max_send_size=MAX_FROM_HOST,
        max_receive_size=MAX_TO_HOST,
    )
    logger.info("stdio channel connected")
    return channel
