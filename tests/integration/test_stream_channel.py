"""Integration tests for StreamChannel over a real socket pair."""

import asyncio
import socket
import struct

import pytest

from navrelay.errors import FrameError, SendError
from navrelay.transport import ChannelState, StreamChannel, encode_frame, read_frame


async def channel_pair(**kwargs):
    """A StreamChannel on one end of a socket pair, raw streams on the other."""
    ours, theirs = socket.socketpair()
    reader, writer = await asyncio.open_connection(sock=ours)
    peer_reader, peer_writer = await asyncio.open_connection(sock=theirs)
    return StreamChannel(reader, writer, **kwargs), peer_reader, peer_writer


async def close_peer(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except (ConnectionError, OSError):
        pass


class TestOutbound:
    """Test messages written to the peer."""

    @pytest.mark.anyio
    async def test_messages_arrive_in_send_order(self):
        channel, peer_reader, peer_writer = await channel_pair()
        channel.start()

        for i in range(10):
            channel.send({"type": "start", "url": f"http://a.test/{i}", "time": float(i)})
        await channel.drain()

        received = [await read_frame(peer_reader, 1024) for _ in range(10)]
        assert [m["url"] for m in received] == [f"http://a.test/{i}" for i in range(10)]

        await channel.close()
        await close_peer(peer_writer)

    @pytest.mark.anyio
    async def test_oversized_send_writes_nothing(self):
        """An oversized message raises and leaves the stream untouched."""
        channel, peer_reader, peer_writer = await channel_pair(max_send_size=64)
        channel.start()

        with pytest.raises(SendError, match="exceeds limit"):
            channel.send({"type": "start", "url": "http://a.test/" + "x" * 64, "time": 1.0})
        channel.send({"type": "end", "url": "http://a.test/", "time": 2.0})
        await channel.drain()

        assert await read_frame(peer_reader) == {"type": "end", "url": "http://a.test/", "time": 2.0}
        assert channel.is_connected

        await channel.close()
        await close_peer(peer_writer)

    @pytest.mark.anyio
    async def test_send_after_close_raises(self):
        channel, _, peer_writer = await channel_pair()
        channel.start()
        await channel.close()

        with pytest.raises(SendError):
            channel.send({"type": "start", "url": "http://a.test/", "time": 1.0})

        await close_peer(peer_writer)


class TestInbound:
    """Test messages and disconnects coming from the peer."""

    @pytest.mark.anyio
    async def test_messages_delivered_in_order_then_disconnect_once(self):
        channel, _, peer_writer = await channel_pair()
        received = []
        disconnects = []
        channel.on_message(received.append)
        channel.on_disconnect(disconnects.append)
        channel.start()

        peer_writer.write(encode_frame({"type": "navigate", "url": "http://b.test/"}))
        peer_writer.write(encode_frame({"type": "unknown_cmd"}))
        await peer_writer.drain()
        await close_peer(peer_writer)

        await asyncio.wait_for(channel.wait_closed(), timeout=5)

        assert received == [{"type": "navigate", "url": "http://b.test/"}, {"type": "unknown_cmd"}]
        assert disconnects == [None]
        assert channel.state is ChannelState.DISCONNECTED

        await channel.close()
        assert disconnects == [None]

    @pytest.mark.anyio
    async def test_handler_error_does_not_close_channel(self):
        channel, _, peer_writer = await channel_pair()
        received = []

        def broken(message):
            raise RuntimeError("boom")

        channel.on_message(broken)
        channel.on_message(received.append)
        channel.start()

        peer_writer.write(encode_frame({"n": 1}))
        peer_writer.write(encode_frame({"n": 2}))
        await peer_writer.drain()
        await close_peer(peer_writer)
        await asyncio.wait_for(channel.wait_closed(), timeout=5)

        assert received == [{"n": 1}, {"n": 2}]

    @pytest.mark.anyio
    async def test_invalid_frame_disconnects_with_error(self):
        channel, _, peer_writer = await channel_pair()
        disconnects = []
        channel.on_disconnect(disconnects.append)
        channel.start()

        body = b"nope!"
        peer_writer.write(struct.pack("=I", len(body)) + body)
        await peer_writer.drain()

        await asyncio.wait_for(channel.wait_closed(), timeout=5)

        assert len(disconnects) == 1
        assert isinstance(disconnects[0], FrameError)
        assert channel.error is disconnects[0]

        await close_peer(peer_writer)

    @pytest.mark.anyio
    async def test_oversized_inbound_frame_disconnects(self):
        channel, _, peer_writer = await channel_pair(max_receive_size=16)
        disconnects = []
        channel.on_disconnect(disconnects.append)
        channel.start()

        peer_writer.write(encode_frame({"url": "http://a.test/" + "x" * 32}))
        await peer_writer.drain()

        await asyncio.wait_for(channel.wait_closed(), timeout=5)

        assert "exceeds limit" in str(disconnects[0])

        await close_peer(peer_writer)

    @pytest.mark.anyio
    async def test_handler_registered_after_disconnect_runs_immediately(self):
        channel, _, peer_writer = await channel_pair()
        channel.start()
        await close_peer(peer_writer)
        await asyncio.wait_for(channel.wait_closed(), timeout=5)

        disconnects = []
        channel.on_disconnect(disconnects.append)

        assert disconnects == [None]


class TestLocalClose:
    """Test closing the channel from this side."""

    @pytest.mark.anyio
    async def test_close_does_not_run_disconnect_handlers(self):
        channel, peer_reader, peer_writer = await channel_pair()
        disconnects = []
        channel.on_disconnect(disconnects.append)
        channel.start()

        await channel.close()
        await asyncio.wait_for(channel.wait_closed(), timeout=5)

        assert disconnects == []
        assert channel.state is ChannelState.DISCONNECTED
        assert await read_frame(peer_reader) is None

        await close_peer(peer_writer)
