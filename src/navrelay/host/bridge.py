"""Native host bridge.

Connects the relay's channel to the host's event bus:

- Inbound NavEvents are validated and published, in receive order, as
  ``navigation.start`` / ``navigation.end``.
- ``navigate()`` writes a navigate command back to the relay.
- When the relay closes the channel, ``peer.disconnected`` is published once.
- ``events()`` feeds HTTP streams and ends with ``peer.disconnected``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any

from pydantic import ValidationError

from ..errors import ChannelError
from ..protocol import NavEvent, NavigateCommand
from ..transport import MessageChannel
from .bus import EventBus
from .events import (
    HostConnected,
    HostConnectedProps,
    NavigationProps,
    PeerDisconnected,
    PeerDisconnectedProps,
    navigation_definition,
)

logger = logging.getLogger(__name__)


class NativeHostBridge:
    """Relays channel traffic to and from the event bus."""

    def __init__(self, channel: MessageChannel, bus: EventBus | None = None) -> None:
        self.channel = channel
        self.bus = bus or EventBus()
        self._inbox: asyncio.Queue[NavEvent | PeerDisconnectedProps] = asyncio.Queue()
        self._pump: asyncio.Task[None] | None = None
        self._farewell: PeerDisconnectedProps | None = None
        self.received = 0

    @property
    def connected(self) -> bool:
        return self.channel.is_connected

    def start(self) -> None:
        """Register channel handlers and start publishing."""
        if self._pump is not None:
            return
        self.channel.on_message(self._on_message)
        self.channel.on_disconnect(self._on_disconnect)
        self._pump = asyncio.get_running_loop().create_task(self._publish_loop())
        self.channel.start()

    def navigate(self, url: str) -> NavigateCommand:
        """Ask the relay to point the active tab at ``url``.

        Raises:
            SendError: If the channel is down or the command is too large.
        """
        command = NavigateCommand(url=url)
        self.channel.send(command.to_wire())
        logger.info(f"Sent navigate command for {url}")
        return command

    async def events(self) -> AsyncIterator[dict[str, Any]]:
        """Yield bus payloads for one subscriber until the relay disconnects.

        The first payload is ``host.connected``. The iterator returns right
        after yielding ``peer.disconnected``, even for subscribers that arrive
        after the relay has gone.
        """
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        unsubscribe = self.bus.subscribe_all(queue.put)
        farewell = self._farewell
        try:
            yield HostConnected.payload(HostConnectedProps(connected=farewell is None))
            if farewell is not None:
                yield PeerDisconnected.payload(farewell)
                return

            while True:
                payload = await queue.get()
                yield payload
                if payload["type"] == PeerDisconnected.type:
                    return
        finally:
            unsubscribe()

    async def wait_closed(self) -> None:
        """Wait for the channel to close and pending events to be published."""
        await self.channel.wait_closed()
        if self._pump is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._pump

    async def close(self) -> None:
        await self.channel.close()
        if self._pump is not None and not self._pump.done():
            self._pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._pump

    def _on_message(self, message: dict[str, Any]) -> None:
        try:
            event = NavEvent.from_wire(message)
        except ValidationError:
            logger.warning(f"Ignoring unrecognized message from relay: {message!r}")
            return
        self.received += 1
        self._inbox.put_nowait(event)

    def _on_disconnect(self, error: ChannelError | None) -> None:
        self._inbox.put_nowait(PeerDisconnectedProps(error=str(error) if error else None))

    async def _publish_loop(self) -> None:
        while True:
            item = await self._inbox.get()
            if isinstance(item, PeerDisconnectedProps):
                await self.bus.publish(PeerDisconnected, item)
                self._farewell = item
                return

            await self.bus.publish(
                navigation_definition(item),
                NavigationProps(url=item.url, time=item.timestamp_millis),
            )
