"""Message channel abstraction.

A channel connects the relay to exactly one native peer. It owns the wire
encoding; callers exchange plain JSON-object records.

Invocation contracts:
- Message handlers run once per inbound message, in receive order, one at a
  time. An exception in a handler is logged and does not close the channel.
- Disconnect handlers run exactly once, when the peer closes the channel or
  the transport fails. Closing the channel locally does not run them.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from ..errors import ChannelError, SendError

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict[str, Any]], None]
DisconnectHandler = Callable[[ChannelError | None], None]


class ChannelState(str, Enum):
    """Channel lifecycle. DISCONNECTED is terminal."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class MessageChannel(ABC):
    """Abstract bidirectional message channel."""

    def __init__(self) -> None:
        self._state = ChannelState.CONNECTED
        self._message_handlers: list[MessageHandler] = []
        self._disconnect_handlers: list[DisconnectHandler] = []
        self._peer_lost_notified = False
        self._error: ChannelError | None = None
        self._closed = asyncio.Event()

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ChannelState.CONNECTED

    @property
    def error(self) -> ChannelError | None:
        """The failure that disconnected the channel, if any."""
        return self._error

    def on_message(self, handler: MessageHandler) -> None:
        """Register a handler for inbound messages."""
        self._message_handlers.append(handler)

    def on_disconnect(self, handler: DisconnectHandler) -> None:
        """Register a handler for peer-side disconnects.

        If the peer is already gone the handler runs immediately.
        """
        if self._peer_lost_notified:
            self._notify_disconnect(handler)
            return
        self._disconnect_handlers.append(handler)

    def send(self, message: Mapping[str, Any]) -> None:
        """Queue a message for the peer.

        Messages are written in call order. This never waits on the peer.

        Raises:
            SendError: If the channel is disconnected or the message cannot
                be encoded within the size limit.
        """
        if self._state is ChannelState.DISCONNECTED:
            raise SendError("Channel is disconnected")
        self._write(message)

    def start(self) -> None:
        """Begin delivering inbound messages to the registered handlers."""
        return None

    async def wait_closed(self) -> None:
        """Wait until the channel is disconnected for any reason."""
        await self._closed.wait()

    @abstractmethod
    def _write(self, message: Mapping[str, Any]) -> None:
        """Encode and buffer one message."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Tear the channel down locally."""
        ...

    def _deliver(self, message: dict[str, Any]) -> None:
        """Hand one inbound message to every message handler."""
        for handler in list(self._message_handlers):
            try:
                handler(message)
            except Exception:
                logger.exception("Error in channel message handler")

    def _peer_lost(self, error: ChannelError | None = None) -> None:
        """Move to DISCONNECTED because the peer went away."""
        if self._state is ChannelState.DISCONNECTED:
            return

        self._state = ChannelState.DISCONNECTED
        self._error = error
        self._peer_lost_notified = True
        self._closed.set()

        if error is not None:
            logger.warning(f"Channel disconnected: {error}")
        else:
            logger.info("Channel disconnected by peer")

        handlers, self._disconnect_handlers = self._disconnect_handlers, []
        for handler in handlers:
            self._notify_disconnect(handler)

    def _mark_closed(self) -> None:
        """Move to DISCONNECTED because of a local close."""
        if self._state is ChannelState.DISCONNECTED:
            return
        self._state = ChannelState.DISCONNECTED
        self._disconnect_handlers.clear()
        self._closed.set()

    def _notify_disconnect(self, handler: DisconnectHandler) -> None:
        try:
            handler(self._error)
        except Exception:
            logger.exception("Error in channel disconnect handler")


class FailedChannel(MessageChannel):
    """A channel whose connect attempt failed.

    It starts DISCONNECTED and reports ``error`` to every disconnect handler,
    so callers can treat a failed connect like an immediate peer loss.
    """

    def __init__(self, error: ChannelError):
        super().__init__()
        self._peer_lost(error)

    def _write(self, message: Mapping[str, Any]) -> None:
        raise SendError("Channel is disconnected")

    async def close(self) -> None:
        return None
