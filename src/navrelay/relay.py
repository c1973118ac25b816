"""Navigation relay.

Wires the browser collaborators to a single message channel:

    request events ──► EventListener ──► channel ──► native peer
    native peer ──► channel ──► CommandDispatcher ──► NavigationActuator

The relay owns its channel; there is no module-level channel handle. There is
no reconnection: once the channel is lost the relay stays DISCONNECTED and
process exit is the expected recovery.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from .actuator import NavigationActuator
from .browser import RequestEventSource, TabController
from .config import RelayConfig
from .dispatcher import CommandDispatcher
from .errors import ChannelError, ConnectError
from .listener import EventListener
from .protocol import now_millis
from .transport import FailedChannel, MessageChannel, connect_native

logger = logging.getLogger(__name__)


class RelayState(str, Enum):
    """Relay lifecycle: IDLE → LISTENING → DISCONNECTED, never backwards."""

    IDLE = "idle"
    LISTENING = "listening"
    DISCONNECTED = "disconnected"


class Relay:
    """Bridges browser navigation to a native peer.

    Usage:
        relay = Relay(channel, requests, tabs)
        relay.start()
        await relay.wait_closed()
    """

    def __init__(
        self,
        channel: MessageChannel,
        requests: RequestEventSource,
        tabs: TabController,
        *,
        clock: Callable[[], float] = now_millis,
    ) -> None:
        self.channel = channel
        self.listener = EventListener(channel, clock)
        self.actuator = NavigationActuator(tabs)
        self.dispatcher = CommandDispatcher(self.actuator)
        self._requests = requests
        self._state = RelayState.IDLE

    @property
    def state(self) -> RelayState:
        return self._state

    def start(self) -> None:
        """Register listeners and start handling peer commands."""
        if self._state is not RelayState.IDLE:
            raise RuntimeError(f"Relay cannot start from state {self._state.value}")

        logger.info("Extension loaded")
        self.listener.register(self._requests)
        self.channel.on_message(self.dispatcher)
        self._state = RelayState.LISTENING

        # Runs immediately if the channel never connected
        self.channel.on_disconnect(self._on_disconnect)
        self.channel.start()

    async def stop(self) -> None:
        """Close the channel locally."""
        await self.channel.close()
        self._state = RelayState.DISCONNECTED

    async def wait_closed(self) -> None:
        await self.channel.wait_closed()

    def _on_disconnect(self, error: ChannelError | None) -> None:
        self._state = RelayState.DISCONNECTED
        if error is not None:
            logger.error(f"Disconnected: {error}")
        else:
            logger.info("Disconnected")


async def start_relay(
    requests: RequestEventSource,
    tabs: TabController,
    config: RelayConfig | None = None,
    *,
    clock: Callable[[], float] = now_millis,
) -> Relay:
    """Connect to the configured native peer and start a relay.

    Call this from the host's "extension loaded" signal. A connect failure
    does not raise: the relay starts already DISCONNECTED and the failure is
    logged.
    """
    config = config or RelayConfig.from_env()

    channel: MessageChannel
    try:
        channel = await connect_native(
            config.peer_id,
            manifest_dirs=config.manifest_dirs or None,
            origin=config.origin,
        )
    except ConnectError as e:
        channel = FailedChannel(e)

    relay = Relay(channel, requests, tabs, clock=clock)
    relay.start()
    return relay
