"""navrelay - bridge browser navigation events to a native process.

The relay observes request lifecycle events, forwards them to a native peer
over a native-messaging channel, and navigates the active tab when the peer
asks it to.
"""

from .actuator import NavigationActuator
from .browser import (
    ALL_URLS,
    RequestDetails,
    RequestEventSource,
    RequestPhase,
    Tab,
    TabController,
    UrlPattern,
)
from .config import HostConfig, RelayConfig
from .dispatcher import CommandDispatcher, encode_uri
from .errors import (
    ActuationFailure,
    ChannelError,
    ConnectError,
    FrameError,
    MalformedCommand,
    RelayError,
    SendError,
)
from .listener import EventListener
from .relay import Relay, RelayState, start_relay

__version__ = "0.1.0"

__all__ = [
    "NavigationActuator",
    "ALL_URLS",
    "RequestDetails",
    "RequestEventSource",
    "RequestPhase",
    "Tab",
    "TabController",
    "UrlPattern",
    "HostConfig",
    "RelayConfig",
    "CommandDispatcher",
    "encode_uri",
    "ActuationFailure",
    "ChannelError",
    "ConnectError",
    "FrameError",
    "MalformedCommand",
    "RelayError",
    "SendError",
    "EventListener",
    "Relay",
    "RelayState",
    "start_relay",
]
