"""Native host: the peer process the relay launches.

Reads NavEvents from the relay over stdio, publishes them on an event bus,
serves them over HTTP, and forwards navigate requests back to the relay.
"""

from .app import create_app, run_host
from .bridge import NativeHostBridge
from .bus import EventBus, EventDefinition
from .events import NavigationCompleted, NavigationStarted, PeerDisconnected

__all__ = [
    "create_app",
    "run_host",
    "NativeHostBridge",
    "EventBus",
    "EventDefinition",
    "NavigationCompleted",
    "NavigationStarted",
    "PeerDisconnected",
]
