"""Events the native host publishes on its bus."""

from pydantic import BaseModel

from ..protocol import NavEvent, NavEventKind
from .bus import EventBus, EventDefinition


class NavigationProps(BaseModel):
    """A request lifecycle event forwarded by the relay."""

    url: str
    time: float


class HostConnectedProps(BaseModel):
    """First event on every stream: whether the relay is still attached."""

    connected: bool


class PeerDisconnectedProps(BaseModel):
    """The relay closed the channel."""

    error: str | None = None


HostConnected = EventBus.define("host.connected", HostConnectedProps)
NavigationStarted = EventBus.define("navigation.start", NavigationProps)
NavigationCompleted = EventBus.define("navigation.end", NavigationProps)
PeerDisconnected = EventBus.define("peer.disconnected", PeerDisconnectedProps)


def navigation_definition(event: NavEvent) -> EventDefinition[NavigationProps]:
    """Bus event definition for a NavEvent's kind."""
    if event.kind is NavEventKind.START:
        return NavigationStarted
    return NavigationCompleted
