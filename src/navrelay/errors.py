"""Exception hierarchy for the relay and the native host.

Nothing in this package is fatal to the host process: every error below is
caught at a boundary (channel reader, listener, dispatcher) and logged.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all navrelay errors."""


class ChannelError(RelayError):
    """The message channel failed to connect, send or read."""


class ConnectError(ChannelError):
    """The native peer could not be resolved or launched."""


class SendError(ChannelError):
    """A message could not be written to the channel."""


class FrameError(ChannelError):
    """A frame on the wire was truncated, oversized or not a JSON object."""


class MalformedCommand(RelayError):
    """An inbound record does not have the shape of a command."""

    def __init__(self, message: str, record: object = None):
        super().__init__(message)
        self.record = record


class ActuationFailure(RelayError):
    """The browser rejected a tab update."""
