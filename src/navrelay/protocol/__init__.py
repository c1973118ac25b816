"""Message schema shared by the relay and the native host.

- NavEvent: relay → peer, one per request lifecycle phase
- Command: peer → relay, tagged by ``type``
"""

from .commands import (
    Command,
    CommandType,
    NavigateCommand,
    UnknownCommand,
    parse_command,
)
from .events import NavEvent, NavEventKind, now_millis

__all__ = [
    "Command",
    "CommandType",
    "NavigateCommand",
    "UnknownCommand",
    "parse_command",
    "NavEvent",
    "NavEventKind",
    "now_millis",
]
