"""Command Dispatcher - routes peer commands to their handlers.

Unknown command types are logged and ignored so peers can add commands
without breaking older relays. Nothing here ever closes the channel.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from .actuator import NavigationActuator
from .errors import ActuationFailure, MalformedCommand
from .protocol import NavigateCommand, UnknownCommand, parse_command

logger = logging.getLogger(__name__)

# Characters URI encoding leaves alone besides letters, digits and "-_.~"
_URI_SAFE = ";,/?:@&=+$!*'()#"


def encode_uri(url: str) -> str:
    """Percent-encode a URL the way a browser's ``encodeURI`` does.

    Reserved characters keep their meaning; everything else (including an
    existing ``%``) is encoded from UTF-8.
    """
    return quote(url, safe=_URI_SAFE, encoding="utf-8", errors="strict")


class CommandDispatcher:
    """Handles inbound channel messages one at a time."""

    def __init__(self, actuator: NavigationActuator) -> None:
        self._actuator = actuator

    def __call__(self, message: dict[str, Any]) -> None:
        self.dispatch(message)

    def dispatch(self, message: Any) -> None:
        """Validate and route one inbound record."""
        try:
            command = parse_command(message)
        except MalformedCommand as e:
            logger.warning(f"Received unrecognized message {message!r}: {e}")
            return

        match command:
            case NavigateCommand():
                self._navigate(command)
            case UnknownCommand():
                logger.info(f"Received unhandled message type: {command.type}")

    def _navigate(self, command: NavigateCommand) -> None:
        logger.info(f"Got a navigate instruction for {command.url}")
        try:
            url = encode_uri(command.url)
        except UnicodeEncodeError as e:
            logger.warning(f"Cannot encode navigate URL {command.url!r}: {e}")
            return

        try:
            self._actuator.navigate(url)
        except ActuationFailure as e:
            logger.error(str(e))
