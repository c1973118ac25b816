"""Command definitions for inbound peer messages.

Commands are records sent by the native peer instructing the relay to act.
They are tagged by ``type``; fields other than the ones a command needs are
ignored.

Example:
    {"type": "navigate", "url": "https://example.test/"}
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from ..errors import MalformedCommand


class CommandType(str, Enum):
    """Command types the relay understands."""

    NAVIGATE = "navigate"

    # Legacy name for NAVIGATE, still sent by older peers
    GO_TO_URL = "go_to_url"


NAVIGATE_TYPES = frozenset({CommandType.NAVIGATE.value, CommandType.GO_TO_URL.value})


class Command(BaseModel):
    """Base for all parsed commands."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str


class NavigateCommand(Command):
    """Point the active tab at ``url``."""

    type: Literal["navigate", "go_to_url"] = "navigate"
    url: str

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the canonical record sent over the channel."""
        return {"type": CommandType.NAVIGATE.value, "url": self.url}


class UnknownCommand(Command):
    """A command whose type this relay does not handle.

    Kept as a value rather than an error so newer peers can send commands
    older relays ignore.
    """


def parse_command(record: Any) -> Command:
    """Validate an inbound record into a command variant.

    Returns:
        NavigateCommand for ``navigate`` (or its legacy alias), otherwise
        UnknownCommand.

    Raises:
        MalformedCommand: If the record is not a mapping, has no ``type``, or
            is a navigate command without a string ``url``.
    """
    if not isinstance(record, Mapping):
        raise MalformedCommand(f"Expected an object, got {type(record).__name__}", record)

    if "type" not in record:
        raise MalformedCommand("Record has no type field", record)

    command_type = record["type"]
    if not isinstance(command_type, str):
        raise MalformedCommand(f"Command type must be a string, got {command_type!r}", record)

    if command_type not in NAVIGATE_TYPES:
        return UnknownCommand(type=command_type)

    try:
        return NavigateCommand.model_validate(dict(record), strict=True)
    except ValidationError as e:
        raise MalformedCommand(f"Invalid {command_type} command: {e.errors()[0]['msg']}", record) from e
