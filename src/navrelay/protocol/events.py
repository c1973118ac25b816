"""Navigation events sent from the relay to the native peer.

A NavEvent describes one request lifecycle occurrence. Overlapping requests
for the same URL produce duplicate events; they are not deduplicated.

Wire form:
    {"type": "start", "url": "http://a.test/x", "time": 1532.25}
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Reference point for event timestamps (ms since process start)
_PROCESS_START = time.perf_counter()


def now_millis() -> float:
    """Milliseconds elapsed since this process started."""
    return (time.perf_counter() - _PROCESS_START) * 1000.0


class NavEventKind(str, Enum):
    """Lifecycle phase a NavEvent was generated for."""

    START = "start"  # Request is about to be made
    END = "end"  # Request completed


class NavEvent(BaseModel):
    """An immutable request lifecycle record."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    kind: NavEventKind = Field(alias="type")
    url: str
    timestamp_millis: float = Field(alias="time")

    @classmethod
    def start(cls, url: str, timestamp_millis: float | None = None) -> NavEvent:
        """Create a request-start event."""
        return cls.create(NavEventKind.START, url, timestamp_millis)

    @classmethod
    def end(cls, url: str, timestamp_millis: float | None = None) -> NavEvent:
        """Create a request-complete event."""
        return cls.create(NavEventKind.END, url, timestamp_millis)

    @classmethod
    def create(
        cls,
        kind: NavEventKind,
        url: str,
        timestamp_millis: float | None = None,
    ) -> NavEvent:
        """Factory method for creating events."""
        return cls(
            kind=kind,
            url=url,
            timestamp_millis=now_millis() if timestamp_millis is None else timestamp_millis,
        )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the record sent over the channel."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_wire(cls, record: dict[str, Any]) -> NavEvent:
        """Parse a record received over the channel."""
        return cls.model_validate(record)
