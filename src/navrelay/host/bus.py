"""In-process event bus for the native host.

The bridge publishes relay traffic here and HTTP subscribers read it back.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

EventCallback = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]

_ALL = "*"


@dataclass(frozen=True)
class EventDefinition(Generic[T]):
    """An event name bound to the model of its properties."""

    type: str
    schema: type[T]

    def payload(self, properties: T) -> dict[str, Any]:
        """JSON-ready ``{"type", "properties"}`` record for this event."""
        return {"type": self.type, "properties": properties.model_dump(mode="json")}


class EventBus:
    """Delivers each published payload to its type's subscribers, then to
    catch-all subscribers, awaiting each callback in turn.

    A failing callback is logged and skipped.
    """

    def __init__(self) -> None:
        self._subscribers: defaultdict[str, list[EventCallback]] = defaultdict(list)

    @staticmethod
    def define(event_type: str, schema: type[T]) -> EventDefinition[T]:
        return EventDefinition(type=event_type, schema=schema)

    @property
    def subscriber_count(self) -> int:
        return sum(len(callbacks) for callbacks in self._subscribers.values())

    async def publish(self, event_def: EventDefinition[T], properties: T) -> None:
        payload = event_def.payload(properties)
        callbacks = [*self._subscribers[event_def.type], *self._subscribers[_ALL]]

        for callback in callbacks:
            try:
                await callback(payload)
            except Exception:
                logger.exception(f"Subscriber failed on {event_def.type}")

    def subscribe(self, event_def: EventDefinition[T], callback: EventCallback) -> Callable[[], None]:
        """Receive ``event_def`` payloads. Returns an unsubscribe function."""
        return self._add(event_def.type, callback)

    def subscribe_all(self, callback: EventCallback) -> Callable[[], None]:
        """Receive every payload. Returns an unsubscribe function."""
        return self._add(_ALL, callback)

    def _add(self, key: str, callback: EventCallback) -> Callable[[], None]:
        self._subscribers[key].append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe
