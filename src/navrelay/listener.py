"""Event Listener - forwards request lifecycle events to the peer."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .browser import ALL_URLS, RequestDetails, RequestEventSource, RequestPhase
from .errors import SendError
from .protocol import NavEvent, NavEventKind, now_millis
from .transport import MessageChannel

logger = logging.getLogger(__name__)


class EventListener:
    """Turns request-start and request-complete signals into NavEvents.

    Every matching request produces one outbound message per phase. Nothing
    is buffered: if the channel is down the event is dropped.
    """

    def __init__(
        self,
        channel: MessageChannel,
        clock: Callable[[], float] = now_millis,
        urls: tuple[str, ...] = (ALL_URLS,),
    ) -> None:
        self._channel = channel
        self._clock = clock
        self._urls = urls
        self._registered = False
        self.sent = 0
        self.dropped = 0

    def register(self, source: RequestEventSource) -> None:
        """Subscribe to both lifecycle phases. Only done once."""
        if self._registered:
            raise RuntimeError("EventListener is already registered")

        source.add_listener(RequestPhase.BEFORE_REQUEST, self.on_request_start, self._urls)
        source.add_listener(RequestPhase.COMPLETED, self.on_request_complete, self._urls)
        self._registered = True

    def on_request_start(self, request: RequestDetails) -> None:
        self._emit(NavEventKind.START, request.url)

    def on_request_complete(self, request: RequestDetails) -> None:
        self._emit(NavEventKind.END, request.url)

    def _emit(self, kind: NavEventKind, url: str) -> None:
        event = NavEvent.create(kind, url, self._clock())
        try:
            self._channel.send(event.to_wire())
        except SendError as e:
            self.dropped += 1
            logger.debug(f"Dropped {kind.value} event for {url}: {e}")
            return
        self.sent += 1
