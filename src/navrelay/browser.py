"""Browser collaborator interfaces.

The relay never talks to a browser directly. The embedding host supplies a
request event source and a tab controller; both are called from the event
loop thread and must not block.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

ALL_URLS = "*://*/*"


class RequestPhase(str, Enum):
    """Request lifecycle signals the relay subscribes to."""

    BEFORE_REQUEST = "before_request"
    COMPLETED = "completed"


@dataclass(frozen=True)
class RequestDetails:
    """What the browser reports about a request."""

    url: str
    request_id: str | None = None
    tab_id: int | None = None


@dataclass(frozen=True)
class Tab:
    id: int
    url: str = ""
    window_id: int | None = None


RequestCallback = Callable[[RequestDetails], None]


class RequestEventSource(ABC):
    """Delivers request lifecycle notifications.

    For a single request, BEFORE_REQUEST is delivered before COMPLETED.
    Ordering across requests is not guaranteed.
    """

    @abstractmethod
    def add_listener(
        self,
        phase: RequestPhase,
        callback: RequestCallback,
        urls: Sequence[str],
    ) -> None:
        """Call ``callback`` for every request in ``phase`` matching ``urls``."""
        ...


class TabController(ABC):
    """Looks up and updates browser tabs."""

    @abstractmethod
    def active_tab(self) -> Tab | None:
        """The active tab of the focused window, or None if there is none."""
        ...

    @abstractmethod
    def update(self, tab_id: int, url: str) -> None:
        """Point ``tab_id`` at ``url``."""
        ...


# =============================================================================
# Match patterns
# =============================================================================

_WILDCARD_SCHEMES = frozenset({"http", "https", "ws", "wss"})
_PATTERN_RE = re.compile(r"^(\*|[a-z][a-z0-9+.-]*)://(\*|\*\.[^/*]+|[^/*]+)?(/.*)$")


class UrlPattern:
    """A browser URL match pattern such as ``*://*.example.test/*``.

    Supported forms:
    - ``<all_urls>``
    - scheme ``*`` (http, https, ws, wss) or a literal scheme
    - host ``*``, ``*.domain`` (domain and its subdomains) or a literal host
    - path with ``*`` wildcards
    """

    def __init__(self, pattern: str):
        self.pattern = pattern
        self._all = pattern == "<all_urls>"
        if self._all:
            return

        match = _PATTERN_RE.match(pattern)
        if not match:
            raise ValueError(f"Invalid match pattern: {pattern!r}")

        self._scheme, host, path = match.groups()
        host = host or ""
        self._any_host = host == "*"
        self._subdomains = host.startswith("*.")
        self._host = host[2:] if self._subdomains else host
        self._path_re = re.compile("^" + ".*".join(re.escape(part) for part in path.split("*")) + "$")

    def matches(self, url: str) -> bool:
        parts = urlsplit(url)
        scheme = parts.scheme.lower()

        if self._all:
            return scheme in _WILDCARD_SCHEMES or scheme in {"file", "ftp"}

        if self._scheme == "*":
            if scheme not in _WILDCARD_SCHEMES:
                return False
        elif scheme != self._scheme:
            return False

        host = (parts.hostname or "").lower()
        if not self._any_host:
            if self._subdomains:
                if host != self._host and not host.endswith("." + self._host):
                    return False
            elif host != self._host:
                return False

        path = parts.path or "/"
        if parts.query:
            path = f"{path}?{parts.query}"
        return bool(self._path_re.match(path))

    def __repr__(self) -> str:
        return f"UrlPattern({self.pattern!r})"


def matches_any(url: str, patterns: Sequence[str]) -> bool:
    """Check ``url`` against a list of match pattern strings."""
    return any(UrlPattern(p).matches(url) for p in patterns)
