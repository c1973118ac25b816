"""Configuration for the relay and the native host.

Values come from ``NAVRELAY_*`` environment variables; explicit arguments
(and CLI options) take precedence.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_PEER_ID = "com.example.chrome_ext"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4097
DEFAULT_SHUTDOWN_TIMEOUT = 5.0


def _split_dirs(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [d for d in raw.split(os.pathsep) if d]


@dataclass
class RelayConfig:
    """Relay-side settings."""

    # Native host name the channel connects to
    peer_id: str = DEFAULT_PEER_ID

    # Origin passed to the host and checked against allowed_origins
    origin: str | None = None

    # Manifest search path; empty means the browser defaults
    manifest_dirs: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> RelayConfig:
        return cls(
            peer_id=os.environ.get("NAVRELAY_PEER_ID", DEFAULT_PEER_ID),
            origin=os.environ.get("NAVRELAY_ORIGIN") or None,
            manifest_dirs=_split_dirs(os.environ.get("NAVRELAY_MANIFEST_DIRS")),
        )


@dataclass
class HostConfig:
    """Native host settings."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "WARNING"

    # Seconds open HTTP connections get to finish once the relay is gone
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT

    @classmethod
    def from_env(cls) -> HostConfig:
        port = os.environ.get("NAVRELAY_PORT")
        shutdown_timeout = os.environ.get("NAVRELAY_SHUTDOWN_TIMEOUT")
        return cls(
            host=os.environ.get("NAVRELAY_HOST", DEFAULT_HOST),
            port=int(port) if port else DEFAULT_PORT,
            log_level=os.environ.get("NAVRELAY_LOG_LEVEL", "WARNING").upper(),
            shutdown_timeout=float(shutdown_timeout) if shutdown_timeout else DEFAULT_SHUTDOWN_TIMEOUT,
        )
