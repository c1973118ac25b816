"""Native messaging host manifests.

A browser resolves a native peer identifier to a JSON manifest named
``<peer_id>.json`` in one of its NativeMessagingHosts directories:

    {
      "name": "com.example.chrome_ext",
      "description": "Navigation relay native host",
      "path": "/usr/local/bin/navrelay-host",
      "type": "stdio",
      "allowed_origins": ["chrome-extension://abcdefghijklmnopabcdefghijklmnop/"]
    }
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import ConnectError

logger = logging.getLogger(__name__)

# Lowercase alphanumerics and underscores, in dot-separated segments
_PEER_ID_RE = re.compile(r"^[a-z0-9_]+(\.[a-z0-9_]+)*$")
_EXTENSION_ID_RE = re.compile(r"^[a-p]{32}$")


def is_valid_peer_id(peer_id: str) -> bool:
    """Check a native host name against the browser's naming rules."""
    return bool(_PEER_ID_RE.match(peer_id))


def extension_origin(extension_id: str) -> str:
    """Build the origin a browser passes for an extension id."""
    candidate = extension_id.strip().lower()
    if not _EXTENSION_ID_RE.match(candidate):
        raise ValueError(f"Invalid extension id: {extension_id!r}")
    return f"chrome-extension://{candidate}/"


class NativeHostManifest(BaseModel):
    """A native messaging host manifest."""

    name: str
    description: str = ""
    path: str
    type: Literal["stdio"] = "stdio"
    allowed_origins: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not is_valid_peer_id(value):
            raise ValueError(f"invalid native host name {value!r}")
        return value

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if not os.path.isabs(value):
            raise ValueError(f"host path must be absolute, got {value!r}")
        return value


def default_manifest_dirs(platform: str | None = None, home: Path | None = None) -> list[Path]:
    """NativeMessagingHosts directories searched by Chrome and Chromium."""
    platform = platform or sys.platform
    home = home or Path.home()

    if platform == "darwin":
        base = home / "Library" / "Application Support"
        return [
            base / "Google" / "Chrome" / "NativeMessagingHosts",
            base / "Chromium" / "NativeMessagingHosts",
            Path("/Library/Google/Chrome/NativeMessagingHosts"),
            Path("/Library/Application Support/Chromium/NativeMessagingHosts"),
        ]
    if platform.startswith("linux"):
        cfg = home / ".config"
        return [
            cfg / "google-chrome" / "NativeMessagingHosts",
            cfg / "chromium" / "NativeMessagingHosts",
            Path("/etc/opt/chrome/native-messaging-hosts"),
            Path("/etc/chromium/native-messaging-hosts"),
        ]
    # Windows registers hosts in the registry, which is not searched here
    return []


def find_manifest(peer_id: str, manifest_dirs: list[str] | None = None) -> NativeHostManifest:
    """Resolve ``peer_id`` to its manifest.

    Directories are searched in order; the first ``<peer_id>.json`` wins.

    Raises:
        ConnectError: If the id is invalid, no manifest exists, or the first
            manifest found is unreadable or invalid.
    """
    if not is_valid_peer_id(peer_id):
        raise ConnectError(f"Invalid native host name: {peer_id!r}")

    dirs = [Path(d) for d in manifest_dirs] if manifest_dirs else default_manifest_dirs()
    for directory in dirs:
        candidate = directory / f"{peer_id}.json"
        if not candidate.is_file():
            continue

        logger.debug(f"Found native host manifest at {candidate}")
        try:
            data = json.loads(candidate.read_text(encoding="utf-8"))
            manifest = NativeHostManifest.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ConnectError(f"Invalid native host manifest {candidate}: {e}") from e

        if manifest.name != peer_id:
            raise ConnectError(f"Manifest {candidate} is for {manifest.name}, expected {peer_id}")
        return manifest

    searched = ", ".join(str(d) for d in dirs) or "(none)"
    raise ConnectError(f"Native host {peer_id} not found in: {searched}")


@dataclass
class InstallReport:
    """Result of writing a host manifest."""

    manifest_path: Path | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.manifest_path is not None and not self.errors


def install_manifest(manifest: NativeHostManifest, target_dir: Path) -> InstallReport:
    """Write ``manifest`` to ``target_dir/<name>.json``."""
    report = InstallReport()
    path = target_dir / f"{manifest.name}.json"
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(manifest.model_dump_json(indent=2) + "\n", encoding="utf-8")
        if os.name != "nt":
            path.chmod(0o644)
    except OSError as e:
        report.errors.append(f"failed to write native host manifest: {e}")
        return report

    report.manifest_path = path
    logger.info(f"Wrote native host manifest to {path}")
    return report
