"""navrelay command line.

Usage:
    navrelay-host run                       # Run the native host on stdio
    navrelay-host install --extension-id ID # Register the native host
    navrelay-host health                    # Check a running host

    navrelay-native-host [ORIGIN]           # Entry point the browser launches

The browser launches ``navrelay-native-host`` with the caller's origin as
its first argument (and, on Windows, a ``--parent-window`` option), so that
entry point accepts and ignores arbitrary arguments.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import sys
from pathlib import Path

import click
import httpx

from .config import DEFAULT_PEER_ID, HostConfig
from .transport.manifest import (
    NativeHostManifest,
    default_manifest_dirs,
    extension_origin,
    install_manifest,
)

NATIVE_HOST_EXECUTABLE = "navrelay-native-host"


def configure_logging(level: str) -> None:
    """Log to stderr; stdout belongs to the channel."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _run(config: HostConfig, origin: str | None = None) -> None:
    from .host import run_host

    configure_logging(config.log_level)
    if origin:
        logging.getLogger(__name__).info(f"Launched for {origin}")
    try:
        code = asyncio.run(run_host(config))
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


@click.group()
def main() -> None:
    """navrelay native host tools."""


@main.command("run")
@click.option("--host", default=None, help="HTTP bind address (default: $NAVRELAY_HOST or 127.0.0.1)")
@click.option("--port", type=int, default=None, help="HTTP port (default: $NAVRELAY_PORT or 4097)")
@click.option("--log-level", default=None, help="Log level (default: $NAVRELAY_LOG_LEVEL or WARNING)")
def run(host: str | None, port: int | None, log_level: str | None) -> None:
    """Run the native host on this process's stdin/stdout.

    Normally the browser starts the host itself; use this to run it by hand
    behind a pipe.
    """
    config = HostConfig.from_env()
    if host is not None:
        config.host = host
    if port is not None:
        config.port = port
    if log_level is not None:
        config.log_level = log_level.upper()
    _run(config)


@click.command(context_settings={"ignore_unknown_options": True})
@click.argument("origin", required=False)
@click.argument("extra", nargs=-1, type=click.UNPROCESSED)
def native_host(origin: str | None, extra: tuple[str, ...]) -> None:
    """Native host entry point launched by the browser."""
    config = HostConfig.from_env()
    _run(config, origin)


@main.command("install")
@click.option(
    "--extension-id",
    "extension_ids",
    multiple=True,
    required=True,
    help="Extension id allowed to connect (repeatable)",
)
@click.option("--name", default=DEFAULT_PEER_ID, show_default=True, help="Native host name")
@click.option(
    "--target",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory to write the manifest to (default: Chrome's per-user directory)",
)
@click.option(
    "--executable",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Host executable (default: {NATIVE_HOST_EXECUTABLE} on PATH)",
)
def install(extension_ids: tuple[str, ...], name: str, target: Path | None, executable: Path | None) -> None:
    """Register the native host so the browser can launch it.

    Examples:

        navrelay-host install --extension-id abcdefghijklmnopabcdefghijklmnop

        navrelay-host install --extension-id ID --target /etc/opt/chrome/native-messaging-hosts
    """
    try:
        origins = [extension_origin(ext_id) for ext_id in extension_ids]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--extension-id") from e

    if executable is None:
        found = shutil.which(NATIVE_HOST_EXECUTABLE)
        if found is None:
            click.echo(f"Cannot find {NATIVE_HOST_EXECUTABLE} on PATH; pass --executable", err=True)
            sys.exit(1)
        executable = Path(found)

    if target is None:
        dirs = default_manifest_dirs()
        if not dirs:
            click.echo("No default manifest directory for this platform; pass --target", err=True)
            sys.exit(1)
        target = dirs[0]

    try:
        manifest = NativeHostManifest(
            name=name,
            description="Navigation relay native host",
            path=str(executable.resolve()),
            allowed_origins=origins,
        )
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--name") from e

    report = install_manifest(manifest, target)
    if not report.ok:
        for error in report.errors:
            click.echo(error, err=True)
        sys.exit(1)

    click.echo(f"Installed {name} -> {report.manifest_path}")


@main.command("health")
@click.option("--url", default=None, help="Host URL (default: from $NAVRELAY_HOST/$NAVRELAY_PORT)")
def health(url: str | None) -> None:
    """Check a running native host."""
    if url is None:
        config = HostConfig.from_env()
        url = f"http://{config.host}:{config.port}"

    try:
        response = httpx.get(f"{url}/health", timeout=5.0)
    except httpx.HTTPError as e:
        click.echo(f"Cannot connect to native host at {url}: {e}", err=True)
        sys.exit(1)

    if response.status_code != 200:
        click.echo(f"Native host returned {response.status_code}", err=True)
        sys.exit(1)

    data = response.json()
    state = "connected" if data.get("connected") else "disconnected"
    click.echo(f"Native host is healthy ({state})")


if __name__ == "__main__":
    main()
