"""Native host application.

Creates the Starlette ASGI app and runs it next to the stdio channel.

stdout carries the framed channel, so uvicorn runs with its own logging
config disabled and no access log; everything logs to stderr.
"""

from __future__ import annotations

import asyncio
import logging
from typing import BinaryIO

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from ..config import HostConfig
from ..transport import open_stdio_channel
from .bridge import NativeHostBridge
from .routes import host_routes

logger = logging.getLogger(__name__)


def create_app(bridge: NativeHostBridge) -> Starlette:
    """Create the host's HTTP application around ``bridge``."""
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["http://localhost", "http://127.0.0.1"],
            allow_origin_regex=r"^http://(localhost|127\.0\.0\.1)(:\d+)?$",
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        ),
    ]

    app = Starlette(routes=host_routes, middleware=middleware)
    app.state.bridge = bridge
    return app


async def serve_http(server: uvicorn.Server) -> bool:
    """Run ``server`` until it stops.

    Returns:
        False if the server could not start (for example, the port is taken).
    """
    try:
        await server.serve()
    except SystemExit as e:
        logger.error(f"HTTP server failed to start (exit status {e.code})")
        return False
    return True


async def run_host(
    config: HostConfig,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> int:
    """Run the native host until the relay disconnects.

    The stdio bridge outlives the HTTP server: if the server cannot start,
    relay traffic is still read (and dropped) until the relay goes away.

    Returns:
        Process exit code: 0 when the relay closed the channel, 1 when the
        HTTP server stopped on its own while the relay was still attached.
    """
    channel = await open_stdio_channel(stdin, stdout)
    bridge = NativeHostBridge(channel)

    server = uvicorn.Server(
        uvicorn.Config(
            create_app(bridge),
            host=config.host,
            port=config.port,
            log_config=None,
            access_log=False,
            log_level=config.log_level.lower(),
            timeout_graceful_shutdown=config.shutdown_timeout,
        )
    )

    bridge.start()
    serve_task = asyncio.create_task(serve_http(server))
    closed_task = asyncio.create_task(bridge.wait_closed())
    logger.info(f"Native host listening on http://{config.host}:{config.port}")

    done, _ = await asyncio.wait({serve_task, closed_task}, return_when=asyncio.FIRST_COMPLETED)

    if closed_task in done:
        logger.info("Relay disconnected, shutting down")
        server.should_exit = True
        await serve_task
        return 0

    error = serve_task.exception()
    if error is None and not serve_task.result():
        logger.warning("Continuing without HTTP until the relay disconnects")
        await closed_task
        return 0

    logger.error(f"HTTP server stopped ({error or 'no error'}), closing channel")
    await bridge.close()
    closed_task.cancel()
    return 1
