"""stdio entrypoint for the Raindrop.io MCP server.

Loads settings, wires registry → client → dispatcher → protocol server and
serves over stdin/stdout until the client disconnects or a shutdown signal's
grace window expires.  stdout carries the protocol, so all logging goes to
stderr.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from collections.abc import Callable
from io import TextIOWrapper
from typing import Any

import anyio
from mcp.server.stdio import stdio_server
from pydantic import ValidationError

from raindrop_mcp.core.config import Settings
from raindrop_mcp.raindrop_client import RaindropClient
from raindrop_mcp.server import create_mcp_server
from raindrop_mcp.tool_dispatcher import ToolDispatcher
from raindrop_mcp.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

ExitFn = Callable[[int], Any]

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Send all log records to stderr at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format=_LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


# ── Broken pipe handling ───────────────────────────────────────────────


def is_broken_pipe(exc: BaseException) -> bool:
    """True for a ``BrokenPipeError`` or a group made only of them."""
    if isinstance(exc, BrokenPipeError):
        return True
    if isinstance(exc, BaseExceptionGroup):
        return all(is_broken_pipe(inner) for inner in exc.exceptions)
    return False


def _detach_stdout() -> None:
    """Point stdout at /dev/null so the final flush cannot raise again."""
    try:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        os.close(devnull)
    except (OSError, ValueError) as exc:
        logger.debug("Could not detach stdout: %s", exc)


def _client_gone(exit_fn: ExitFn) -> None:
    logger.info("Client disconnected (broken pipe), exiting")
    _detach_stdout()
    exit_fn(0)


class _ExitOnBrokenPipe:
    """Protocol stdout that ends the process as soon as a write hits a broken pipe.

    The stdio transport only re-raises a failed write once its stdin reader
    has finished, which needs EOF from a client that may never send it.
    """

    def __init__(self, stream: Any, exit_fn: ExitFn = os._exit) -> None:
        self._stream = stream
        self._exit_fn = exit_fn

    async def write(self, data: str) -> None:
        try:
            await self._stream.write(data)
        except BrokenPipeError:
            _client_gone(self._exit_fn)

    async def flush(self) -> None:
        try:
            await self._stream.flush()
        except BrokenPipeError:
            _client_gone(self._exit_fn)


def _protocol_stdout() -> _ExitOnBrokenPipe:
    return _ExitOnBrokenPipe(anyio.wrap_file(TextIOWrapper(sys.stdout.buffer, encoding="utf-8")))


def _make_exception_handler(exit_fn: ExitFn) -> Callable[[asyncio.AbstractEventLoop, dict[str, Any]], None]:
    """Event-loop exception handler: log and keep serving.

    A broken pipe means the client went away, which ends the process
    with status 0.
    """

    def handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        if exc is not None and is_broken_pipe(exc):
            _client_gone(exit_fn)
            return
        logger.error(
            "Unhandled error in background task: %s",
            context.get("message", "unknown"),
            exc_info=exc,
        )

    return handler


# ── Graceful shutdown ──────────────────────────────────────────────────


def _force_exit(exit_fn: ExitFn) -> None:
    logger.info("Shutdown complete")
    exit_fn(0)


def _begin_graceful_shutdown(
    signame: str,
    dispatcher: ToolDispatcher,
    loop: asyncio.AbstractEventLoop,
    grace_seconds: float,
    exit_fn: ExitFn = os._exit,
) -> None:
    """Refuse new tool calls, then exit once the grace window has passed.

    ``os._exit`` is the default because the stdio transport reads stdin on
    a worker thread that would otherwise keep the interpreter alive.
    """
    if dispatcher.is_shutting_down:
        logger.info("Received %s, shutdown already in progress", signame)
        return
    logger.info("Received %s, shutting down gracefully (%.1fs grace)", signame, grace_seconds)
    dispatcher.begin_shutdown()
    loop.call_later(grace_seconds, _force_exit, exit_fn)


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    dispatcher: ToolDispatcher,
    grace_seconds: float,
) -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _begin_graceful_shutdown, sig.name, dispatcher, loop, grace_seconds)
        except NotImplementedError:
            # Event loops without signal support (Windows): SIGINT still
            # arrives as KeyboardInterrupt.
            logger.debug("Signal handlers not supported on this event loop")
            return


# ── Serving ────────────────────────────────────────────────────────────


async def serve(settings: Settings) -> None:
    """Build the server from *settings* and serve it over stdio."""
    registry = ToolRegistry(settings.TOOLS_CONFIG_PATH)
    client = RaindropClient(settings)
    dispatcher = ToolDispatcher(client, registry)
    server = create_mcp_server(dispatcher, settings)

    loop = asyncio.get_running_loop()
    loop.set_exception_handler(_make_exception_handler(os._exit))
    _install_signal_handlers(loop, dispatcher, settings.SHUTDOWN_GRACE_SECONDS)

    logger.info(
        "%s v%s running on stdio with %d tools (API: %s)",
        settings.SERVICE_NAME,
        settings.SERVICE_VERSION,
        len(registry),
        settings.BASE_URL,
    )
    try:
        async with stdio_server(stdout=_protocol_stdout()) as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await client.close()
        logger.info("Server stopped")


def main() -> None:
    """Console-script entrypoint."""
    try:
        settings = Settings()
    except ValidationError as exc:
        configure_logging()
        if any(err["loc"] == ("API_TOKEN",) for err in exc.errors()):
            logger.critical("RAINDROP_API_TOKEN environment variable is required")
        else:
            logger.critical("Invalid configuration: %s", exc)
        sys.exit(1)

    configure_logging(settings.LOG_LEVEL)

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
    except Exception as exc:
        if is_broken_pipe(exc):
            logger.info("Client disconnected (broken pipe), exiting")
            _detach_stdout()
            return
        logger.exception("Fatal error in main()")
        sys.exit(1)


if __name__ == "__main__":
    main()
