"""ToolDispatcher: routes tool calls to the Raindrop.io client.

``ToolDispatcher.call_tool()`` is the whole request pipeline for one tool
call: shutdown gate → catalogue lookup → argument validation → handler →
response.  Every outcome, including unexpected exceptions, becomes a
``ToolResponse``; a failing call never affects any other call.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from raindrop_mcp.core.errors import (
    InvalidArgumentsError,
    RaindropMCPError,
    ServerShuttingDownError,
    UnknownToolError,
)
from raindrop_mcp.raindrop_client import RaindropClient
from raindrop_mcp.tool_registry import ToolDefinition, ToolRegistry
from raindrop_mcp.tools import ToolHandler, bookmarks, collections, tags, user

logger = logging.getLogger(__name__)

# ── Handler mapping ────────────────────────────────────────────────────

_HANDLERS: dict[str, ToolHandler] = {
    **bookmarks.HANDLERS,
    **collections.HANDLERS,
    **tags.HANDLERS,
    **user.HANDLERS,
}


# ── Data classes ────────────────────────────────────────────────────────


class ServerState(enum.Enum):
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"


@dataclass(frozen=True)
class ToolResponse:
    """Outcome of one tool call: a single text block plus the error flag."""

    text: str
    is_error: bool = False

    @classmethod
    def error(cls, exc: BaseException | str) -> ToolResponse:
        return cls(text=str(exc), is_error=True)


def _validation_problems(exc: ValidationError) -> list[tuple[str, str]]:
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "arguments"
        problems.append((field, err["msg"]))
    return problems


# ── Dispatcher ──────────────────────────────────────────────────────────


class ToolDispatcher:
    """Dispatch MCP tool calls to their handlers.

    Args:
        client:   Shared ``RaindropClient`` used by every handler.
        registry: Loaded ``ToolRegistry``; every tool in it needs a handler.

    Raises:
        ValueError: If a registered tool has no handler.
    """

    def __init__(self, client: RaindropClient, registry: ToolRegistry) -> None:
        missing = [name for name in registry.names if name not in _HANDLERS]
        if missing:
            raise ValueError(f"No handler for tools {missing}. Available: {sorted(_HANDLERS)}")
        self._client = client
        self._registry = registry
        self._state = ServerState.RUNNING

    @property
    def client(self) -> RaindropClient:
        return self._client

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def is_shutting_down(self) -> bool:
        return self._state is ServerState.SHUTTING_DOWN

    def begin_shutdown(self) -> None:
        """Stop accepting work.  Irreversible."""
        if self._state is ServerState.RUNNING:
            logger.info("Dispatcher entering shutdown; new tool calls will be refused")
        self._state = ServerState.SHUTTING_DOWN

    def list_tools(self) -> list[ToolDefinition]:
        """Return the tool catalogue.

        Raises:
            ServerShuttingDownError: Once ``begin_shutdown()`` has been called.
        """
        if self.is_shutting_down:
            raise ServerShuttingDownError()
        return list(self._registry)

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> ToolResponse:
        """Run one tool call and return its response.  Never raises."""
        if self.is_shutting_down:
            logger.info("Refusing tool call %s during shutdown", name)
            return ToolResponse.error(ServerShuttingDownError())

        tool_def = self._registry.lookup(name)
        if tool_def is None:
            logger.warning("Unknown tool requested: %s", name)
            return ToolResponse.error(UnknownToolError(name, self._registry.names))

        try:
            params = tool_def.input_model.model_validate(arguments or {})
        except ValidationError as exc:
            error = InvalidArgumentsError(name, _validation_problems(exc))
            logger.warning("Tool %s rejected: %s", name, error)
            return ToolResponse.error(error)

        logger.debug("Calling tool %s", name)
        try:
            text = await _HANDLERS[name](self._client, params)
        except RaindropMCPError as exc:
            logger.warning("Tool %s failed: %s", name, exc)
            return ToolResponse.error(exc)
        except Exception as exc:
            logger.exception("Unexpected error in tool %s", name)
            return ToolResponse.error(f"Unexpected error: {type(exc).__name__}: {exc}")

        return ToolResponse(text=text)
