"""MCP protocol server.

Creates a low-level ``mcp`` ``Server`` whose ``tools/list`` and
``tools/call`` handlers delegate to the ``ToolDispatcher``.  The dispatcher
owns argument validation, so the SDK's own input validation is disabled.
"""

from typing import Any

from mcp import types
from mcp.server.lowlevel import Server

from raindrop_mcp.core.config import Settings
from raindrop_mcp.core.errors import ToolCallError
from raindrop_mcp.tool_dispatcher import ToolDispatcher

# ── Server factory ─────────────────────────────────────────────────────


def create_mcp_server(dispatcher: ToolDispatcher, settings: Settings) -> Server:
    """Create an MCP server exposing every tool in the dispatcher's catalogue.

    Args:
        dispatcher: ``ToolDispatcher`` that runs every call.
        settings:   Supplies the advertised server name and version.

    Returns:
        A configured ``Server`` ready to run over any MCP transport.
    """
    server: Server = Server(settings.SERVICE_NAME, version=settings.SERVICE_VERSION)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=tool_def.name,
                description=tool_def.description,
                inputSchema=tool_def.input_schema,
            )
            for tool_def in dispatcher.list_tools()
        ]

    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        response = await dispatcher.call_tool(name, arguments)
        if response.is_error:
            raise ToolCallError(response.text)
        return [types.TextContent(type="text", text=response.text)]

    return server
