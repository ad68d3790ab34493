"""get_user_info tool handler."""

from raindrop_mcp.models.schemas import GetUserInfoInput
from raindrop_mcp.raindrop_client import RaindropClient
from raindrop_mcp.tools import ToolHandler
from raindrop_mcp.tools.formatting import render_json


async def get_user_info(client: RaindropClient, params: GetUserInfoInput) -> str:
    return render_json(await client.get_current_user())


HANDLERS: dict[str, ToolHandler] = {
    "get_user_info": get_user_info,
}
