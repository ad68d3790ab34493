"""Bookmark tools: search, get, create, update, delete."""

from raindrop_mcp.models.schemas import (
    BookmarkChanges,
    CreateBookmarkInput,
    DeleteBookmarkInput,
    GetBookmarkInput,
    SearchBookmarksInput,
    UpdateBookmarkInput,
)
from raindrop_mcp.raindrop_client import RaindropClient
from raindrop_mcp.tools import ToolHandler
from raindrop_mcp.tools.formatting import render_json


async def search_bookmarks(client: RaindropClient, params: SearchBookmarksInput) -> str:
    return render_json(await client.search_bookmarks(params))


async def get_bookmark(client: RaindropClient, params: GetBookmarkInput) -> str:
    return render_json(await client.get_bookmark(params.id))


async def create_bookmark(client: RaindropClient, params: CreateBookmarkInput) -> str:
    return render_json(await client.create_bookmark(params))


async def update_bookmark(client: RaindropClient, params: UpdateBookmarkInput) -> str:
    """Forward only the changed fields; ``id`` selects the bookmark."""
    changes = BookmarkChanges.model_validate(
        {name: getattr(params, name) for name in params.model_fields_set if name != "id"}
    )
    return render_json(await client.update_bookmark(params.id, changes))


async def delete_bookmark(client: RaindropClient, params: DeleteBookmarkInput) -> str:
    await client.delete_bookmark(params.id)
    return f"Bookmark {params.id} deleted successfully"


HANDLERS: dict[str, ToolHandler] = {
    "search_bookmarks": search_bookmarks,
    "get_bookmark": get_bookmark,
    "create_bookmark": create_bookmark,
    "update_bookmark": update_bookmark,
    "delete_bookmark": delete_bookmark,
}
