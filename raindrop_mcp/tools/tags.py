"""Tag tools.  Renames and deletions apply across every bookmark."""

from raindrop_mcp.models.schemas import DeleteTagInput, ListTagsInput, RenameTagInput
from raindrop_mcp.raindrop_client import RaindropClient
from raindrop_mcp.tools import ToolHandler
from raindrop_mcp.tools.formatting import render_json


async def list_tags(client: RaindropClient, params: ListTagsInput) -> str:
    return render_json(await client.list_tags())


async def rename_tag(client: RaindropClient, params: RenameTagInput) -> str:
    await client.rename_tag(params.old_name, params.new_name)
    return f'Tag renamed from "{params.old_name}" to "{params.new_name}" successfully'


async def delete_tag(client: RaindropClient, params: DeleteTagInput) -> str:
    await client.delete_tag(params.tag_name)
    return f'Tag "{params.tag_name}" deleted successfully'


HANDLERS: dict[str, ToolHandler] = {
    "list_tags": list_tags,
    "rename_tag": rename_tag,
    "delete_tag": delete_tag,
}
