"""Collection tools: list, get, create, update, delete."""

from raindrop_mcp.models.schemas import (
    CollectionChanges,
    CreateCollectionInput,
    DeleteCollectionInput,
    GetCollectionInput,
    ListCollectionsInput,
    UpdateCollectionInput,
)
from raindrop_mcp.raindrop_client import RaindropClient
from raindrop_mcp.tools import ToolHandler
from raindrop_mcp.tools.formatting import render_json


async def list_collections(client: RaindropClient, params: ListCollectionsInput) -> str:
    return render_json(await client.list_collections())


async def get_collection(client: RaindropClient, params: GetCollectionInput) -> str:
    return render_json(await client.get_collection(params.id))


async def create_collection(client: RaindropClient, params: CreateCollectionInput) -> str:
    return render_json(await client.create_collection(params))


async def update_collection(client: RaindropClient, params: UpdateCollectionInput) -> str:
    changes = CollectionChanges.model_validate(
        {name: getattr(params, name) for name in params.model_fields_set if name != "id"}
    )
    return render_json(await client.update_collection(params.id, changes))


async def delete_collection(client: RaindropClient, params: DeleteCollectionInput) -> str:
    await client.delete_collection(params.id)
    return f"Collection {params.id} deleted successfully"


HANDLERS: dict[str, ToolHandler] = {
    "list_collections": list_collections,
    "get_collection": get_collection,
    "create_collection": create_collection,
    "update_collection": update_collection,
    "delete_collection": delete_collection,
}
