"""Tool input and Raindrop.io entity models.

Tool inputs are the typed request structures the dispatcher validates an
argument bag into, one model per tool.  Arguments keep the protocol's
camelCase names through aliases.

Entity models mirror the remote JSON.  They accept unknown fields
(``extra="allow"``) and keep timestamps as the remote's strings, so
rendering an entity never drops or rewrites data the API returned.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SortOrder = Literal["-created", "created", "-sort", "title", "-title", "domain", "-domain"]
ViewMode = Literal["list", "simple", "grid", "masonry"]

# Collection id conventions shared by the bookmark tools
UNSORTED_COLLECTION_ID = 0
TRASH_COLLECTION_ID = -1


# ── Entities ────────────────────────────────────────────────────────────


class _RemoteModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class CollectionRef(_RemoteModel):
    """Nested ``{"$id": ...}`` reference to a collection."""

    id: int = Field(alias="$id")


class Bookmark(_RemoteModel):
    """A saved link (a "raindrop")."""

    id: int = Field(alias="_id")
    link: str | None = None
    title: str | None = None
    excerpt: str | None = None
    note: str | None = None
    domain: str | None = None
    cover: str | None = None
    type: str | None = None
    tags: list[str] | None = None
    important: bool | None = None
    collection: CollectionRef | None = None
    created: str | None = None
    last_update: str | None = Field(default=None, alias="lastUpdate")


class Collection(_RemoteModel):
    """A folder grouping bookmarks, optionally nested under a parent."""

    id: int = Field(alias="_id")
    title: str | None = None
    description: str | None = None
    public: bool | None = None
    view: str | None = None
    count: int | None = None
    cover: list[str] | None = None
    parent: CollectionRef | None = None
    created: str | None = None
    last_update: str | None = Field(default=None, alias="lastUpdate")


class Tag(_RemoteModel):
    """A tag aggregate; the name is the primary key."""

    name: str = Field(alias="_id")
    count: int = 0


class SearchResult(_RemoteModel):
    """One page of bookmark search results."""

    items: list[Bookmark] = Field(default_factory=list)
    total_count: int = Field(default=0, alias="count")


# ── Tool inputs ─────────────────────────────────────────────────────────


class _ToolInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SearchBookmarksInput(_ToolInput):
    """Input for search_bookmarks tool."""

    search: str | None = Field(default=None, description="Search query to filter bookmarks")
    collection_id: int | None = Field(
        default=None,
        alias="collectionId",
        description="Collection ID to search within (0 for all bookmarks, -1 for unsorted)",
    )
    tag: list[str] | None = Field(default=None, description="Filter by tags")
    sort: SortOrder | None = Field(
        default=None,
        description=(
            "Sort order: -created (newest), created (oldest), -sort (manually), "
            "title, -title, domain, -domain"
        ),
    )
    page: int | None = Field(default=None, ge=0, description="Page number for pagination (0-indexed)")
    perpage: int | None = Field(default=None, ge=1, description="Number of results per page (max 50)")


class GetBookmarkInput(_ToolInput):
    """Input for get_bookmark tool."""

    id: int = Field(..., description="The bookmark ID")


class CreateBookmarkInput(_ToolInput):
    """Input for create_bookmark tool."""

    link: str = Field(..., min_length=1, description="URL of the bookmark (required)")
    title: str | None = Field(default=None, description="Custom title for the bookmark")
    excerpt: str | None = Field(default=None, description="Short description/excerpt")
    note: str | None = Field(default=None, description="Personal note about the bookmark")
    tags: list[str] | None = Field(default=None, description="Tags to organize the bookmark")
    collection_id: int | None = Field(
        default=None,
        alias="collectionId",
        description="Collection ID to add bookmark to (0 for unsorted, -1 for trash)",
    )
    important: bool | None = Field(default=None, description="Mark as favorite/important")


class BookmarkChanges(_ToolInput):
    """Partial bookmark update; only explicitly provided fields are applied."""

    title: str | None = Field(default=None, description="New title")
    excerpt: str | None = Field(default=None, description="New excerpt/description")
    note: str | None = Field(default=None, description="New note")
    tags: list[str] | None = Field(default=None, description="New tags (replaces existing tags)")
    collection_id: int | None = Field(
        default=None, alias="collectionId", description="Move to different collection"
    )
    important: bool | None = Field(default=None, description="Update favorite status")


class UpdateBookmarkInput(BookmarkChanges):
    """Input for update_bookmark tool."""

    id: int = Field(..., description="The bookmark ID to update")


class DeleteBookmarkInput(_ToolInput):
    """Input for delete_bookmark tool."""

    id: int = Field(..., description="The bookmark ID to delete")


class ListCollectionsInput(_ToolInput):
    """Input for list_collections tool (no arguments)."""


class GetCollectionInput(_ToolInput):
    """Input for get_collection tool."""

    id: int = Field(..., description="The collection ID")


class CreateCollectionInput(_ToolInput):
    """Input for create_collection tool."""

    title: str = Field(..., min_length=1, description="Collection title (required)")
    description: str | None = Field(default=None, description="Collection description")
    public: bool | None = Field(default=None, description="Make collection public")
    view: ViewMode | None = Field(default=None, description="View type: list, simple, grid, masonry")
    parent: int | None = Field(default=None, description="Parent collection ID for nesting")


class CollectionChanges(_ToolInput):
    """Partial collection update; only explicitly provided fields are applied."""

    title: str | None = Field(default=None, description="New title")
    description: str | None = Field(default=None, description="New description")
    public: bool | None = Field(default=None, description="Update public status")
    view: ViewMode | None = Field(default=None, description="View type: list, simple, grid, masonry")
    parent: int | None = Field(default=None, description="Move to different parent collection")


class UpdateCollectionInput(CollectionChanges):
    """Input for update_collection tool."""

    id: int = Field(..., description="The collection ID to update")


class DeleteCollectionInput(_ToolInput):
    """Input for delete_collection tool."""

    id: int = Field(..., description="The collection ID to delete")


class ListTagsInput(_ToolInput):
    """Input for list_tags tool (no arguments)."""


class RenameTagInput(_ToolInput):
    """Input for rename_tag tool."""

    old_name: str = Field(..., min_length=1, alias="oldName", description="Current tag name")
    new_name: str = Field(..., min_length=1, alias="newName", description="New tag name")


class DeleteTagInput(_ToolInput):
    """Input for delete_tag tool."""

    tag_name: str = Field(..., min_length=1, alias="tagName", description="Tag name to delete")


class GetUserInfoInput(_ToolInput):
    """Input for get_user_info tool (no arguments)."""
