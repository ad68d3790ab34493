"""Tool catalogue loaded from YAML.

``config/tools.yaml`` lists every tool with its description and tags.  The
file is validated as a whole with Pydantic, then each entry is paired with
the input model of the same name from ``raindrop_mcp.models.schemas``.  The
catalogue is fixed at startup; nothing registers tools at runtime.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from raindrop_mcp.models.schemas import (
    CreateBookmarkInput,
    CreateCollectionInput,
    DeleteBookmarkInput,
    DeleteCollectionInput,
    DeleteTagInput,
    GetBookmarkInput,
    GetCollectionInput,
    GetUserInfoInput,
    ListCollectionsInput,
    ListTagsInput,
    RenameTagInput,
    SearchBookmarksInput,
    UpdateBookmarkInput,
    UpdateCollectionInput,
)

INPUT_MODELS: dict[str, type[BaseModel]] = {
    "search_bookmarks": SearchBookmarksInput,
    "get_bookmark": GetBookmarkInput,
    "create_bookmark": CreateBookmarkInput,
    "update_bookmark": UpdateBookmarkInput,
    "delete_bookmark": DeleteBookmarkInput,
    "list_collections": ListCollectionsInput,
    "get_collection": GetCollectionInput,
    "create_collection": CreateCollectionInput,
    "update_collection": UpdateCollectionInput,
    "delete_collection": DeleteCollectionInput,
    "list_tags": ListTagsInput,
    "rename_tag": RenameTagInput,
    "delete_tag": DeleteTagInput,
    "get_user_info": GetUserInfoInput,
}


# ── File format ─────────────────────────────────────────────────────────


class _CatalogueEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)


class _CatalogueFile(BaseModel):
    tools: list[_CatalogueEntry] = Field(min_length=1)


def _describe(exc: ValidationError) -> str:
    """One ``location: reason`` clause per problem, e.g. ``tools.0.name: Field required``."""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}" for err in exc.errors()
    )


# ── Definitions ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ToolDefinition:
    """A catalogue entry bound to the model that validates its arguments."""

    name: str
    description: str
    input_model: type[BaseModel]
    tags: tuple[str, ...] = ()

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the arguments, keyed by protocol (camelCase) names."""
        return self.input_model.model_json_schema(by_alias=True)


def load_catalogue(path: Path) -> list[ToolDefinition]:
    """Read and validate *path*, returning definitions in file order.

    Raises:
        FileNotFoundError: *path* does not exist.
        ValueError: The file is not YAML, does not match the catalogue
                    format, names a tool twice, or names a tool that has
                    no input model.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Tool catalogue {path} does not exist")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"{path} is not valid YAML: {exc}") from exc

    try:
        catalogue = _CatalogueFile.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"{path} is not a valid tool catalogue: {_describe(exc)}") from exc

    definitions: list[ToolDefinition] = []
    seen: set[str] = set()
    for entry in catalogue.tools:
        if entry.name in seen:
            raise ValueError(f"{path} lists tool '{entry.name}' twice")
        model = INPUT_MODELS.get(entry.name)
        if model is None:
            raise ValueError(
                f"{path} names tool '{entry.name}', which has no input model "
                f"(expected one of: {', '.join(INPUT_MODELS)})"
            )
        seen.add(entry.name)
        definitions.append(ToolDefinition(entry.name, entry.description, model, tuple(entry.tags)))
    return definitions


class ToolRegistry:
    """Read-only view of the catalogue, iterable in file order.

    Args:
        config_path: Path to the ``tools.yaml`` catalogue.
    """

    def __init__(self, config_path: str | Path) -> None:
        self._by_name = {tool.name: tool for tool in load_catalogue(Path(config_path))}

    def __len__(self) -> int:
        return len(self._by_name)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._by_name.values())

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    @property
    def names(self) -> list[str]:
        return list(self._by_name)

    def lookup(self, name: str) -> ToolDefinition | None:
        return self._by_name.get(name)
