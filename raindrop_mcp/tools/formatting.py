"""Rendering of operation results as tool response text."""

import json
from typing import Any

from pydantic import BaseModel


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_unset=True)
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


def render_json(value: Any) -> str:
    """Render an entity, a list of entities or plain JSON data as indented JSON.

    Models are dumped with their remote field names and without fields the
    API never sent, so the text round-trips to the data that was received.
    """
    return json.dumps(_dump(value), indent=2, ensure_ascii=False)
