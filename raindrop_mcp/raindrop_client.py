"""RaindropClient: resilient gateway to the Raindrop.io REST API.

One coroutine per remote operation.  Every request goes through
``_request()``, which applies the single retry policy used for all
endpoints: failures with no response, 429 and 5xx are retried with
exponential backoff; anything else fails immediately.  All failures leave
this module as classified ``RaindropAPIError`` subclasses whose message is
ready to show to the tool caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from raindrop_mcp.core.config import Settings
from raindrop_mcp.core.errors import ConnectivityError, UnexpectedResponseError, error_from_response
from raindrop_mcp.models.schemas import (
    UNSORTED_COLLECTION_ID,
    Bookmark,
    BookmarkChanges,
    Collection,
    CollectionChanges,
    CreateBookmarkInput,
    CreateCollectionInput,
    SearchBookmarksInput,
    SearchResult,
    Tag,
)

logger = logging.getLogger(__name__)

# Partial-update fields: attribute name → payload key
_BOOKMARK_UPDATE_FIELDS: dict[str, str] = {
    "title": "title",
    "excerpt": "excerpt",
    "note": "note",
    "tags": "tags",
    "important": "important",
}
_COLLECTION_UPDATE_FIELDS: dict[str, str] = {
    "title": "title",
    "description": "description",
    "public": "public",
    "view": "view",
}


def _ref(collection_id: int) -> dict[str, int]:
    """Nested collection reference as the API expects it."""
    return {"$id": collection_id}


ModelT = TypeVar("ModelT", bound=BaseModel)


def _envelope(body: Any, key: str) -> dict[str, Any]:
    """Return the object the API wraps under *key* in a success body."""
    value = body.get(key) if isinstance(body, dict) else None
    if not isinstance(value, dict):
        raise UnexpectedResponseError(f"response has no '{key}' object")
    return value


def _items(body: Any) -> list[Any]:
    if not isinstance(body, dict):
        raise UnexpectedResponseError("response is not a JSON object")
    items = body.get("items") or []
    if not isinstance(items, list):
        raise UnexpectedResponseError("'items' is not a list")
    return items


def _parse(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise UnexpectedResponseError(
            f"malformed {model.__name__} ({exc.error_count()} invalid field(s))"
        ) from exc


class RaindropClient:
    """Async client for the Raindrop.io REST API with uniform retry.

    Uses a single pooled ``httpx.AsyncClient``, created lazily.  Tests can
    pass a ``transport`` (e.g. ``httpx.MockTransport``) or set ``_client``
    directly.

    Args:
        settings:  Application settings (token, base URL, timeout, retry budget).
        transport: Optional httpx transport used instead of the network.
    """

    # HTTP status codes that are safe to retry
    _RETRYABLE_STATUS_CODES = frozenset({429}) | frozenset(range(500, 600))

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = settings.BASE_URL.rstrip("/")
        self.timeout = settings.REQUEST_TIMEOUT_SECONDS
        self._token = settings.API_TOKEN
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._max_retries = settings.MAX_RETRIES
        self._retry_base_delay = settings.RETRY_BASE_DELAY

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the pooled httpx client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── Retry machinery ─────────────────────────────────────────────

    async def _retry_delay(
        self,
        attempt: int,
        label: str,
        reason: str,
    ) -> None:
        """Log a warning and sleep for exponential backoff."""
        delay = self._retry_base_delay * (2**attempt)
        logger.warning(
            "%s for %s, retrying in %.1fs (retry %d/%d)",
            reason,
            label,
            delay,
            attempt + 1,
            self._max_retries,
        )
        await asyncio.sleep(delay)

    def _parse_body(self, response: httpx.Response) -> Any:
        """Parse a JSON response body, ``{}`` when empty or not JSON."""
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    async def _attempt_request(
        self,
        request: httpx.Request,
        attempt: int,
        attempts: int,
    ) -> httpx.Response | None:
        """Send one attempt; return the response, or None to retry.

        Raises the classified error on a terminal failure or once the
        retry budget is spent.
        """
        label = f"{request.method} {request.url.path}"
        try:
            response = await self._get_client().send(request)
        except httpx.TransportError as exc:
            if attempt < attempts - 1:
                await self._retry_delay(attempt, label, f"Request failed ({type(exc).__name__})")
                return None
            raise ConnectivityError(str(exc) or type(exc).__name__) from exc

        if response.is_success:
            return response

        if response.status_code in self._RETRYABLE_STATUS_CODES and attempt < attempts - 1:
            await self._retry_delay(attempt, label, f"Retryable status {response.status_code}")
            return None

        raise error_from_response(response.status_code, self._parse_body(response), retries=attempt)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request under the retry policy and return the parsed body.

        The request is built once and re-sent unchanged on every attempt.

        Raises:
            RaindropAPIError: Classified failure (see ``core.errors``).
        """
        request = self._get_client().build_request(method, path, params=params, json=json_body)
        attempts = 1 + self._max_retries

        for attempt in range(attempts):
            response = await self._attempt_request(request, attempt, attempts)
            if response is not None:
                return self._parse_body(response)

        # Unreachable: the final attempt either returns or raises.
        raise ConnectivityError("All retry attempts exhausted")

    # ── Bookmarks ───────────────────────────────────────────────────

    async def get_bookmark(self, bookmark_id: int) -> Bookmark:
        body = await self._request("GET", f"/raindrop/{bookmark_id}")
        return _parse(Bookmark, _envelope(body, "item"))

    async def search_bookmarks(self, query: SearchBookmarksInput) -> SearchResult:
        """Search one collection scope; only defined, non-empty filters are sent."""
        collection_id = query.collection_id if query.collection_id is not None else 0
        params: dict[str, Any] = {}
        if query.search:
            params["search"] = query.search
        if query.sort is not None:
            params["sort"] = query.sort
        if query.perpage is not None:
            params["perpage"] = query.perpage
        if query.page is not None:
            params["page"] = query.page
        if query.tag:
            params["tag"] = query.tag

        body = await self._request("GET", f"/raindrops/{collection_id}", params=params)
        return _parse(SearchResult, {"items": _items(body), "count": body.get("count", 0)})

    async def create_bookmark(self, params: CreateBookmarkInput) -> Bookmark:
        """Create a bookmark; the API always parses metadata from the link."""
        payload: dict[str, Any] = {"link": params.link, "pleaseParse": {}}
        if params.title:
            payload["title"] = params.title
        if params.excerpt:
            payload["excerpt"] = params.excerpt
        if params.note:
            payload["note"] = params.note
        if params.tags is not None:
            payload["tags"] = params.tags
        if params.important is not None:
            payload["important"] = params.important
        # 0 (Unsorted) is the server default and is left out
        if params.collection_id not in (None, UNSORTED_COLLECTION_ID):
            payload["collection"] = _ref(params.collection_id)

        body = await self._request("POST", "/raindrop", json_body=payload)
        return _parse(Bookmark, _envelope(body, "item"))

    async def update_bookmark(self, bookmark_id: int, changes: BookmarkChanges) -> Bookmark:
        """Apply only the fields explicitly set on ``changes``."""
        provided = changes.model_fields_set
        payload: dict[str, Any] = {
            key: getattr(changes, attr) for attr, key in _BOOKMARK_UPDATE_FIELDS.items() if attr in provided
        }
        if "collection_id" in provided:
            payload["collection"] = _ref(changes.collection_id)

        body = await self._request("PUT", f"/raindrop/{bookmark_id}", json_body=payload)
        return _parse(Bookmark, _envelope(body, "item"))

    async def delete_bookmark(self, bookmark_id: int) -> None:
        await self._request("DELETE", f"/raindrop/{bookmark_id}")

    # ── Collections ─────────────────────────────────────────────────

    async def list_collections(self) -> list[Collection]:
        """Return root collections in the order the API lists them."""
        body = await self._request("GET", "/collections")
        return [_parse(Collection, item) for item in _items(body)]

    async def get_collection(self, collection_id: int) -> Collection:
        body = await self._request("GET", f"/collection/{collection_id}")
        return _parse(Collection, _envelope(body, "item"))

    async def create_collection(self, params: CreateCollectionInput) -> Collection:
        payload: dict[str, Any] = {"title": params.title}
        if params.description:
            payload["description"] = params.description
        if params.public is not None:
            payload["public"] = params.public
        if params.view:
            payload["view"] = params.view
        if params.parent:
            payload["parent"] = _ref(params.parent)

        body = await self._request("POST", "/collection", json_body=payload)
        return _parse(Collection, _envelope(body, "item"))

    async def update_collection(self, collection_id: int, changes: CollectionChanges) -> Collection:
        """Apply only the fields explicitly set on ``changes``."""
        provided = changes.model_fields_set
        payload: dict[str, Any] = {
            key: getattr(changes, attr) for attr, key in _COLLECTION_UPDATE_FIELDS.items() if attr in provided
        }
        if "parent" in provided:
            payload["parent"] = _ref(changes.parent)

        body = await self._request("PUT", f"/collection/{collection_id}", json_body=payload)
        return _parse(Collection, _envelope(body, "item"))

    async def delete_collection(self, collection_id: int) -> None:
        """Delete a collection; the API moves its bookmarks to Unsorted."""
        await self._request("DELETE", f"/collection/{collection_id}")

    # ── Tags ────────────────────────────────────────────────────────

    async def list_tags(self) -> list[Tag]:
        body = await self._request("GET", "/tags")
        return [_parse(Tag, item) for item in _items(body)]

    async def rename_tag(self, old_name: str, new_name: str) -> None:
        """Rename a tag on every bookmark in one server-side call."""
        await self._request("PUT", "/tags", json_body={"replace": new_name, "tags": [old_name]})

    async def delete_tag(self, tag_name: str) -> None:
        """Remove a tag from every bookmark."""
        await self._request("DELETE", "/tag", json_body={"tags": [tag_name]})

    # ── User ────────────────────────────────────────────────────────

    async def get_current_user(self) -> dict[str, Any]:
        body = await self._request("GET", "/user")
        return _envelope(body, "user")
