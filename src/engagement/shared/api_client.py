"""HTTP client helpers for the prompts catalogue REST API."""

import logging
from typing import Any

import httpx

from engagement.core.auth import AuthSession
from engagement.core.config import Settings
from engagement.schemas.bookmark import Bookmark, BookmarkCreate
from engagement.schemas.category import Category, CategoryCreate, CategoryUpdate
from engagement.schemas.like import LikeState
from engagement.schemas.trending import TrendingResponse
from engagement.services.exceptions import (
    CategoryNameConflictError,
    CategoryNotFoundError,
    ServerError,
)
from engagement.shared.api_errors import to_engagement_error

logger = logging.getLogger(__name__)

REQUEST_SOURCE = "engagement-client"


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the shared async HTTP client for API requests."""
    return httpx.AsyncClient(
        base_url=settings.api_base_url,
        timeout=settings.api_timeout,
    )


def _get_headers(token: str | None) -> dict[str, str]:
    """Get common headers for API requests."""
    headers = {"X-Request-Source": REQUEST_SOURCE}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _json_or_empty(response: httpx.Response) -> Any:
    """Decode a response body; empty bodies (204, bare 200) become {}."""
    if not response.content:
        return {}
    return response.json()


async def api_get(
    client: httpx.AsyncClient,
    path: str,
    token: str | None,
    params: dict[str, Any] | None = None,
) -> Any:
    """Make a GET request to the API, authenticated when a token is given."""
    response = await client.get(
        path,
        params=params,
        headers=_get_headers(token),
    )
    response.raise_for_status()
    return _json_or_empty(response)


async def api_post(
    client: httpx.AsyncClient,
    path: str,
    token: str,
    json: dict[str, Any] | None = None,
) -> Any:
    """Make an authenticated POST request to the API."""
    response = await client.post(
        path,
        json=json,
        headers=_get_headers(token),
    )
    response.raise_for_status()
    return _json_or_empty(response)


async def api_put(
    client: httpx.AsyncClient,
    path: str,
    token: str,
    json: dict[str, Any],
) -> Any:
    """Make an authenticated PUT request to the API."""
    response = await client.put(
        path,
        json=json,
        headers=_get_headers(token),
    )
    response.raise_for_status()
    return _json_or_empty(response)


async def api_delete(
    client: httpx.AsyncClient,
    path: str,
    token: str,
) -> Any:
    """Make an authenticated DELETE request to the API."""
    response = await client.delete(
        path,
        headers=_get_headers(token),
    )
    response.raise_for_status()
    return _json_or_empty(response)


class EngagementApi:
    """
    Typed access to the engagement endpoints.

    Every method raises `UnauthenticatedError` before touching the network when
    the endpoint needs a session, and translates httpx failures into
    `NetworkError`/`ServerError`.
    """

    def __init__(self, client: httpx.AsyncClient, session: AuthSession) -> None:
        self._client = client
        self._session = session

    # Bookmarks

    async def list_bookmarks(self) -> list[Bookmark]:
        """Fetch all bookmarks of the current user, newest first."""
        token = self._session.require_token()
        try:
            body = await api_get(self._client, "/bookmarks", token)
        except httpx.HTTPError as e:
            raise to_engagement_error(e, entity_type="bookmark") from e
        return [Bookmark.model_validate(item) for item in body.get("bookmarks", [])]

    async def save_bookmark(self, data: BookmarkCreate) -> Bookmark:
        """
        Create a bookmark, or move an existing one to another category.

        The backend upserts on (user, content), so the same call serves
        `add` and `recategorize`.
        """
        token = self._session.require_token()
        try:
            body = await api_post(self._client, "/bookmarks", token, json=data.to_payload())
        except httpx.HTTPError as e:
            raise to_engagement_error(e, entity_type="prompt", entity_name=data.content_id) from e
        payload = body.get("bookmark") if isinstance(body, dict) else None
        if not isinstance(payload, dict):
            raise ServerError("Malformed bookmark response", status_code=200, category="internal")
        bookmark = Bookmark.model_validate(payload)
        if bookmark.user_id is None and self._session.user_id:
            bookmark = bookmark.model_copy(update={"user_id": self._session.user_id})
        return bookmark

    async def delete_bookmark(self, content_id: str) -> None:
        """Delete the current user's bookmark on a prompt."""
        token = self._session.require_token()
        try:
            await api_delete(self._client, f"/bookmarks/{content_id}", token)
        except httpx.HTTPError as e:
            raise to_engagement_error(e, entity_type="bookmark", entity_name=content_id) from e

    # Bookmark categories

    async def list_categories(self) -> list[Category]:
        """Fetch the current user's bookmark categories with server-computed counts."""
        token = self._session.require_token()
        try:
            body = await api_get(self._client, "/bookmark-categories", token)
        except httpx.HTTPError as e:
            raise to_engagement_error(e, entity_type="category") from e
        categories = body.get("categories") if isinstance(body, dict) else None
        if not isinstance(categories, list):
            logger.warning("invalid_categories_payload body=%r", body)
            return []
        return [Category.model_validate(item) for item in categories]

    async def create_category(self, data: CategoryCreate) -> Category:
        """Create a bookmark category."""
        token = self._session.require_token()
        try:
            body = await api_post(
                self._client, "/bookmark-categories", token, json=data.to_payload(),
            )
        except httpx.HTTPError as e:
            raise self._category_error(e, data.name) from e
        return Category.model_validate(body["category"])

    async def update_category(self, category_id: str, data: CategoryUpdate) -> Category:
        """Rename or recolour a bookmark category."""
        token = self._session.require_token()
        try:
            body = await api_put(
                self._client,
                f"/bookmark-categories/{category_id}",
                token,
                json=data.to_payload(),
            )
        except httpx.HTTPError as e:
            raise self._category_error(e, data.name, category_id) from e
        return Category.model_validate(body["category"])

    async def delete_category(self, category_id: str) -> None:
        """Delete a bookmark category; the server un-assigns its bookmarks."""
        token = self._session.require_token()
        try:
            await api_delete(self._client, f"/bookmark-categories/{category_id}", token)
        except httpx.HTTPError as e:
            raise self._category_error(e, "", category_id) from e

    # Likes

    async def get_like(self, content_id: str) -> LikeState:
        """Fetch the like state of a prompt; anonymous users get is_liked=False."""
        try:
            body = await api_get(
                self._client, f"/likes/{content_id}", self._session.optional_token(),
            )
        except httpx.HTTPError as e:
            raise to_engagement_error(e, entity_type="prompt", entity_name=content_id) from e
        return LikeState.from_response(content_id, body)

    async def toggle_like(self, content_id: str) -> LikeState:
        """Flip the like on a prompt and return the server's exact state."""
        token = self._session.require_token()
        try:
            body = await api_post(self._client, f"/likes/{content_id}/toggle", token)
        except httpx.HTTPError as e:
            raise to_engagement_error(e, entity_type="prompt", entity_name=content_id) from e
        return LikeState.from_response(content_id, body)

    # Trending

    async def get_trending(self) -> TrendingResponse:
        """Fetch the trending snapshot; the endpoint is public."""
        try:
            body = await api_get(
                self._client, "/prompts/trending", self._session.optional_token(),
            )
        except httpx.HTTPError as e:
            raise to_engagement_error(e, entity_type="trending") from e
        return TrendingResponse.model_validate(body)

    @staticmethod
    def _category_error(
        e: httpx.HTTPError, name: str, category_id: str = "",
    ) -> Exception:
        """Category routes answer 409 on duplicate names and 404 on unknown ids."""
        if isinstance(e, httpx.HTTPStatusError):
            if e.response.status_code == 409:
                return CategoryNameConflictError(name)
            if e.response.status_code == 404 and category_id:
                return CategoryNotFoundError(category_id)
        return to_engagement_error(e, entity_type="category", entity_name=category_id)
