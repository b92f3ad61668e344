"""Shared test fixtures for the engagement client."""
from collections.abc import AsyncGenerator, Generator
from typing import Any

import httpx
import pytest
import respx

from engagement.core.auth import AuthSession
from engagement.core.config import Settings
from engagement.services.bookmark_service import BookmarkService
from engagement.services.category_service import CategoryService
from engagement.services.entity_store import EntityStore
from engagement.services.like_service import LikeService
from engagement.services.optimistic_mutator import OptimisticMutator
from engagement.services.subscription_bus import SubscriptionBus
from engagement.shared.api_client import EngagementApi

API_BASE_URL = "http://api.test"


class RecordingNotifier:
    """Notifier that keeps every message for assertions."""

    def __init__(self) -> None:
        self.successes: list[str] = []
        self.errors: list[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment, with fast timers."""
    return Settings(
        _env_file=None,
        api_url=API_BASE_URL,
        api_timeout=5,
        trending_refresh_interval=0.05,
        trending_refresh_timeout=0.5,
        trending_rotation_interval=0.05,
        refresh_after_mutation=False,
    )


@pytest.fixture
def session() -> AuthSession:
    """A signed-in session."""
    return AuthSession(user_id="user-1", token="test-token")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def mock_api() -> Generator[respx.MockRouter]:
    """Context manager for mocking API responses."""
    with respx.mock(base_url=API_BASE_URL, assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
async def http_client(mock_api: respx.MockRouter) -> AsyncGenerator[httpx.AsyncClient]:
    """HTTP client created inside the respx context so requests are captured."""
    async with httpx.AsyncClient(base_url=API_BASE_URL) as client:
        yield client


@pytest.fixture
def api(http_client: httpx.AsyncClient, session: AuthSession) -> EngagementApi:
    return EngagementApi(http_client, session)


@pytest.fixture
def bus() -> SubscriptionBus:
    return SubscriptionBus()


@pytest.fixture
def store(bus: SubscriptionBus) -> EntityStore:
    return EntityStore(bus)


@pytest.fixture
def mutator(store: EntityStore) -> OptimisticMutator:
    return OptimisticMutator(store)


@pytest.fixture
def category_service(
    api: EngagementApi,
    store: EntityStore,
    session: AuthSession,
    notifier: RecordingNotifier,
    settings: Settings,
) -> CategoryService:
    return CategoryService(api, store, session, notifier, settings)


@pytest.fixture
def bookmark_service(  # noqa: PLR0913
    api: EngagementApi,
    store: EntityStore,
    mutator: OptimisticMutator,
    session: AuthSession,
    category_service: CategoryService,
    notifier: RecordingNotifier,
    settings: Settings,
) -> BookmarkService:
    return BookmarkService(
        api, store, mutator, session, category_service, notifier, settings,
    )


@pytest.fixture
def like_service(
    api: EngagementApi,
    store: EntityStore,
    mutator: OptimisticMutator,
    session: AuthSession,
    bus: SubscriptionBus,
    notifier: RecordingNotifier,
) -> LikeService:
    return LikeService(api, store, mutator, session, bus, notifier)


def bookmark_row(
    content_id: str,
    bookmark_id: str = "bm-1",
    category_id: str | None = None,
    created_at: str = "2024-05-01T10:00:00Z",
    title: str = "Prompt title",
) -> dict[str, Any]:
    """Bookmark as listed by `GET /bookmarks`."""
    return {
        "id": bookmark_id,
        "createdAt": created_at,
        "categoryId": category_id,
        "prompt": {
            "id": content_id,
            "title": title,
            "description": "A prompt",
            "author": "Kim",
            "authorId": "author-1",
            "tags": ["writing"],
            "previewImage": None,
        },
    }


def upsert_row(
    content_id: str,
    bookmark_id: str = "bm-1",
    category_id: str | None = None,
    user_id: str = "user-1",
) -> dict[str, Any]:
    """Bookmark row as returned by the `POST /bookmarks` upsert."""
    return {
        "id": bookmark_id,
        "user_id": user_id,
        "prompt_id": content_id,
        "category_id": category_id,
        "created_at": "2024-05-02T10:00:00Z",
    }


def category_row(
    category_id: str,
    name: str = "Work",
    color: str = "#3B82F6",
    bookmark_count: int = 0,
    created_at: str = "2024-05-01T10:00:00Z",
) -> dict[str, Any]:
    return {
        "id": category_id,
        "name": name,
        "color": color,
        "bookmarkCount": bookmark_count,
        "createdAt": created_at,
        "updatedAt": created_at,
    }


def trending_row(
    content_id: str,
    score: float,
    created_at: str = "2024-05-01T10:00:00Z",
    hours_ago: int = 5,
) -> dict[str, Any]:
    return {
        "id": content_id,
        "title": f"Prompt {content_id}",
        "author": {"id": "author-1", "name": "Kim"},
        "createdAt": created_at,
        "views": 100,
        "likesCount": 3,
        "bookmarkCount": 2,
        "hoursAgo": hours_ago,
        "popularityScore": score,
    }
