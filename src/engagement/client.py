"""
Composition root of the engagement layer.

`EngagementClient` owns the HTTP client, the subscription bus and the
trending ranker for the lifetime of the application, and one entity store
(with its mutator and services) per signed-in session:

    async with EngagementClient() as engagement:
        await engagement.login(user_id, token)
        await engagement.bookmarks.add("42", category_id="cat-1")
        await engagement.logout()
"""
import logging
from types import TracebackType

import httpx

from engagement.core.auth import AuthSession
from engagement.core.config import Settings, get_settings
from engagement.services.bookmark_service import BookmarkService
from engagement.services.category_service import CategoryService
from engagement.services.entity_store import EntityStore
from engagement.services.like_service import LikeService
from engagement.services.notifier import LoggingNotifier, Notifier
from engagement.services.optimistic_mutator import OptimisticMutator
from engagement.services.subscription_bus import SubscriptionBus, ViewScope
from engagement.services.trending_service import TrendingRanker, TrendingRotation
from engagement.shared.api_client import EngagementApi, create_http_client

logger = logging.getLogger(__name__)


class EngagementClient:
    """Wires settings, session, API client, store, mutator and services together."""

    def __init__(
        self,
        settings: Settings | None = None,
        session: AuthSession | None = None,
        http_client: httpx.AsyncClient | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.session = session or AuthSession()
        self.notifier: Notifier = notifier or LoggingNotifier()
        self._owns_http_client = http_client is None
        self._http_client = http_client or create_http_client(self.settings)
        self.bus = SubscriptionBus()
        self.api = EngagementApi(self._http_client, self.session)
        self.trending = TrendingRanker(self.api, self.bus, self.settings)
        self._open_session_state()

    def _open_session_state(self) -> None:
        """Create a fresh store and the services bound to it."""
        self.store = EntityStore(self.bus)
        self.mutator = OptimisticMutator(self.store)
        self.categories = CategoryService(
            self.api, self.store, self.session, self.notifier, self.settings,
        )
        self.bookmarks = BookmarkService(
            self.api,
            self.store,
            self.mutator,
            self.session,
            self.categories,
            self.notifier,
            self.settings,
        )
        self.likes = LikeService(
            self.api, self.store, self.mutator, self.session, self.bus, self.notifier,
        )
        self.categories.add_delete_listener(lambda _category_id: self.bookmarks.refresh())

    async def login(self, user_id: str, token: str) -> None:
        """
        Start a session: new store, then load bookmarks and categories.

        Raises:
            NetworkError, ServerError: If the initial lists cannot be fetched.
        """
        if not self.store.closed:
            self.store.close()
        self.session.sign_in(user_id, token)
        self._open_session_state()
        logger.info("session_started user_id=%s", user_id)
        await self.categories.refresh()
        await self.bookmarks.refresh()

    def logout(self) -> None:
        """
        End the session and tear the store down.

        Mutations still in flight complete on the server; their results are
        dropped instead of being written into the closed store.
        """
        user_id = self.session.user_id
        self.session.sign_out()
        self.store.close()
        logger.info("session_ended user_id=%s in_flight=%s", user_id, self.mutator.in_flight)

    def view_scope(self) -> ViewScope:
        """Scope for the subscriptions and timers of one UI surface."""
        return ViewScope(self.bus)

    def trending_rotation(self) -> TrendingRotation:
        """Ticker state over the shared trending snapshot."""
        return TrendingRotation(self.trending, self.bus, self.settings)

    async def aclose(self) -> None:
        """Release the store and, when owned, the HTTP client."""
        if not self.store.closed:
            self.store.close()
        self.bus.clear()
        if self._owns_http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def __aenter__(self) -> "EngagementClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
