"""Service layer for bookmark category management."""
import logging
from collections.abc import Awaitable, Callable

from engagement.core.auth import AuthSession
from engagement.core.config import Settings
from engagement.schemas.bookmark import Bookmark
from engagement.schemas.category import Category, CategoryCreate, CategoryUpdate
from engagement.services.entity_store import EntityStore
from engagement.services.exceptions import (
    CategoryNameConflictError,
    EngagementError,
)
from engagement.services.notifier import Notifier
from engagement.services.subscription_bus import EntityKind
from engagement.shared.api_client import EngagementApi

logger = logging.getLogger(__name__)

DeleteListener = Callable[[str], Awaitable[object]]


class CategoryService:
    """
    Create, rename and delete bookmark categories.

    Category rows in the store are server snapshots only: `bookmark_count` is
    recomputed by the server, so every change is followed by a list refresh.
    """

    def __init__(
        self,
        api: EngagementApi,
        store: EntityStore,
        session: AuthSession,
        notifier: Notifier,
        settings: Settings,
    ) -> None:
        self._api = api
        self._store = store
        self._session = session
        self._notifier = notifier
        self._settings = settings
        self._delete_listeners: list[DeleteListener] = []

    def add_delete_listener(self, listener: DeleteListener) -> None:
        """Register a coroutine run after a category was deleted (e.g. a bookmark refresh)."""
        self._delete_listeners.append(listener)

    def categories(self) -> list[Category]:
        """Cached categories, newest first."""
        return sorted(
            self._store.values(EntityKind.CATEGORY),
            key=lambda c: c.created_at.timestamp() if c.created_at else float("-inf"),
            reverse=True,
        )

    def get(self, category_id: str) -> Category | None:
        """Cached category by id."""
        return self._store.get(EntityKind.CATEGORY, category_id)

    async def refresh(self) -> list[Category]:
        """Fetch the category list and replace the cached one."""
        categories = await self._api.list_categories()
        self._store.replace_kind(EntityKind.CATEGORY, {c.id: c for c in categories})
        logger.debug("categories_refreshed count=%s", len(categories))
        return self.categories()

    async def create(self, name: str, color: str | None = None) -> Category:
        """
        Create a category.

        Raises:
            UnauthenticatedError: If nobody is signed in.
            CategoryNameConflictError: If the name is taken (server 409, or
                locally when `enforce_unique_category_names` is on).
            pydantic.ValidationError: If the name is empty or the colour invalid.
        """
        self._session.require_token()
        data = CategoryCreate(name=name, color=color or self._settings.default_category_color)
        self._check_unique(data.name)
        try:
            category = await self._api.create_category(data)
        except EngagementError as e:
            self._notifier.error(f"카테고리 생성에 실패했습니다: {e.message}")
            raise
        self._store.set_server_value(EntityKind.CATEGORY, category.id, category)
        logger.info("category_created category_id=%s", category.id)
        self._notifier.success("카테고리가 생성되었습니다.")
        await self._refresh_after_change()
        return self.get(category.id) or category

    async def update(self, category_id: str, name: str, color: str) -> Category:
        """Rename or recolour a category."""
        self._session.require_token()
        data = CategoryUpdate(name=name, color=color)
        self._check_unique(data.name, exclude_id=category_id)
        try:
            category = await self._api.update_category(category_id, data)
        except EngagementError as e:
            self._notifier.error(f"카테고리 수정에 실패했습니다: {e.message}")
            raise
        self._store.set_server_value(EntityKind.CATEGORY, category.id, category)
        logger.info("category_updated category_id=%s", category_id)
        self._notifier.success("카테고리가 수정되었습니다.")
        await self._refresh_after_change()
        return self.get(category.id) or category

    async def delete(self, category_id: str) -> None:
        """
        Delete a category.

        The server sets `category_id` to null on every bookmark of the
        category. The cached bookmarks are un-assigned right away and the
        delete listeners then re-fetch them.
        """
        self._session.require_token()
        try:
            await self._api.delete_category(category_id)
        except EngagementError as e:
            self._notifier.error(f"카테고리 삭제에 실패했습니다: {e.message}")
            raise
        self._store.set_server_value(EntityKind.CATEGORY, category_id, None)
        cleared = self._unassign_bookmarks(category_id)
        logger.info("category_deleted category_id=%s bookmarks_cleared=%s", category_id, cleared)
        self._notifier.success("카테고리가 삭제되었습니다.")
        for listener in self._delete_listeners:
            try:
                await listener(category_id)
            except (EngagementError, ValueError) as e:
                logger.warning(
                    "category_delete_listener_failed category_id=%s error=%s", category_id, e,
                )

    async def _refresh_after_change(self) -> None:
        """Pick up server-recomputed counts; the change itself already succeeded."""
        try:
            await self.refresh()
        except (EngagementError, ValueError) as e:
            logger.warning("category_refresh_failed error=%s", e)

    def _unassign_bookmarks(self, category_id: str) -> int:
        cleared = 0
        for content_id, _ in list(self._store.items(EntityKind.BOOKMARK)):
            bookmark: Bookmark | None = self._store.get_server_value(
                EntityKind.BOOKMARK, content_id,
            )
            if bookmark is not None and bookmark.category_id == category_id:
                self._store.set_server_value(
                    EntityKind.BOOKMARK, content_id, bookmark.with_category(None),
                )
                cleared += 1
        return cleared

    def _check_unique(self, name: str, exclude_id: str | None = None) -> None:
        if not self._settings.enforce_unique_category_names:
            return
        for category in self.categories():
            if category.name == name and category.id != exclude_id:
                raise CategoryNameConflictError(name)

