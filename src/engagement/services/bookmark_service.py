"""Service layer for optimistic bookmark operations."""
import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from engagement.core.auth import AuthSession
from engagement.core.config import Settings
from engagement.schemas.bookmark import (
    Bookmark,
    BookmarkCreate,
    CategoryAssignment,
    CategorySelection,
    ContentSnapshot,
    SingleCategory,
    Uncategorized,
    select_category,
)
from engagement.services.category_service import CategoryService
from engagement.services.entity_store import EntityStore
from engagement.services.exceptions import (
    AlreadyBookmarkedError,
    EngagementError,
    NotBookmarkedError,
)
from engagement.services.notifier import Notifier
from engagement.services.optimistic_mutator import OptimisticMutator
from engagement.services.subscription_bus import EntityKind
from engagement.shared.api_client import EngagementApi

logger = logging.getLogger(__name__)


class BookmarkService:
    """
    Bookmark lifecycle for the signed-in user.

    Bookmarks are cached by content id, so a user has at most one bookmark per
    prompt and `is_bookmarked` is a dictionary lookup. Every mutation goes
    through the optimistic mutator: the cache changes immediately and is
    reconciled or rolled back when the request settles.
    """

    def __init__(  # noqa: PLR0913
        self,
        api: EngagementApi,
        store: EntityStore,
        mutator: OptimisticMutator,
        session: AuthSession,
        categories: CategoryService,
        notifier: Notifier,
        settings: Settings,
    ) -> None:
        self._api = api
        self._store = store
        self._mutator = mutator
        self._session = session
        self._categories = categories
        self._notifier = notifier
        self._settings = settings

    # Reads

    def is_bookmarked(self, content_id: str) -> bool:
        """True when a bookmark exists for the prompt, including an in-flight add."""
        return self._store.get(EntityKind.BOOKMARK, content_id) is not None

    def get(self, content_id: str) -> Bookmark | None:
        """Visible bookmark for a prompt."""
        return self._store.get(EntityKind.BOOKMARK, content_id)

    def find_by_id(self, bookmark_id: str) -> Bookmark | None:
        """Visible bookmark by its own id (speculative bookmarks have none yet)."""
        for bookmark in self._store.values(EntityKind.BOOKMARK):
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    def bookmarks(self, category: CategoryAssignment | None = None) -> list[Bookmark]:
        """
        Visible bookmarks, newest first.

        Args:
            category: Only bookmarks of this category (`Uncategorized()` for
                bookmarks without one). None returns all bookmarks.
        """
        items: list[Bookmark] = self._store.values(EntityKind.BOOKMARK)
        if isinstance(category, SingleCategory):
            items = [b for b in items if b.category_id == category.category_id]
        elif isinstance(category, Uncategorized):
            items = [b for b in items if b.category_id is None]
        return sorted(items, key=lambda b: b.created_at.timestamp(), reverse=True)

    async def refresh(self) -> list[Bookmark]:
        """Fetch the bookmark list and replace the cached server values."""
        bookmarks = await self._api.list_bookmarks()
        self._store.replace_kind(EntityKind.BOOKMARK, {b.content_id: b for b in bookmarks})
        logger.debug("bookmarks_refreshed count=%s", len(bookmarks))
        return self.bookmarks()

    # Mutations

    async def add(
        self,
        content_id: str,
        category_id: str | None = None,
        content_snapshot: ContentSnapshot | dict[str, Any] | None = None,
    ) -> Bookmark:
        """
        Bookmark a prompt.

        The new bookmark is visible before the request is sent. When
        `content_snapshot` is given it carries the display data (title,
        author...) of the speculative bookmark; otherwise observers get a
        bookmark whose `content` is None until the server answers.

        Raises:
            UnauthenticatedError: If nobody is signed in (no request is sent).
            AlreadyBookmarkedError: If the prompt is already bookmarked locally.
            NetworkError, ServerError: If the request failed (rolled back).
        """
        self._session.require_token()
        if self.is_bookmarked(content_id):
            self._notifier.error("이미 북마크한 프롬프트입니다.")
            raise AlreadyBookmarkedError(content_id)

        snapshot = _as_snapshot(content_id, content_snapshot)
        speculative = Bookmark(
            user_id=self._session.user_id,
            content_id=content_id,
            category_id=category_id,
            content=snapshot,
        )
        request = BookmarkCreate(content_id=content_id, category_id=category_id)
        try:
            task = self._mutator.apply(
                EntityKind.BOOKMARK,
                content_id,
                lambda _current: speculative,
                lambda: self._api.save_bookmark(request),
                reconcile=lambda saved: _keep_snapshot(saved, snapshot),
            )
            saved = await asyncio.shield(task)
        except Exception as e:
            self._notifier.error(f"북마크 추가에 실패했습니다: {_describe(e)}")
            raise
        logger.info("bookmark_added content_id=%s bookmark_id=%s", content_id, saved.id)
        self._notifier.success("북마크가 추가되었습니다.")
        await self._refresh_after_mutation()
        return self.get(content_id) or saved

    async def remove(self, content_id: str) -> None:
        """
        Remove the bookmark of a prompt.

        Raises:
            UnauthenticatedError: If nobody is signed in.
            NotBookmarkedError: If the prompt is not bookmarked locally.
            NetworkError, ServerError: If the request failed (bookmark restored).
        """
        self._session.require_token()
        if not self.is_bookmarked(content_id):
            self._notifier.error("북마크되지 않은 프롬프트입니다.")
            raise NotBookmarkedError(content_id)

        try:
            task = self._mutator.apply(
                EntityKind.BOOKMARK,
                content_id,
                lambda _current: None,
                lambda: self._api.delete_bookmark(content_id),
            )
            await asyncio.shield(task)
        except Exception as e:
            self._notifier.error(f"북마크 삭제에 실패했습니다: {_describe(e)}")
            raise
        logger.info("bookmark_removed content_id=%s", content_id)
        self._notifier.success("북마크가 삭제되었습니다.")
        await self._refresh_after_mutation()

    async def recategorize(
        self,
        bookmark_id: str,
        category_ids: Sequence[str | None] | CategoryAssignment,
    ) -> Bookmark:
        """
        Move a bookmark to another category.

        A bookmark belongs to at most one category. When the selector hands
        over several ids the first one wins and the others are logged as
        ignored.

        Raises:
            UnauthenticatedError: If nobody is signed in.
            NotBookmarkedError: If no visible bookmark has this id.
            NetworkError, ServerError: If the request failed (category restored).
        """
        self._session.require_token()
        bookmark = self.find_by_id(bookmark_id)
        if bookmark is None:
            self._notifier.error("북마크를 찾을 수 없습니다.")
            raise NotBookmarkedError(bookmark_id)

        if isinstance(category_ids, SingleCategory | Uncategorized):
            selection = CategorySelection(assignment=category_ids)
        else:
            selection = select_category(category_ids)
        if selection.ignored:
            logger.info(
                "category_selection_truncated bookmark_id=%s kept=%s ignored=%s",
                bookmark_id, selection.category_id, list(selection.ignored),
            )
        category_id = selection.category_id
        content_id = bookmark.content_id
        request = BookmarkCreate(content_id=content_id, category_id=category_id)
        try:
            task = self._mutator.apply(
                EntityKind.BOOKMARK,
                content_id,
                lambda current: current.with_category(category_id) if current else None,
                lambda: self._api.save_bookmark(request),
                reconcile=lambda saved: _keep_snapshot(saved, bookmark.content),
            )
            saved = await asyncio.shield(task)
        except Exception as e:
            self._notifier.error(f"카테고리 변경에 실패했습니다: {_describe(e)}")
            raise
        logger.info(
            "bookmark_recategorized bookmark_id=%s category_id=%s", bookmark_id, category_id,
        )
        self._notifier.success("카테고리가 변경되었습니다.")
        await self._refresh_after_mutation()
        return self.get(content_id) or saved

    async def _refresh_after_mutation(self) -> None:
        """Re-fetch the derived lists; category counts are stale after any change."""
        if not self._settings.refresh_after_mutation:
            return
        for name, refresh in (
            ("categories", self._categories.refresh),
            ("bookmarks", self.refresh),
        ):
            try:
                await refresh()
            except (EngagementError, ValueError) as e:
                logger.warning("post_mutation_refresh_failed list=%s error=%s", name, e)


def _as_snapshot(
    content_id: str, snapshot: ContentSnapshot | dict[str, Any] | None,
) -> ContentSnapshot | None:
    if snapshot is None or isinstance(snapshot, ContentSnapshot):
        return snapshot
    return ContentSnapshot.model_validate({"id": content_id, **snapshot})


def _keep_snapshot(saved: Bookmark, snapshot: ContentSnapshot | None) -> Bookmark:
    """The upsert response may omit the prompt; keep the display data we already have."""
    if saved.content is None and snapshot is not None:
        return saved.model_copy(update={"content": snapshot})
    return saved


def _describe(error: Exception) -> str:
    return error.message if isinstance(error, EngagementError) else str(error)
