"""Service layer for optimistic like toggling."""
import asyncio
import logging

from engagement.core.auth import AuthSession
from engagement.schemas.like import LikeState
from engagement.services.entity_store import EntityStore
from engagement.services.exceptions import EngagementError
from engagement.services.notifier import Notifier
from engagement.services.optimistic_mutator import OptimisticMutator
from engagement.services.subscription_bus import EntityKind, SubscriptionBus
from engagement.shared.api_client import EngagementApi

logger = logging.getLogger(__name__)


class LikeService:
    """
    Like state per prompt.

    `toggle` flips `is_liked` and moves the counter by one in the same write,
    so observers never see one field changed without the other. Rapid toggles
    on the same prompt are serialized and each one is applied on top of the
    previous speculative state.
    """

    def __init__(
        self,
        api: EngagementApi,
        store: EntityStore,
        mutator: OptimisticMutator,
        session: AuthSession,
        bus: SubscriptionBus,
        notifier: Notifier,
    ) -> None:
        self._api = api
        self._store = store
        self._mutator = mutator
        self._session = session
        self._bus = bus
        self._notifier = notifier

    def state(self, content_id: str) -> LikeState:
        """Visible like state; unknown prompts read as not liked with no likes."""
        cached = self._store.get(EntityKind.LIKE, content_id)
        return cached if cached is not None else LikeState(content_id=content_id)

    async def load(self, content_id: str) -> LikeState:
        """Fetch the server's like state of a prompt into the cache."""
        state = await self._api.get_like(content_id)
        self._store.set_server_value(EntityKind.LIKE, content_id, state)
        return self.state(content_id)

    async def toggle(self, content_id: str) -> LikeState:
        """
        Like or unlike a prompt.

        Returns:
            The server's exact state after this toggle.

        Raises:
            UnauthenticatedError: If nobody is signed in (no request is sent).
            NetworkError, ServerError: If the request failed (both fields rolled back).
        """
        self._session.require_token()
        try:
            task = self._mutator.apply(
                EntityKind.LIKE,
                content_id,
                lambda current: (current or LikeState(content_id=content_id)).toggled(),
                lambda: self._api.toggle_like(content_id),
            )
            # A cancelled caller stops waiting; the store mutation still completes
            result = await asyncio.shield(task)
        except Exception as e:
            message = e.message if isinstance(e, EngagementError) else str(e)
            self._notifier.error(f"좋아요 처리에 실패했습니다: {message}")
            raise
        logger.info(
            "like_toggled content_id=%s is_liked=%s likes_count=%s",
            content_id, result.is_liked, result.likes_count,
        )
        if result.is_liked:
            self._notifier.success("좋아요를 눌렀습니다.")
            # View-only trigger for the floating hearts animation
            self._bus.publish(EntityKind.CELEBRATION, content_id, result)
        else:
            self._notifier.success("좋아요를 취소했습니다.")
        return result

