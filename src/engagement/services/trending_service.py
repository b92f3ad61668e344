"""
Trending prompts: a ranked snapshot refreshed on a timer.

The popularity score is computed by the server (engagement weighted by a time
decay). This module never recomputes it; it only orders, caps and caches the
server's list, and never touches the per-user entity store.
"""
import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Literal

from engagement.core.config import Settings
from engagement.schemas.trending import TrendingEntry
from engagement.services.exceptions import EngagementError, PartialRefreshFailure
from engagement.services.subscription_bus import (
    EntityEvent,
    EntityKind,
    Subscription,
    SubscriptionBus,
)
from engagement.shared.api_client import EngagementApi
from engagement.tasks.scheduler import ScheduledTask

logger = logging.getLogger(__name__)

# Bus ids under EntityKind.TRENDING
TRENDING_SNAPSHOT_ID = "snapshot"
TRENDING_CURRENT_ID = "current"

RefreshTrigger = Literal["manual", "timer"]


def rank_entries(entries: Iterable[TrendingEntry], limit: int) -> tuple[TrendingEntry, ...]:
    """Order by popularity score, most recent first on ties, and keep the top `limit`."""
    ranked = sorted(
        entries,
        key=lambda e: (e.popularity_score, e.created_at.timestamp()),
        reverse=True,
    )
    return tuple(ranked[:limit])


def relative_time_label(hours_ago: float) -> str:
    """
    Relative age label shown next to a trending entry.

    Under one hour reads "방금 전" (just now), under a day "N시간 전"
    (N hours ago), otherwise "N일 전" (N days ago, floored).
    """
    if hours_ago < 1:
        return "방금 전"
    if hours_ago < 24:
        return f"{int(hours_ago)}시간 전"
    return f"{int(hours_ago // 24)}일 전"


class TrendingRanker:
    """
    Holds the current trending snapshot.

    The snapshot is an immutable tuple replaced in one assignment, so readers
    and observers never see entries of two refresh cycles mixed. Refresh
    failures are logged and the previous snapshot is kept.
    """

    def __init__(self, api: EngagementApi, bus: SubscriptionBus, settings: Settings) -> None:
        self._api = api
        self._bus = bus
        self._settings = settings
        self._entries: tuple[TrendingEntry, ...] = ()
        self._inflight: asyncio.Task | None = None
        self.last_refreshed_at: datetime | None = None
        self.last_failure: PartialRefreshFailure | None = None

    @property
    def entries(self) -> tuple[TrendingEntry, ...]:
        """Current ranked snapshot (empty until the first successful refresh)."""
        return self._entries

    @property
    def refreshing(self) -> bool:
        """True while a refresh request is in flight."""
        return self._inflight is not None and not self._inflight.done()

    async def refresh(self, trigger: RefreshTrigger = "manual") -> tuple[TrendingEntry, ...]:
        """
        Fetch the trending list and replace the snapshot.

        Never raises for network or server errors. While a refresh is in
        flight a timer-triggered refresh is skipped and a manual one waits for
        the running refresh instead of starting another.

        Returns:
            The snapshot after the refresh (the stale one on failure).
        """
        if self._inflight is not None and not self._inflight.done():
            if trigger == "timer":
                logger.debug("trending_refresh_skipped reason=in_flight")
                return self._entries
            return await asyncio.shield(self._inflight)
        self._inflight = asyncio.create_task(self._refresh_once(), name="trending-refresh")
        return await asyncio.shield(self._inflight)

    async def _refresh_once(self) -> tuple[TrendingEntry, ...]:
        timeout = self._settings.trending_refresh_timeout
        try:
            response = await asyncio.wait_for(self._api.get_trending(), timeout=timeout)
        except TimeoutError:
            return self._fail(f"timed out after {timeout}s")
        except (EngagementError, ValueError) as e:
            return self._fail(str(e))

        if not response.success:
            return self._fail(response.error or response.message or "success=false")

        ranked = rank_entries(response.data or [], self._settings.trending_limit)
        self._entries = ranked
        self.last_refreshed_at = datetime.now(UTC)
        self.last_failure = None
        logger.info("trending_refreshed count=%s", len(ranked))
        self._bus.publish(EntityKind.TRENDING, TRENDING_SNAPSHOT_ID, ranked)
        return ranked

    def _fail(self, reason: str) -> tuple[TrendingEntry, ...]:
        self.last_failure = PartialRefreshFailure(reason)
        logger.warning(
            "trending_refresh_failed reason=%s kept_entries=%s", reason, len(self._entries),
        )
        return self._entries

    def start_auto_refresh(self) -> ScheduledTask:
        """Refresh now and then every `trending_refresh_interval` seconds."""
        return ScheduledTask.every(
            self._settings.trending_refresh_interval,
            lambda: self.refresh("timer"),
            name="trending-refresh",
            run_immediately=True,
        )


class TrendingRotation:
    """
    Which trending entry the ticker currently shows.

    Pure display state: the index advances every
    `trending_rotation_interval` seconds, holds still while the user hovers
    the ticker or has the list expanded, and is reset when a new snapshot no
    longer has that many entries.
    """

    def __init__(self, ranker: TrendingRanker, bus: SubscriptionBus, settings: Settings) -> None:
        self._ranker = ranker
        self._bus = bus
        self._settings = settings
        self._index = 0
        self._paused = False
        self._subscription: Subscription = bus.subscribe(
            EntityKind.TRENDING, TRENDING_SNAPSHOT_ID, self._on_snapshot,
        )

    @property
    def index(self) -> int:
        return self._index

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def current(self) -> TrendingEntry | None:
        """Entry on display, None while the list is empty."""
        entries = self._ranker.entries
        if not entries:
            return None
        return entries[self._index % len(entries)]

    def advance(self) -> TrendingEntry | None:
        """Move to the next entry unless paused."""
        entries = self._ranker.entries
        if self._paused or not entries:
            return self.current
        self._index = (self._index + 1) % len(entries)
        self._bus.publish(EntityKind.TRENDING, TRENDING_CURRENT_ID, self.current)
        return self.current

    def pause(self) -> None:
        """Hold the current entry (hover, expanded list)."""
        self._paused = True

    def resume(self) -> None:
        """Continue rotating."""
        self._paused = False

    def start(self) -> ScheduledTask:
        """Advance every `trending_rotation_interval` seconds."""
        return ScheduledTask.every(
            self._settings.trending_rotation_interval,
            self.advance,
            name="trending-rotation",
        )

    def close(self) -> None:
        """Stop following snapshot changes."""
        self._subscription.unsubscribe()

    def _on_snapshot(self, event: EntityEvent) -> None:
        entries = event.value or ()
        if self._index >= len(entries):
            self._index = 0
        self._bus.publish(EntityKind.TRENDING, TRENDING_CURRENT_ID, self.current)
