"""
One-shot trending refresh.

Fetches the trending list once and logs it in rank order, the way the header
ticker would show it. Useful to check what the backend currently ranks.

Usage:
    python -m engagement.tasks.trending_refresh
"""
import asyncio
import logging

from engagement.client import EngagementClient
from engagement.core.config import Settings
from engagement.schemas.trending import TrendingEntry
from engagement.services.trending_service import relative_time_label

logger = logging.getLogger(__name__)


def format_entry(rank: int, entry: TrendingEntry) -> str:
    """One ticker line: rank, title, author, age and counters."""
    return (
        f"{rank}위 {entry.title} by {entry.author.name} "
        f"({relative_time_label(entry.hours_ago)}) "
        f"views={entry.views} likes={entry.likes_count} "
        f"bookmarks={entry.bookmark_count} score={entry.popularity_score:.2f}"
    )


async def run_trending_refresh(settings: Settings | None = None) -> tuple[TrendingEntry, ...]:
    """Refresh the trending snapshot once and log every entry."""
    async with EngagementClient(settings=settings) as engagement:
        entries = await engagement.trending.refresh()
        if engagement.trending.last_failure is not None:
            logger.warning("Trending refresh failed: %s", engagement.trending.last_failure)
        for rank, entry in enumerate(entries, start=1):
            logger.info(format_entry(rank, entry))
        logger.info("Trending refresh complete: %s entries", len(entries))
        return entries


def main() -> None:
    """Entry point for running the trending refresh as a script."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_trending_refresh())


if __name__ == "__main__":
    main()
