"""Tests for the one-shot trending refresh task."""
import logging
from datetime import UTC, datetime

import pytest
import respx
from httpx import Response

from engagement.core.config import Settings
from engagement.schemas.trending import TrendingAuthor, TrendingEntry
from engagement.tasks.trending_refresh import format_entry, run_trending_refresh
from tests.conftest import trending_row


def test__format_entry() -> None:
    entry = TrendingEntry(
        content_id="42",
        title="Cover letter",
        author=TrendingAuthor(id="a-1", name="Kim"),
        created_at=datetime(2024, 5, 1, tzinfo=UTC),
        views=120,
        likes_count=4,
        bookmark_count=2,
        hours_ago=30,
        popularity_score=17.456,
    )

    assert format_entry(1, entry) == (
        "1위 Cover letter by Kim (1일 전) views=120 likes=4 bookmarks=2 score=17.46"
    )


@pytest.mark.asyncio
async def test__run_trending_refresh__logs_ranked_entries(
    mock_api: respx.MockRouter,
    settings: Settings,
    caplog: pytest.LogCaptureFixture,
) -> None:
    mock_api.get("/prompts/trending").mock(
        return_value=Response(
            200,
            json={"success": True, "data": [trending_row("1", 1.0), trending_row("2", 2.0)]},
        ),
    )

    with caplog.at_level(logging.INFO):
        entries = await run_trending_refresh(settings)

    assert [e.content_id for e in entries] == ["2", "1"]
    assert "1위 Prompt 2" in caplog.text
    assert "Trending refresh complete: 2 entries" in caplog.text


@pytest.mark.asyncio
async def test__run_trending_refresh__failure_logged_not_raised(
    mock_api: respx.MockRouter,
    settings: Settings,
    caplog: pytest.LogCaptureFixture,
) -> None:
    mock_api.get("/prompts/trending").mock(return_value=Response(503))

    with caplog.at_level(logging.WARNING):
        entries = await run_trending_refresh(settings)

    assert entries == ()
    assert "Trending refresh failed" in caplog.text
