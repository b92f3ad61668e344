"""Pydantic schemas for the trending prompts endpoint."""
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from engagement.schemas.validators import Identifier


class TrendingAuthor(BaseModel):
    """Author of a trending prompt."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Identifier | None = None
    name: str = "Unknown"


class TrendingEntry(BaseModel):
    """
    One prompt of the trending list.

    `popularity_score` and `hours_ago` are computed by the server and are
    never recomputed client-side.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    content_id: Identifier = Field(
        validation_alias=AliasChoices("id", "contentId", "content_id"),
    )
    title: str
    author: TrendingAuthor = Field(default_factory=TrendingAuthor)
    created_at: datetime = Field(validation_alias=AliasChoices("createdAt", "created_at"))
    views: int = Field(default=0, ge=0)
    likes_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("likesCount", "likes_count"),
    )
    bookmark_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("bookmarkCount", "bookmark_count"),
    )
    hours_ago: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("hoursAgo", "hours_ago"),
    )
    popularity_score: float = Field(
        default=0.0, validation_alias=AliasChoices("popularityScore", "popularity_score"),
    )

    @field_validator("author", mode="before")
    @classmethod
    def normalize_author(cls, v: Any) -> Any:
        """Some payloads carry the author as a bare name."""
        if v is None:
            return {}
        if isinstance(v, str):
            return {"name": v}
        return v


class TrendingResponse(BaseModel):
    """Envelope of `GET /prompts/trending`."""

    model_config = ConfigDict(extra="ignore")

    success: bool
    data: list[TrendingEntry] | None = None
    message: str | None = None
    error: str | None = None
