"""Pydantic schema for the like state of a prompt."""
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from engagement.schemas.validators import Identifier


class LikeState(BaseModel):
    """Whether the current user likes a prompt, and the prompt's like count."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    content_id: Identifier = Field(alias="contentId")
    is_liked: bool = Field(
        default=False, validation_alias=AliasChoices("isLiked", "is_liked"),
    )
    likes_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("likesCount", "likes_count"),
    )

    @classmethod
    def from_response(cls, content_id: str, body: dict[str, Any]) -> "LikeState":
        """Build from a likes endpoint body, which does not repeat the content id."""
        return cls.model_validate({**body, "content_id": content_id})

    def toggled(self) -> "LikeState":
        """
        The flipped state shown while a toggle is in flight.

        The count moves by one in the direction of the new `is_liked` value and
        never drops below zero.
        """
        is_liked = not self.is_liked
        likes_count = max(0, self.likes_count + (1 if is_liked else -1))
        return self.model_copy(update={"is_liked": is_liked, "likes_count": likes_count})
