"""Pydantic schemas for bookmarks and their category assignment."""
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from engagement.schemas.validators import Identifier


class ContentSnapshot(BaseModel):
    """Display data of the bookmarked prompt, as embedded in bookmark responses."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: Identifier
    title: str | None = None
    description: str | None = None
    author: str | None = None
    author_id: Identifier | None = Field(default=None, alias="authorId")
    tags: tuple[str, ...] = ()
    preview_image: str | None = Field(default=None, alias="previewImage")

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> Any:
        """Treat a null tag list as empty."""
        return () if v is None else v


class Bookmark(BaseModel):
    """
    A user's bookmark on a prompt.

    `id` is None while the bookmark only exists as a speculative entry
    created by an in-flight `add`. `content` is None when the speculative
    entry was created without a content snapshot.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: Identifier | None = None
    user_id: Identifier | None = Field(default=None, alias="userId")
    content_id: Identifier = Field(alias="contentId")
    category_id: Identifier | None = Field(default=None, alias="categoryId")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), alias="createdAt",
    )
    content: ContentSnapshot | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_wire_shape(cls, data: Any) -> Any:
        """
        Accept both response shapes of the bookmarks API.

        `GET /bookmarks` nests the prompt under `prompt` (camelCase keys) while
        the `POST /bookmarks` upsert returns the raw row with `prompt_id` and a
        joined `prompts` object.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "prompt_id" in data and "contentId" not in data and "content_id" not in data:
            data["content_id"] = data.pop("prompt_id")
        prompt = data.pop("prompt", None)
        if prompt is None:
            prompt = _snapshot_from_row(data.pop("prompts", None))
        if isinstance(prompt, dict):
            data.setdefault("content", prompt)
            if "contentId" not in data and "content_id" not in data:
                data["content_id"] = prompt.get("id")
        return data

    @property
    def is_speculative(self) -> bool:
        """True until the server has confirmed the bookmark."""
        return self.id is None

    def with_category(self, category_id: str | None) -> "Bookmark":
        """Copy of this bookmark moved to another category."""
        return self.model_copy(update={"category_id": category_id})


def _snapshot_from_row(row: Any) -> dict[str, Any] | None:
    """Convert the joined `prompts` row of an upsert response to snapshot fields."""
    if not isinstance(row, dict):
        return None
    profile = row.get("profiles") or {}
    return {
        "id": row.get("id"),
        "title": row.get("title"),
        "description": row.get("description"),
        "author": profile.get("name"),
        "author_id": row.get("author_id"),
        "tags": row.get("tags"),
        "preview_image": row.get("preview_image"),
    }


class BookmarkCreate(BaseModel):
    """Request body for `POST /bookmarks` (create, or upsert the category)."""

    model_config = ConfigDict(populate_by_name=True)

    content_id: Identifier = Field(alias="contentId", min_length=1)
    category_id: Identifier | None = Field(default=None, alias="categoryId")

    def to_payload(self) -> dict[str, Any]:
        """Serialize with the API's camelCase keys."""
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class SingleCategory:
    """The bookmark belongs to exactly one category."""

    category_id: str


@dataclass(frozen=True)
class Uncategorized:
    """The bookmark is not in any category."""


CategoryAssignment = SingleCategory | Uncategorized


@dataclass(frozen=True)
class CategorySelection:
    """
    Outcome of turning a multi-select category choice into an assignment.

    The backend stores one category per bookmark, so the first selection wins
    and the remaining ids are reported in `ignored`.
    """

    assignment: CategoryAssignment
    ignored: tuple[str | None, ...] = field(default=())

    @property
    def category_id(self) -> str | None:
        """The category id to persist, None for uncategorized."""
        return assignment_category_id(self.assignment)


def select_category(category_ids: Sequence[str | None]) -> CategorySelection:
    """
    Build the persisted assignment from a selector's list of chosen ids.

    An empty list, or a list whose first entry is None/empty, means
    uncategorized.
    """
    if not category_ids:
        return CategorySelection(assignment=Uncategorized())
    first, *rest = category_ids
    assignment: CategoryAssignment = (
        SingleCategory(category_id=first) if first else Uncategorized()
    )
    return CategorySelection(assignment=assignment, ignored=tuple(rest))


def assignment_category_id(assignment: CategoryAssignment) -> str | None:
    """Category id carried by an assignment."""
    if isinstance(assignment, SingleCategory):
        return assignment.category_id
    return None
