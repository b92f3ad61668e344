"""Pydantic schemas for bookmark categories."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from engagement.schemas.validators import Identifier, validate_category_name, validate_color


class Category(BaseModel):
    """
    A user's bookmark category as returned by the API.

    `bookmark_count` is computed by the server and only ever displayed.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: Identifier
    name: str
    color: str
    bookmark_count: int = Field(default=0, alias="bookmarkCount", ge=0)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")


class CategoryCreate(BaseModel):
    """Request body for creating a bookmark category."""

    name: str
    color: str = "#3B82F6"

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        """Trim and reject empty names."""
        return validate_category_name(v)

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str) -> str:
        """Validate the colour token."""
        return validate_color(v)

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the categories API."""
        return self.model_dump()


class CategoryUpdate(CategoryCreate):
    """Request body for renaming or recolouring a bookmark category."""
