"""
Shared validation functions for Pydantic schemas.

This module contains validators used across the bookmark, category, like and
trending schemas.
"""
import re
from typing import Annotated, Any

from pydantic import BeforeValidator

# Colour token: CSS hex colour, short or long form (e.g., '#3B82F6', '#fff')
COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def coerce_identifier(value: Any) -> Any:
    """Identifiers arrive as ints (legacy prompts) or UUID strings; keep them as strings."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Identifier = Annotated[str, BeforeValidator(coerce_identifier)]


def validate_category_name(name: str) -> str:
    """
    Normalize and validate a bookmark category name.

    Args:
        name: The name to validate.

    Returns:
        The trimmed name.

    Raises:
        ValueError: If the name is empty after trimming.
    """
    normalized = name.strip()
    if not normalized:
        raise ValueError("Category name cannot be empty")
    return normalized


def validate_color(color: str) -> str:
    """
    Validate a category colour token.

    Raises:
        ValueError: If the value is not a `#RGB` or `#RRGGBB` hex colour.
    """
    normalized = color.strip()
    if not COLOR_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid color: '{color}'. Use a hex color such as '#3B82F6'.",
        )
    return normalized.upper()
