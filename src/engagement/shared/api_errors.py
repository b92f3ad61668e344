"""
Shared API error parsing.

Turns httpx failures into the engagement error taxonomy. The parsing extracts
semantic meaning from HTTP errors; services decide whether the result is
surfaced, rolled back or only logged.
"""

from dataclasses import dataclass
from typing import Any, Literal

import httpx

from engagement.services.exceptions import NetworkError, ServerError

ErrorCategory = Literal[
    "auth",        # 401 - Invalid or expired token
    "forbidden",   # 403 - Access denied
    "not_found",   # 404 - Resource not found
    "validation",  # 400/422 - Validation error
    "conflict",    # 409 - Duplicate resource (e.g. category name)
    "internal",    # 5xx or unexpected errors
]


@dataclass
class ParsedApiError:
    """Parsed API error with semantic category and message."""

    category: ErrorCategory
    message: str
    status_code: int


def parse_http_error(  # noqa: PLR0911
    e: httpx.HTTPStatusError,
    entity_type: str = "",
    entity_name: str = "",
) -> ParsedApiError:
    """
    Parse HTTP error into semantic categories.

    Args:
        e: The HTTP status error from httpx
        entity_type: Type of entity (e.g., "bookmark", "category") for error messages
        entity_name: Name/ID of entity for error messages

    Returns:
        ParsedApiError with category, message and status code
    """
    status = e.response.status_code

    if status == 401:
        return ParsedApiError("auth", "Invalid or expired token", status)

    if status == 403:
        return ParsedApiError("forbidden", "Access denied", status)

    if status == 404:
        if entity_name:
            msg = f"{entity_type.title()} '{entity_name}' not found" if entity_type else f"'{entity_name}' not found"  # noqa: E501
        else:
            msg = f"{entity_type.title()} not found" if entity_type else "Not found"
        return ParsedApiError("not_found", msg, status)

    if status == 409:
        return ParsedApiError(
            "conflict",
            _extract_message(e, "A resource with this name already exists"),
            status,
        )

    if status in (400, 422):
        return ParsedApiError("validation", _extract_message(e, "Validation error"), status)

    # Generic error for other status codes
    return ParsedApiError("internal", _extract_message(e, f"API error {status}"), status)


def _extract_message(e: httpx.HTTPStatusError, default: str) -> str:
    """
    Extract the human readable message from an error body.

    The backend answers `{"message": ...}` on most routes and
    `{"success": false, "error": ...}` on the prompt routes.
    """
    body = _safe_json(e)
    if not isinstance(body, dict):
        return default
    for key in ("message", "error", "detail"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return default


def _safe_json(e: httpx.HTTPStatusError) -> Any:
    """Decode the error body, None when it is not JSON."""
    try:
        return e.response.json()
    except ValueError:
        return None


def to_engagement_error(
    e: httpx.HTTPError,
    entity_type: str = "",
    entity_name: str = "",
) -> NetworkError | ServerError:
    """Map an httpx error onto NetworkError (transport) or ServerError (status)."""
    if isinstance(e, httpx.HTTPStatusError):
        info = parse_http_error(e, entity_type=entity_type, entity_name=entity_name)
        return ServerError(info.message, status_code=info.status_code, category=info.category)
    return NetworkError(f"API unavailable: {e}")
