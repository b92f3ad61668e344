"""Shared exceptions for the engagement service layer."""


class EngagementError(Exception):
    """Base class for every error raised by the engagement layer."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnauthenticatedError(EngagementError):
    """
    Raised when a mutating operation is attempted without an active session.

    Callers redirect to login. No request is issued and nothing is retried.
    """

    def __init__(self, message: str = "인증이 필요합니다.") -> None:
        super().__init__(message)


class AlreadyBookmarkedError(EngagementError):
    """Raised when a bookmark for the content already exists locally."""

    def __init__(self, content_id: str) -> None:
        self.content_id = content_id
        super().__init__(f"Content '{content_id}' is already bookmarked")


class NotBookmarkedError(EngagementError):
    """Raised when removing or recategorizing a bookmark that does not exist locally."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"No bookmark found for '{identifier}'")


class NetworkError(EngagementError):
    """Raised when the backend could not be reached."""


class ServerError(EngagementError):
    """
    Raised when the backend answered with an error status.

    `category` is the semantic category produced by `parse_http_error`
    (auth, forbidden, not_found, validation, conflict, internal).
    """

    def __init__(self, message: str, status_code: int, category: str) -> None:
        self.status_code = status_code
        self.category = category
        super().__init__(message)


class CategoryNameConflictError(EngagementError):
    """Raised when a bookmark category name is already taken."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"A category named '{name}' already exists")


class CategoryNotFoundError(EngagementError):
    """Raised when a bookmark category is not known locally or on the server."""

    def __init__(self, category_id: str) -> None:
        self.category_id = category_id
        super().__init__(f"Category '{category_id}' not found")


class PartialRefreshFailure(EngagementError):  # noqa: N818
    """
    Describes a failed trending refresh.

    Never propagated to callers: the ranker logs it and keeps the stale list.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Trending refresh failed: {reason}")


class StoreClosedError(EngagementError):
    """Raised when writing into an entity store that was torn down at logout."""

    def __init__(self) -> None:
        super().__init__("Entity store is closed")
