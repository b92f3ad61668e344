"""
Authentication gate consumed by the engagement services.

Session issuance lives in the authentication collaborator. This module only
holds the current identity and bearer token so that mutating operations can
fail fast before any network call when nobody is signed in.
"""
from dataclasses import dataclass

from engagement.services.exceptions import UnauthenticatedError


@dataclass
class AuthSession:
    """Current user identity and bearer token."""

    user_id: str | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        """True when both a user and a token are present."""
        return bool(self.user_id and self.token)

    def sign_in(self, user_id: str, token: str) -> None:
        """Record the identity handed over by the authentication collaborator."""
        self.user_id = user_id
        self.token = token

    def sign_out(self) -> None:
        """Forget the current identity."""
        self.user_id = None
        self.token = None

    def require_token(self) -> str:
        """
        Get the bearer token for an authenticated request.

        Returns:
            The token string.

        Raises:
            UnauthenticatedError: If no user is signed in.
        """
        if not self.is_authenticated:
            raise UnauthenticatedError()
        return self.token  # type: ignore[return-value]

    def optional_token(self) -> str | None:
        """Get the token for read endpoints that also serve anonymous users."""
        return self.token if self.is_authenticated else None
