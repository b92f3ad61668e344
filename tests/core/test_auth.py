"""Tests for the authentication gate."""
import pytest

from engagement.core.auth import AuthSession
from engagement.services.exceptions import UnauthenticatedError


def test__auth_session__anonymous_by_default() -> None:
    session = AuthSession()

    assert session.is_authenticated is False
    assert session.optional_token() is None


def test__auth_session__require_token_without_session_raises() -> None:
    """Mutating calls fail fast before any request when nobody is signed in."""
    with pytest.raises(UnauthenticatedError) as exc_info:
        AuthSession().require_token()

    assert exc_info.value.message == "인증이 필요합니다."


def test__auth_session__sign_in_and_out() -> None:
    session = AuthSession()

    session.sign_in("user-1", "token-abc")
    assert session.is_authenticated is True
    assert session.require_token() == "token-abc"
    assert session.optional_token() == "token-abc"

    session.sign_out()
    assert session.is_authenticated is False
    assert session.user_id is None
    with pytest.raises(UnauthenticatedError):
        session.require_token()


def test__auth_session__token_without_user_is_not_authenticated() -> None:
    session = AuthSession(user_id=None, token="orphan-token")

    assert session.is_authenticated is False
    assert session.optional_token() is None
