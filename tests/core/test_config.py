"""Tests for client configuration."""
import pytest
from pydantic import ValidationError

from engagement.core.config import Settings, get_settings


class TestSettingsDefaults:
    """Defaults match the web client's behaviour."""

    def test__settings__defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without environment variables the documented defaults apply."""
        monkeypatch.delenv("VITE_API_URL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.api_url == "http://localhost:3000/api"
        assert settings.trending_refresh_interval == 300
        assert settings.trending_rotation_interval == 3
        assert settings.trending_limit == 10
        assert settings.default_category_color == "#3B82F6"
        assert settings.enforce_unique_category_names is False
        assert settings.refresh_after_mutation is True

    def test__settings__api_url_from_vite_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The API URL is shared with the frontend through VITE_API_URL."""
        monkeypatch.setenv("VITE_API_URL", "https://prompts.example.com/api/")
        settings = Settings(_env_file=None)

        assert settings.api_url == "https://prompts.example.com/api/"
        assert settings.api_base_url == "https://prompts.example.com/api"

    def test__settings__trending_values_from_environment(
        self, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Trending timers and limit are read from the environment."""
        monkeypatch.setenv("TRENDING_REFRESH_INTERVAL", "60")
        monkeypatch.setenv("TRENDING_LIMIT", "5")
        monkeypatch.setenv("ENFORCE_UNIQUE_CATEGORY_NAMES", "true")
        settings = Settings(_env_file=None)

        assert settings.trending_refresh_interval == 60
        assert settings.trending_limit == 5
        assert settings.enforce_unique_category_names is True


class TestSettingsValidation:
    """Invalid timer values are rejected at load time."""

    @pytest.mark.parametrize(
        "field",
        [
            "api_timeout",
            "trending_refresh_interval",
            "trending_refresh_timeout",
            "trending_rotation_interval",
        ],
    )
    def test__settings__non_positive_interval_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError, match=field):
            Settings(_env_file=None, **{field: 0})

    def test__settings__trending_limit_must_be_positive(self) -> None:
        with pytest.raises(ValidationError, match="trending_limit"):
            Settings(_env_file=None, trending_limit=0)


def test__get_settings__cached() -> None:
    """The same instance is returned until the cache is cleared."""
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
