"""Client configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engagement client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # API - shared with the web frontend (VITE_ prefix for Vite exposure)
    api_url: str = Field(
        default="http://localhost:3000/api",
        validation_alias="VITE_API_URL",
    )
    api_timeout: float = Field(default=30.0, validation_alias="ENGAGEMENT_API_TIMEOUT")

    # Trending
    trending_refresh_interval: float = Field(
        default=300.0, validation_alias="TRENDING_REFRESH_INTERVAL",
    )
    trending_refresh_timeout: float = Field(
        default=10.0, validation_alias="TRENDING_REFRESH_TIMEOUT",
    )
    trending_rotation_interval: float = Field(
        default=3.0, validation_alias="TRENDING_ROTATION_INTERVAL",
    )
    trending_limit: int = Field(default=10, validation_alias="TRENDING_LIMIT")

    # Bookmark categories
    default_category_color: str = Field(
        default="#3B82F6", validation_alias="DEFAULT_CATEGORY_COLOR",
    )
    # Off by default: duplicate category names are allowed client-side and the
    # server answers 409 when it rejects one.
    enforce_unique_category_names: bool = Field(
        default=False, validation_alias="ENFORCE_UNIQUE_CATEGORY_NAMES",
    )

    # Refresh category and bookmark lists after each successful bookmark mutation
    refresh_after_mutation: bool = Field(
        default=True, validation_alias="REFRESH_AFTER_MUTATION",
    )

    @model_validator(mode="after")
    def validate_intervals(self) -> "Settings":
        """Reject non-positive timer and timeout values."""
        for name in (
            "api_timeout",
            "trending_refresh_interval",
            "trending_refresh_timeout",
            "trending_rotation_interval",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be greater than zero")
        if self.trending_limit < 1:
            raise ValueError("trending_limit must be at least 1")
        return self

    @property
    def api_base_url(self) -> str:
        """API base URL without a trailing slash."""
        return self.api_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
