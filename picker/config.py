"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SubmitMode = Literal["http", "socket"]
ResultPolicy = Literal["replace", "append"]


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Movie Picker", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    catalog_feed_url: str = Field(
        default="http://localhost:3000/movie_titles.csv",
        alias="CATALOG_FEED_URL",
        description="HTTP(S) URL or local file path of the bulk titles feed",
    )
    catalog_feed_encoding: str = Field(
        default="latin-1", alias="CATALOG_FEED_ENCODING"
    )
    page_size: int = Field(default=100, alias="PAGE_SIZE", ge=1, le=1_000)

    recommendation_api_url: HttpUrl = Field(
        default="http://localhost:5902/api",
        alias="RECOMMENDATION_API_URL",
        validation_alias=AliasChoices("RECOMMENDATION_API_URL", "API_URL"),
    )
    recommendation_channel_url: str = Field(
        default="ws://localhost:5902/ws",
        alias="RECOMMENDATION_CHANNEL_URL",
        validation_alias=AliasChoices("RECOMMENDATION_CHANNEL_URL", "WS_URL"),
    )
    submit_mode: SubmitMode = Field(default="http", alias="SUBMIT_MODE")
    result_policy: ResultPolicy = Field(default="replace", alias="RESULT_POLICY")

    connect_timeout_seconds: float = Field(
        default=10.0, alias="CONNECT_TIMEOUT", gt=0, le=300
    )
    request_timeout_seconds: float = Field(
        default=30.0, alias="REQUEST_TIMEOUT", gt=0, le=600
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("submit_mode", "result_policy", "environment", mode="before")
    @classmethod
    def _normalise_choice(cls, value: object) -> object:
        """Accept enum-like values regardless of case or surrounding whitespace."""

        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("recommendation_channel_url", mode="before")
    @classmethod
    def _validate_channel_url(cls, value: object) -> object:
        if not isinstance(value, str):
            raise ValueError("RECOMMENDATION_CHANNEL_URL must be a string")
        stripped = value.strip()
        if not stripped.lower().startswith(("ws://", "wss://")):
            raise ValueError("RECOMMENDATION_CHANNEL_URL must use ws:// or wss://")
        return stripped

    @field_validator("catalog_feed_url", mode="before")
    @classmethod
    def _strip_feed_url(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValueError("CATALOG_FEED_URL may not be blank")
            return stripped
        return value

    @property
    def feed_is_remote(self) -> bool:
        """Return whether the catalog feed should be fetched over HTTP."""

        return self.catalog_feed_url.lower().startswith(("http://", "https://"))

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
