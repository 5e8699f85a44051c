"""Configuration management for the Map Buddy discovery core."""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Delegated reasoning (OpenRouter)
    openrouter_api_key: str = Field(default="", description="OpenRouter API key")
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenAI-compatible base URL for chat completions",
    )
    reasoning_model: str = Field(
        default="deepseek/deepseek-r1:free", description="Model used for delegated matching"
    )
    reasoning_max_tokens: int = Field(default=500, description="Reply token limit")
    reasoning_temperature: float = Field(default=0.7, description="Sampling temperature")
    reasoning_timeout_seconds: float = Field(
        default=30.0, description="Timeout for a single reasoning call"
    )
    app_url: str = Field(
        default="http://localhost:8080", description="Sent as HTTP-Referer for attribution"
    )
    app_title: str = Field(default="Map Buddy AI", description="Sent as X-Title for attribution")

    # Discovery behaviour
    highlight_ttl_seconds: float = Field(
        default=5.0, description="How long map markers stay emphasized"
    )
    user_timezone: str = Field(
        default="Europe/Kyiv", description="Timezone used to resolve relative dates"
    )

    # Persisted state
    state_db_path: str = Field(
        default="", description="SQLite file for persisted slots (empty = in-memory)"
    )

    # Server config
    cors_origins: str = Field(
        default="http://localhost:8080,http://localhost:5173",
        description="Comma-separated CORS origins",
    )
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin]

    @property
    def has_persistence(self) -> bool:
        """Check if persisted slots are backed by a database file."""
        return bool(self.state_db_path)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure application logging."""
    if settings is None:
        settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Suppress verbose third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
