"""Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env file.
"""

import math
from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn, RedisDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ============ Application Settings ============
    APP_NAME: str = "Juno"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # ============ Server Settings ============
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 1

    # ============ Security Settings ============
    SECRET_KEY: str = Field(
        default="your-super-secret-key-change-in-production",
        description="Secret key for JWT encoding",
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=30,
        description="Access token expiration time in minutes",
    )

    # ============ CORS Settings ============
    CORS_ORIGINS: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )

    # ============ Database Settings ============
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "juno"
    POSTGRES_PASSWORD: str = "juno_password"
    POSTGRES_DB: str = "juno_db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @computed_field  # type: ignore[misc]
    @property
    def DATABASE_URL(self) -> PostgresDsn:
        """Construct PostgreSQL async connection URL."""
        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    # ============ Redis Settings ============
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str | None = None
    REDIS_DB: int = 0
    REDIS_MAX_CONNECTIONS: int = 10
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 5.0

    @computed_field  # type: ignore[misc]
    @property
    def REDIS_URL(self) -> RedisDsn:
        """Construct Redis connection URL."""
        return RedisDsn.build(
            scheme="redis",
            password=self.REDIS_PASSWORD or None,
            host=self.REDIS_HOST,
            port=self.REDIS_PORT,
            path=str(self.REDIS_DB),
        )

    # ============ Planner Settings ============
    CONVERSATION_TTL_SECONDS: int = Field(
        default=60 * 60 * 24,
        description="How long an idle planning conversation is kept",
    )
    CONVERSATION_LOCK_MARGIN_SECONDS: int = Field(
        default=30,
        description="Slack added on top of the slowest message when holding a conversation",
    )

    # ============ OpenAI Settings ============
    OPENAI_API_KEY: str = Field(
        default="",
        description="OpenAI API Key for itinerary generation and follow-up replies",
    )
    OPENAI_MODEL: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model to use",
    )
    OPENAI_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        description="Timeout for a single model call",
    )
    OPENAI_MAX_RETRIES: int = 1
    GENERATION_TEMPERATURE: float = 0.7
    FALLBACK_TEMPERATURE: float = 0.5

    # ============ Weather API Settings ============
    WEATHER_GEOCODING_URL: str = Field(
        default="https://geocoding-api.open-meteo.com/v1/search",
        description="Geocoding endpoint used to resolve destinations",
    )
    WEATHER_FORECAST_URL: str = Field(
        default="https://api.open-meteo.com/v1/forecast",
        description="Hourly forecast endpoint",
    )
    WEATHER_TIMEOUT_SECONDS: float = 10.0
    WEATHER_MAX_RETRIES: int = 2

    @computed_field  # type: ignore[misc]
    @property
    def CONVERSATION_LOCK_SECONDS(self) -> int:
        """TTL of the pending marker, longer than the slowest message can run.

        A message makes at most one model call, where every attempt may hit
        the timeout, then a geocode round and a forecast round. If the marker
        expired earlier a second message could run alongside the first.
        """
        model = self.OPENAI_TIMEOUT_SECONDS * (self.OPENAI_MAX_RETRIES + 1)
        attempts = max(1, self.WEATHER_MAX_RETRIES)
        weather = 2 * (attempts * self.WEATHER_TIMEOUT_SECONDS + 0.5 * 2**attempts)
        return math.ceil(model + weather) + self.CONVERSATION_LOCK_MARGIN_SECONDS

    # ============ Logging Settings ============
    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
