"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


# Fallback chain of cheap/free models, most available first.
DEFAULT_SCHEDULING_MODELS: list[str] = [
    "bytedance-seed/seed-1.6-flash",
    "google/gemini-exp-1206:free",
    "google/gemini-1.5-flash-8b",
    "meta-llama/llama-3.3-70b-instruct:free",
    "qwen/qwen-2.5-72b-instruct:free",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ALLOWED_ORIGINS: str = "*"

    # Monitoring
    SENTRY_DSN: str = ""

    # Google OAuth client (used to refresh caller-supplied user tokens)
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_TOKEN_URI: str = "https://oauth2.googleapis.com/token"

    # Meeting scheduling
    DEFAULT_MEETING_PROVIDER: str = "google"
    MEETING_TIMEZONE: str = "UTC"

    # Zoom server-to-server OAuth app
    ZOOM_ACCOUNT_ID: str = ""
    ZOOM_CLIENT_ID: str = ""
    ZOOM_CLIENT_SECRET: str = ""
    ZOOM_ROLLBACK_ON_CALENDAR_FAILURE: bool = True

    # OpenRouter (hosted language models)
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_API_KEY2: str = ""  # Secondary key reserved for scheduling traffic
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    SCHEDULING_MODELS: list[str] = list(DEFAULT_SCHEDULING_MODELS)
    LLM_TIMEOUT: float = 30.0

    # Sent as HTTP-Referer / X-Title to OpenRouter
    APP_URL: str = "https://mailient.xyz"
    APP_TITLE: str = "Mailient Scheduling"

    def get_openrouter_api_key(self) -> str:
        """Return the scheduling API key.

        Prefers the secondary key so scheduling traffic does not eat into the
        primary key's rate limits; falls back to the primary key.
        """
        return (self.OPENROUTER_API_KEY2 or self.OPENROUTER_API_KEY).strip()

    def zoom_account_configured(self) -> bool:
        """True when server-to-server Zoom credentials are all present."""
        return bool(self.ZOOM_ACCOUNT_ID and self.ZOOM_CLIENT_ID and self.ZOOM_CLIENT_SECRET)


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
