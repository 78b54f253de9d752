"""
Application configuration loaded from environment variables.
Uses pydantic-settings for validation and type coercion.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # -- App --
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    PORT: int = 8080
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # -- Inbound auth (static bearer token, required at startup) --
    BEARER_TOKEN: str = ""

    # -- Outbound HTTP --
    PLATFORM_HTTP_TIMEOUT_SECONDS: float = 30.0

    # -- AnotaAI --
    ANOTAAI_API_URL: str = "https://integration-admin.api.anota.ai"
    ANOTAAI_EMAIL: str = ""
    ANOTAAI_PASSWORD: str = ""
    ANOTAAI_TOKEN_RENEWAL_SECONDS: int = 3 * 60 * 60
    ANOTAAI_LIST_LIMIT: int = 2000

    # -- DeliveryVip (OAuth client credentials, tokens expire in 24h) --
    DELIVERYVIP_API_URL: str = "https://api.deliveryvip.com"
    DELIVERYVIP_CLIENT_ID: str = ""
    DELIVERYVIP_CLIENT_SECRET: str = ""
    DELIVERYVIP_TOKEN_RENEWAL_SECONDS: int = 20 * 60 * 60

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
