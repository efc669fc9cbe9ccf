# smartweather/core/config.py

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Gemini credential; API_KEY is what the original Vite build injected
    GEMINI_API_KEY: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
    )

    # Gemini (AI oracle) config
    GEMINI_MODEL: str = "gemini-3-flash-preview"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT_SECONDS: float = 60.0

    # Retry policy for non-search attempts
    WEATHER_MAX_RETRIES: int = 1
    WEATHER_RETRY_BACKOFF_SECONDS: float = 1.5

    WEATHER_LOCALE: str = "zh-TW"
    DEFAULT_LOCATION: str = "台北市"
    QUOTA_COOLDOWN_SECONDS: int = 60

    # HTTP server / logging
    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
