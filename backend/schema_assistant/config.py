"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Schema Assistant API"
    database_url: str = "sqlite+pysqlite:///./schema_assistant.db"
    ai_enabled: bool = True
    ai_endpoint: str = ""
    ai_api_key: str | None = None
    ai_model: str = "gpt-3.5-turbo"
    ai_timeout_seconds: int = 30
    ai_temperature: float = 0.7
    ai_max_tokens: int = 2000
    ai_history_limit: int = 10

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
