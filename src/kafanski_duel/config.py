"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    bot_token: str
    database_url: str

    debug: bool = False

    # Duel views
    state_log_limit: int = 8  # Recent log entries shown with a duel state
    lobby_history_limit: int = 5  # Finished duels shown in the lobby
    poll_hint_seconds: int = 5  # Suggested refresh interval for waiting players


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
