"""Application configuration via pydantic-settings.

Reads from environment variables and .env file. The settings object is built
once per process by `get_settings()` and handed to the layers that need it.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Anthropic
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"

    # Longest wait for the next upstream event, in seconds
    upstream_timeout_seconds: float = 120.0

    # Frontend (CORS origin)
    frontend_url: str = "http://localhost:3000"

    # Diff source collaborator
    diff_source_url: str = "http://localhost:3000"

    log_level: str = "INFO"

    @property
    def llm_configured(self) -> bool:
        return bool(self.anthropic_api_key)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, constructed on first use."""
    return Settings()
