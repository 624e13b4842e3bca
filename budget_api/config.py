"""Configuration using pydantic-settings."""

from pydantic import field_validator
from pydantic_settings import BaseSettings

DEFAULT_MODEL = "openai/gpt-4o-mini"
OPENROUTER_CHAT_URL = "https://openrouter.ai/api/v1/chat/completions"


class Settings(BaseSettings):
    """Application settings read from the environment and ``.env``."""

    host: str = "0.0.0.0"  # nosec B104 - Required for container deployment
    port: int = 5055
    log_level: str = "INFO"
    log_file: str | None = None

    cors_origins: list[str] = ["*"]

    openrouter_api_key: str | None = None
    ai_model: str = DEFAULT_MODEL
    openrouter_url: str = OPENROUTER_CHAT_URL
    openrouter_referer: str = "http://localhost"
    openrouter_title: str = "Budget AI Tip Expansion"
    llm_timeout: float = 20.0
    max_tokens: int = 600

    # Client side
    api_base: str = "http://localhost:5055"
    client_timeout: float = 15.0
    client_database_url: str = "sqlite+aiosqlite:///./data/client.db"

    @field_validator("ai_model", mode="before")
    @classmethod
    def default_blank_model(cls, value: str | None) -> str:
        """An unset or blank model name means the default model."""
        if value is None or not str(value).strip():
            return DEFAULT_MODEL
        return str(value).strip()

    @property
    def key_present(self) -> bool:
        """Whether an OpenRouter key is configured. The key itself is never exposed."""
        return bool(self.openrouter_api_key and self.openrouter_api_key.strip())

    class Config:
        """Pydantic config."""

        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    """Read settings from the environment.

    A fresh instance is built on every call so a key added to or removed from
    the environment is picked up by the next request without a restart.
    """
    return Settings()
