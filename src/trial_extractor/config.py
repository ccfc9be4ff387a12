"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings

from trial_extractor.constants import (
    DEFAULT_DATABASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
)


class ConfigurationError(RuntimeError):
    """Raised at startup when a required setting is missing."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = DEFAULT_DATABASE_URL

    # API Keys
    anthropic_api_key: str = ""
    ncbi_api_key: str = ""

    # LLM Settings
    llm_model: str = "claude-sonnet-4-6"
    llm_temperature: float = LLM_TEMPERATURE
    llm_max_tokens: int = LLM_MAX_TOKENS

    # Outbound requests
    request_timeout_seconds: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES

    # App Settings
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        frozen = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
