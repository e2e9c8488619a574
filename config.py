"""
Configuration management for ZenWealth.
Uses pydantic-settings for type-safe, centralized configuration.
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type safety.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'  # Allow extra fields in .env for flexibility
    )

    # Local key-value storage
    database_url: str = "sqlite:///zenwealth.db"
    db_echo: bool = False
    storage_key: str = "zenwealth_assets"

    # OpenAI / Cloud LLM Configuration
    openai_api_key: Optional[str] = None
    openai_model: Optional[str] = None
    openai_base_url: Optional[str] = None

    # Local LLM Configuration (Ollama)
    llm_mode: str = "cloud"  # "cloud" or "local"
    local_model: str = "qwen2.5:14b"
    local_llm_url: str = "http://localhost:11434/v1"

    # Per-task model overrides (fall back to openai_model)
    rates_model: Optional[str] = None
    prices_model: Optional[str] = None
    image_model: str = "gpt-image-1"

    # Gateway behaviour
    gateway_timeout_seconds: float = 30.0

    # Exchange rates used until the first successful refresh
    fallback_usd_to_twd: float = 32.5
    fallback_jpy_to_twd: float = 0.21

    # Background refresh
    refresh_interval_minutes: int = 30

    log_level: str = "INFO"

    def model_for(self, task: str) -> Optional[str]:
        """Resolve the chat model for a gateway task ("rates" or "prices")."""
        override = {"rates": self.rates_model, "prices": self.prices_model}.get(task)
        return override or self.openai_model


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment (useful for testing)."""
    global _settings
    _settings = Settings()
    return _settings
