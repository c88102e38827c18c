"""
RecipeScan - Configuration and settings.

Settings holds process-level configuration read from the environment
(prefix RECIPESCAN_) or a .env file. The user's provider choice and API key
live in the settings file managed by recipescan.settings_store; the
ai_provider/api_key/model_name fields here are only fallbacks for it.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="RECIPESCAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    env: Literal["development", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Storage
    data_dir: Path = Path.home() / ".recipescan"
    database_url: str | None = None  # Defaults to SQLite in data_dir

    # Image normalization
    image_max_bytes: int = 2 * 1024 * 1024
    image_max_dimension: int = 1920

    # OCR
    ocr_lang: str = "eng"

    # AI providers
    http_timeout_seconds: float = 60.0
    ai_provider: str = "google"
    api_key: str | None = None
    model_name: str | None = None

    # RECIPESCAN_LOG_PROMPTS=1 - log provider calls to prompt_logs/
    log_prompts: bool = False

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'recipes.db'}"

    @property
    def settings_file(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def is_development(self) -> bool:
        return self.env == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
