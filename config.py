"""
Application configuration loaded from environment variables.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Gemini API
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-2.5-flash-image"
    gemini_temperature: Optional[float] = None
    # e.g. BLOCK_ONLY_HIGH; unset leaves the upstream defaults in place
    gemini_safety_threshold: Optional[str] = None

    # Timeouts
    api_timeout_seconds: int = 30

    # Uploaded photo limit (decoded bytes)
    max_photo_bytes: int = 10 * 1024 * 1024

    # Browser clients on other origins (checkout page, previews)
    cors_allow_origins: list[str] = ["*"]

    # Client retry wrapper defaults
    client_max_retries: int = 2
    client_backoff_base_seconds: float = 1.0


@lru_cache
def get_settings() -> Settings:
    return Settings()
