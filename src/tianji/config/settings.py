"""
Application settings using Pydantic.

Settings are loaded from environment variables with .env file support.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AISettings(BaseSettings):
    """Gemini service settings."""

    model_config = SettingsConfigDict(
        env_prefix="TIANJI_AI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY", "TIANJI_AI_GEMINI_API_KEY"),
    )

    # Model names
    reading_model: str = "gemini-3-pro-preview"
    speech_model: str = "gemini-2.5-flash-preview-tts"
    image_model: str = "gemini-2.5-flash-image"
    voice_name: str = "Puck"

    # Timeouts
    timeout: float = 300.0  # 5 minutes per call

    # Retry settings (fixed delay between attempts)
    max_retries: int = Field(default=2, ge=0)
    retry_delay: float = Field(default=2.0, ge=0.0)

    # Reject readings that break the phrase count/length rules
    strict_validation: bool = False


class AudioSettings(BaseSettings):
    """Speech playback settings."""

    model_config = SettingsConfigDict(
        env_prefix="TIANJI_AUDIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Output device rate; speech is resampled to it
    mixer_frequency: int = 24000
    channels: int = 1


class ExportSettings(BaseSettings):
    """Card export settings."""

    model_config = SettingsConfigDict(
        env_prefix="TIANJI_EXPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    width: int = 720
    scale: int = Field(default=2, ge=1)
    background: str = "#fdf5e6"
    filename_prefix: str = "天机鉴"

    # CJK-capable font; system fonts are searched when unset
    font_path: Optional[Path] = None


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="TIANJI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False
    language: Literal["zh"] = "zh"

    # Nested settings
    ai: AISettings = Field(default_factory=AISettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)

    @property
    def has_api_key(self) -> bool:
        """Check if a Gemini credential is configured."""
        return bool(self.ai.gemini_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
