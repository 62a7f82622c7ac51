"""Configuration for TIANJI."""

from .settings import AISettings, AudioSettings, ExportSettings, Settings, get_settings

__all__ = ["AISettings", "AudioSettings", "ExportSettings", "Settings", "get_settings"]
