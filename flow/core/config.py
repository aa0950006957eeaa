"""
Configuration management for the Flow ambient audio engine.
Loads settings from environment variables.
"""

from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "flow"
    app_version: str = "0.1.0"
    env: Literal["development", "staging", "production"] = "development"
    debug: bool = True

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Clip generation
    audio_sample_rate: int = 44100
    audio_loop_seconds: float = 30.0
    audio_swell_hz: float = 0.07
    audio_fade_seconds: float = 0.05  # loop boundary crossfade
    audio_noise_seed: int = 0x2545F4914F6CDD1D

    # Playback
    audio_backend: Literal["null", "sounddevice"] = "null"
    audio_blocksize: int = 1024  # frames per output callback

    # Mixer behaviour
    audio_initial_calm_volume: float = 0.6
    audio_focus_calm_volume: float = 0.8
    audio_event_chime_boost: float = 0.3
    audio_event_chime_restore: float = 0.15  # seconds
    audio_completion_chime_restore: float = 0.5  # seconds
    audio_guard_stale_restores: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "console"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env == "production"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get settings instance.
    Useful for dependency injection in FastAPI.
    """
    return settings
