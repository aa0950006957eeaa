"""
Tests for settings and logging setup.
"""

import pytest

from flow.core.config import Settings, get_settings, settings
from flow.core.exceptions import ClipEncodingError, FlowError
from flow.core.logging import configure_logging, get_logger


class TestSettings:
    """Test environment-driven configuration."""

    def test_defaults(self):
        """Test production audio defaults."""
        assert settings.audio_sample_rate == 44100
        assert settings.audio_loop_seconds == 30.0
        assert settings.audio_swell_hz == pytest.approx(0.07)
        assert settings.audio_guard_stale_restores is True
        assert get_settings() is settings

    def test_env_override(self, monkeypatch):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("AUDIO_LOOP_SECONDS", "12.5")
        monkeypatch.setenv("AUDIO_BACKEND", "sounddevice")
        monkeypatch.setenv("audio_guard_stale_restores", "false")

        overridden = Settings()

        assert overridden.audio_loop_seconds == 12.5
        assert overridden.audio_backend == "sounddevice"
        assert overridden.audio_guard_stale_restores is False


class TestLogging:
    """Test logging configuration."""

    @pytest.mark.parametrize("log_format", ["json", "console"])
    def test_configure(self, log_format):
        """Test that both renderers configure cleanly."""
        configure_logging(log_format=log_format, log_level="DEBUG")
        logger = get_logger("flow.tests")

        logger.info("logging_configured", log_format=log_format)


def test_error_codes():
    """Test exception codes."""
    error = ClipEncodingError("bad header")

    assert isinstance(error, FlowError)
    assert error.code == "ENCODING_ERROR"
    assert error.message == "bad header"
