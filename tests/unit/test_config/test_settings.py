"""
Unit tests for configuration loading.
"""

import os

import pytest

from discord_connect_receiver.config.settings import (
    ConfigManager,
    ReceiverConfig,
    default_pipe_path,
)
from discord_connect_receiver.infrastructure.exceptions import ConfigError

ENV_KEYS = (
    "DISCORD_TOKEN",
    "BOT_PREFIX",
    "LOG_LEVEL",
    "VOICE_JOIN_TIMEOUT",
    "LIBRESPOT_FIFO_PATH",
    "LIBRESPOT_PATH",
    "LIBRESPOT_DEVICE_NAME",
    "LIBRESPOT_DEVICE_TYPE",
    "LIBRESPOT_ZEROCONF_PORT",
    "LIBRESPOT_BITRATE",
    "LIBRESPOT_SAMPLE_RATE",
    "LIBRESPOT_RESTART_BASE_MS",
    "LIBRESPOT_RESTART_MAX_MS",
    "LIBRESPOT_MAX_RESTARTS",
    "VOICE_PIPELINE",
    "VOICE_OPUS_FRAME_DURATION",
    "DISCORD_OPUS_BITRATE",
    "FFMPEG_PATH",
    "FFMPEG_LOGLEVEL",
    "FFMPEG_OPUS_APPLICATION",
    "FFMPEG_OPUS_FRAME_DURATION",
)


@pytest.fixture
def manager(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return ConfigManager(env_file_path=str(tmp_path / "missing.env"))


class TestConfigManager:
    """Test cases for ConfigManager class."""

    @pytest.mark.unit
    def test_defaults(self, manager):
        """Test that every setting has a default apart from the token."""
        config = manager.get_config()

        assert config.discord_token is None
        assert config.command_prefix == "!"
        assert config.pipe_path == default_pipe_path()
        assert config.device_name == "Discord Connect"
        assert config.device_type == "speaker"
        assert config.librespot_bitrate == "160"
        assert config.source_sample_rate == 44100
        assert config.restart_base_delay == 0.5
        assert config.restart_max_delay == 10.0
        assert config.max_restart_attempts is None
        assert config.pipeline_mode == "native"
        assert config.use_native_pipeline
        assert config.frame_duration_ms == 20
        assert config.opus_bitrate == "160k"
        assert config.join_timeout == 15.0

    @pytest.mark.unit
    def test_environment_overrides(self, manager, monkeypatch):
        """Test that environment variables override the defaults."""
        monkeypatch.setenv("LIBRESPOT_FIFO_PATH", "/run/spotify.fifo")
        monkeypatch.setenv("LIBRESPOT_DEVICE_NAME", "Living Room")
        monkeypatch.setenv("LIBRESPOT_BITRATE", "320")
        monkeypatch.setenv("LIBRESPOT_ZEROCONF_PORT", "5354")
        monkeypatch.setenv("LIBRESPOT_RESTART_BASE_MS", "250")
        monkeypatch.setenv("LIBRESPOT_RESTART_MAX_MS", "4000")
        monkeypatch.setenv("VOICE_PIPELINE", "FFMPEG")
        monkeypatch.setenv("VOICE_OPUS_FRAME_DURATION", "10")

        config = manager.get_config()

        assert config.pipe_path == "/run/spotify.fifo"
        assert config.device_name == "Living Room"
        assert config.librespot_bitrate == "320"
        assert config.zeroconf_port == 5354
        assert config.restart_base_delay == 0.25
        assert config.restart_max_delay == 4.0
        assert config.pipeline_mode == "ffmpeg"
        assert not config.use_native_pipeline
        assert config.frame_duration_ms == 10

    @pytest.mark.unit
    def test_unknown_pipeline_uses_ffmpeg(self, manager, monkeypatch):
        monkeypatch.setenv("VOICE_PIPELINE", "gstreamer")

        assert manager.get_config().pipeline_mode == "ffmpeg"

    @pytest.mark.unit
    def test_blank_values_are_unset(self, manager, monkeypatch):
        monkeypatch.setenv("LIBRESPOT_DEVICE_NAME", "   ")

        assert manager.get_config().device_name == "Discord Connect"

    @pytest.mark.unit
    def test_invalid_bitrate(self, manager, monkeypatch):
        monkeypatch.setenv("LIBRESPOT_BITRATE", "128")

        with pytest.raises(ConfigError, match="LIBRESPOT_BITRATE"):
            manager.get_config()

    @pytest.mark.unit
    def test_invalid_integer(self, manager, monkeypatch):
        monkeypatch.setenv("LIBRESPOT_SAMPLE_RATE", "fast")

        with pytest.raises(ConfigError, match="LIBRESPOT_SAMPLE_RATE must be an integer"):
            manager.get_config()

    @pytest.mark.unit
    def test_non_numeric_frame_duration_falls_back(self, manager, monkeypatch):
        monkeypatch.setenv("VOICE_OPUS_FRAME_DURATION", "short")

        assert manager.get_config().frame_duration_ms == 20

    @pytest.mark.unit
    def test_token_required_for_bot(self, manager):
        with pytest.raises(ConfigError, match="DISCORD_TOKEN"):
            manager.get_config(require_token=True)

    @pytest.mark.unit
    def test_env_file_is_loaded(self, monkeypatch, tmp_path):
        """Test that a .env file seeds the environment."""
        for key in ENV_KEYS:
            monkeypatch.delenv(key, raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("DISCORD_TOKEN=from-file\nLIBRESPOT_DEVICE_NAME=Kitchen\n")

        try:
            config = ConfigManager(env_file_path=str(env_file)).get_config(require_token=True)
        finally:
            os.environ.pop("DISCORD_TOKEN", None)
            os.environ.pop("LIBRESPOT_DEVICE_NAME", None)

        assert config.discord_token == "from-file"
        assert config.device_name == "Kitchen"


class TestReceiverConfig:
    """Test cases for ReceiverConfig validation."""

    @pytest.mark.unit
    def test_inverted_delays_rejected(self):
        with pytest.raises(ConfigError, match="Restart delays"):
            ReceiverConfig(restart_base_delay=5.0, restart_max_delay=1.0)

    @pytest.mark.unit
    def test_non_positive_join_timeout_rejected(self):
        with pytest.raises(ConfigError, match="VOICE_JOIN_TIMEOUT"):
            ReceiverConfig(join_timeout=0)
