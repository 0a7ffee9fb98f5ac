"""
Configuration management for the Discord Connect Receiver.

Settings come from the process environment, optionally seeded from a
``.env`` file. Everything except the bot token has a default, so the
playback core can be built without touching Discord at all.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from discord_connect_receiver.infrastructure.exceptions import ConfigError

logger = logging.getLogger(__name__)

PIPELINE_NATIVE = "native"
PIPELINE_FFMPEG = "ffmpeg"

# Bitrates librespot accepts for --bitrate.
LIBRESPOT_BITRATES = ("96", "160", "320")


def default_pipe_path() -> str:
    return os.path.join(tempfile.gettempdir(), "librespot-discord.fifo")


@dataclass
class ReceiverConfig:
    """Configuration for the connect receiver bot and its playback core."""

    # Discord
    discord_token: Optional[str] = None
    command_prefix: str = "!"
    log_level: str = "INFO"
    join_timeout: float = 15.0

    # Source process (librespot)
    pipe_path: str = field(default_factory=default_pipe_path)
    librespot_path: Optional[str] = None
    device_name: str = "Discord Connect"
    device_type: str = "speaker"
    zeroconf_port: Optional[int] = None
    librespot_bitrate: str = "160"
    source_sample_rate: int = 44100
    restart_base_delay: float = 0.5
    restart_max_delay: float = 10.0
    max_restart_attempts: Optional[int] = None

    # Audio pipeline
    pipeline_mode: str = PIPELINE_NATIVE
    frame_duration_ms: float = 20
    opus_bitrate: str = "160k"
    native_respawn_delay: float = 0.2
    ffmpeg_respawn_delay: float = 0.3
    ffmpeg_path: Optional[str] = None
    ffmpeg_loglevel: str = "warning"
    ffmpeg_opus_application: str = "voip"
    ffmpeg_frame_duration: str = "20"

    def __post_init__(self):
        """Normalise and validate values."""
        self.pipeline_mode = (self.pipeline_mode or PIPELINE_NATIVE).lower()
        if self.pipeline_mode != PIPELINE_NATIVE:
            self.pipeline_mode = PIPELINE_FFMPEG

        if self.librespot_bitrate not in LIBRESPOT_BITRATES:
            raise ConfigError(
                f"LIBRESPOT_BITRATE must be one of {', '.join(LIBRESPOT_BITRATES)}, "
                f"got {self.librespot_bitrate!r}"
            )
        if self.restart_base_delay <= 0 or self.restart_max_delay < self.restart_base_delay:
            raise ConfigError(
                "Restart delays must satisfy 0 < base <= max "
                f"(base={self.restart_base_delay}, max={self.restart_max_delay})"
            )
        if self.join_timeout <= 0:
            raise ConfigError(f"VOICE_JOIN_TIMEOUT must be positive, got {self.join_timeout}")

    @property
    def use_native_pipeline(self) -> bool:
        return self.pipeline_mode == PIPELINE_NATIVE


class ConfigManager:
    """Loads :class:`ReceiverConfig` from the environment."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to environment file
        """
        self.env_file_path = env_file_path
        self._load_environment()

    def _load_environment(self):
        """Load environment variables from file."""
        if os.path.exists(self.env_file_path):
            load_dotenv(dotenv_path=self.env_file_path)
            logger.info(f"Loaded environment from {self.env_file_path}")
        else:
            logger.debug(f"Environment file {self.env_file_path} not found")

    def _get_required_env(self, key: str) -> str:
        """
        Get required environment variable.

        Raises:
            ConfigError: If environment variable is not set
        """
        value = os.getenv(key)
        if not value:
            raise ConfigError(f"Required environment variable {key} is not set")
        return value

    def _get_optional_env(self, key: str, default: str = None) -> Optional[str]:
        """Get optional environment variable, treating blank values as unset."""
        value = os.getenv(key)
        if value is None or not value.strip():
            return default
        return value.strip()

    def _get_int_env(self, key: str, default: Optional[int]) -> Optional[int]:
        value = self._get_optional_env(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"{key} must be an integer, got {value!r}") from None

    def _get_float_env(self, key: str, default: float) -> float:
        value = self._get_optional_env(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            raise ConfigError(f"{key} must be a number, got {value!r}") from None

    def _get_frame_duration(self) -> float:
        # Out-of-range values are handled by the encoder fallback; only
        # non-numeric input falls back here.
        value = self._get_optional_env("VOICE_OPUS_FRAME_DURATION", "20")
        try:
            return float(value)
        except ValueError:
            logger.warning(
                f"VOICE_OPUS_FRAME_DURATION={value!r} is not a number, using 20 ms"
            )
            return 20

    def get_config(self, require_token: bool = False) -> ReceiverConfig:
        """
        Build the receiver configuration.

        Args:
            require_token: Fail when DISCORD_TOKEN is missing (bot startup)

        Raises:
            ConfigError: If configuration is missing or invalid
        """
        try:
            token = (
                self._get_required_env("DISCORD_TOKEN")
                if require_token
                else self._get_optional_env("DISCORD_TOKEN")
            )

            config = ReceiverConfig(
                discord_token=token,
                command_prefix=self._get_optional_env("BOT_PREFIX", "!"),
                log_level=self._get_optional_env("LOG_LEVEL", "INFO"),
                join_timeout=self._get_float_env("VOICE_JOIN_TIMEOUT", 15.0),
                pipe_path=self._get_optional_env(
                    "LIBRESPOT_FIFO_PATH", default_pipe_path()
                ),
                librespot_path=self._get_optional_env("LIBRESPOT_PATH"),
                device_name=self._get_optional_env(
                    "LIBRESPOT_DEVICE_NAME", "Discord Connect"
                ),
                device_type=self._get_optional_env("LIBRESPOT_DEVICE_TYPE", "speaker"),
                zeroconf_port=self._get_int_env("LIBRESPOT_ZEROCONF_PORT", None),
                librespot_bitrate=self._get_optional_env("LIBRESPOT_BITRATE", "160"),
                source_sample_rate=self._get_int_env("LIBRESPOT_SAMPLE_RATE", 44100),
                restart_base_delay=self._get_int_env("LIBRESPOT_RESTART_BASE_MS", 500)
                / 1000,
                restart_max_delay=self._get_int_env("LIBRESPOT_RESTART_MAX_MS", 10000)
                / 1000,
                max_restart_attempts=self._get_int_env("LIBRESPOT_MAX_RESTARTS", None),
                pipeline_mode=self._get_optional_env("VOICE_PIPELINE", PIPELINE_NATIVE),
                frame_duration_ms=self._get_frame_duration(),
                opus_bitrate=self._get_optional_env("DISCORD_OPUS_BITRATE", "160k"),
                ffmpeg_path=self._get_optional_env("FFMPEG_PATH"),
                ffmpeg_loglevel=self._get_optional_env("FFMPEG_LOGLEVEL", "warning"),
                ffmpeg_opus_application=self._get_optional_env(
                    "FFMPEG_OPUS_APPLICATION", "voip"
                ),
                ffmpeg_frame_duration=self._get_optional_env(
                    "FFMPEG_OPUS_FRAME_DURATION", "20"
                ),
            )

            logger.info("Configuration loaded successfully")
            return config

        except ConfigError as e:
            logger.error(f"Failed to load configuration: {e}")
            raise


config_manager = ConfigManager()
