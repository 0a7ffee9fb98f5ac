"""
Discord Connect Receiver - play a Spotify Connect device into a Discord voice channel.

librespot announces a Spotify Connect device and writes decoded PCM into a
named pipe; the receiver turns that stream into Opus and plays it through
discord.py's voice client.

Architecture:
- Core: named pipe, process supervision, audio pipelines, voice transport
- Audio: codec helpers, packet buffering, the discord.py audio source
- Bots: Discord bot and its device commands
- Config: Configuration management
- Infrastructure: Logging, exceptions
"""

__version__ = "1.0.0"

# Core components
from .core.named_pipe import NamedPipe
from .core.source_supervisor import SourceProcessSupervisor
from .core.pipeline import AudioPipeline, create_pipeline
from .core.transport import TransportSession
from .core.orchestrator import PlaybackOrchestrator, DeviceStatus

# Audio components
from .audio.buffers import PacketBuffer
from .audio.sources import PipelineAudioSource, PlayerState

# Configuration
from .config.settings import ReceiverConfig
from .config import ConfigManager, config_manager

# Infrastructure
from .infrastructure.logging import setup_logging, get_logger
from .infrastructure.exceptions import (
    ReceiverError,
    ConfigError,
    ResourceError,
    ProcessExitError,
    PipelineError,
    TransportError,
    JoinError,
    JoinTimeoutError,
    NotConnectedError,
)

__all__ = [
    "__version__",
    # Core components
    "NamedPipe",
    "SourceProcessSupervisor",
    "AudioPipeline",
    "create_pipeline",
    "TransportSession",
    "PlaybackOrchestrator",
    "DeviceStatus",
    # Audio components
    "PacketBuffer",
    "PipelineAudioSource",
    "PlayerState",
    # Configuration
    "ReceiverConfig",
    "ConfigManager",
    "config_manager",
    # Infrastructure
    "setup_logging",
    "get_logger",
    "ReceiverError",
    "ConfigError",
    "ResourceError",
    "ProcessExitError",
    "PipelineError",
    "TransportError",
    "JoinError",
    "JoinTimeoutError",
    "NotConnectedError",
]
