"""
Configuration management for the Discord Connect Receiver.

This package provides:
- The ``ReceiverConfig`` dataclass with defaults for every setting
- Environment (and ``.env``) loading through ``ConfigManager``
"""

from .settings import (
    PIPELINE_FFMPEG,
    PIPELINE_NATIVE,
    ConfigManager,
    ReceiverConfig,
    config_manager,
    default_pipe_path,
)

__all__ = [
    "PIPELINE_FFMPEG",
    "PIPELINE_NATIVE",
    "ConfigManager",
    "ReceiverConfig",
    "config_manager",
    "default_pipe_path",
]
