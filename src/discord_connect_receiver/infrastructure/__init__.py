"""
Infrastructure components for the Discord Connect Receiver.

This package contains the cross-cutting concerns:
- Logging configuration with environment-based levels
- Custom exception definitions
"""

from .logging import setup_logging, get_logger, relay_lines
from .logging_manager import (
    LoggingManager,
    Environment,
    is_production,
    get_environment,
)
from .exceptions import (
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
    # Logging
    "setup_logging",
    "get_logger",
    "relay_lines",
    "LoggingManager",
    "Environment",
    "is_production",
    "get_environment",
    # Exceptions
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
