"""
Logging entry points for the Discord Connect Receiver components.

Components call ``setup_logging`` once at import time and keep the returned
logger; the YAML/environment handling lives in ``logging_manager``. Child
process output (librespot, ffmpeg) is relayed line by line with
``relay_lines``.
"""

import asyncio
import logging
from typing import Callable, Optional

from .logging_manager import setup_logging as _setup_logging, get_logger as _get_logger


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging for a receiver component.

    Args:
        component_name: Name of the component (e.g., 'source_supervisor')
        log_level: Logging level. If None, uses the environment level:
                  Development=DEBUG, Staging=INFO, Production=WARNING
        log_file: Optional log file path, used when no YAML config is present

    Returns:
        logging.Logger: Configured logger instance
    """
    return _setup_logging(component_name, log_level, log_file)


async def relay_lines(
    stream: Optional[asyncio.StreamReader],
    target: logging.Logger,
    level: int,
    on_line: Optional[Callable[[str], None]] = None,
) -> None:
    """Log every non-empty line of ``stream`` until it ends."""
    if stream is None:
        return
    while True:
        try:
            line = await stream.readline()
        except (ValueError, asyncio.LimitOverrunError):
            # Overlong line; what was buffered is dropped.
            continue
        if not line:
            break
        text = line.decode("utf-8", errors="replace").rstrip()
        if not text:
            continue
        target.log(level, text)
        if on_line is not None:
            on_line(text)


def get_logger(component_name: str) -> logging.Logger:
    """Get a logger for a specific component."""
    return _get_logger(component_name)
