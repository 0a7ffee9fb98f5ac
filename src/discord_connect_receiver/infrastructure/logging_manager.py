"""
Environment-aware logging for the Discord Connect Receiver.

The default level follows ``ENVIRONMENT``:

- development: DEBUG
- staging: INFO
- production: WARNING

``LOG_LEVEL`` overrides it for every receiver component. ``logging.yaml``
next to the package is applied once with ``dictConfig``; without it each
component logger gets its own console (and optional file) handler. The
``librespot`` and ``ffmpeg`` loggers carry child process output.
"""

import logging
import logging.config
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# discord.py loggers that flood the output during voice reconnects.
NOISY_LOGGERS = (
    "discord.gateway",
    "discord.client",
    "discord.http",
    "discord.voice_state",
    "discord.player",
    "asyncio",
)

# Loggers relaying child process output; left at their YAML level in production.
PROCESS_LOGGERS = ("librespot", "ffmpeg")

LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_ENVIRONMENT_LEVELS = {
    "development": "DEBUG",
    "staging": "INFO",
    "production": "WARNING",
}

STANDARD_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DETAILED_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
)


class Environment(Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def _detect_environment() -> Environment:
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env in ("prod", "production"):
        return Environment.PRODUCTION
    if env in ("stage", "staging"):
        return Environment.STAGING
    return Environment.DEVELOPMENT


class LoggingManager:
    """Applies the receiver's logging configuration and hands out component loggers."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Args:
            config_path: YAML logging configuration; defaults to the
                ``logging.yaml`` shipped inside the package.
        """
        if config_path is None:
            config_path = Path(__file__).parent.parent / "logging.yaml"
        self.config_path = config_path
        self.environment = _detect_environment()
        self._yaml_applied = False

    @property
    def production(self) -> bool:
        return self.environment is Environment.PRODUCTION

    def default_level(self) -> str:
        """``LOG_LEVEL`` if set and valid, else the environment level."""
        override = (os.getenv("LOG_LEVEL") or "").strip().upper()
        if override in LEVEL_NAMES:
            return override
        return _ENVIRONMENT_LEVELS[self.environment.value]

    def _load_yaml(self) -> Optional[Dict[str, Any]]:
        if not self.config_path.exists():
            return None
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except (yaml.YAMLError, OSError) as e:
            logging.getLogger(__name__).warning(
                f"Failed to load logging config {self.config_path}: {e}"
            )
            return None
        return config if isinstance(config, dict) else None

    def _production_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        level = self.default_level()
        config.setdefault("root", {})["level"] = level
        for name, logger_config in config.get("loggers", {}).items():
            if name in NOISY_LOGGERS or name in PROCESS_LOGGERS:
                continue
            logger_config["level"] = level
        for name, handler_config in config.get("handlers", {}).items():
            if name.startswith("file") and handler_config.get("level") == "DEBUG":
                handler_config["level"] = level
        return config

    def _apply_yaml(self) -> bool:
        if self._yaml_applied:
            return True
        config = self._load_yaml()
        if config is None:
            return False
        if self.production:
            config = self._production_overrides(config)
        for handler_config in config.get("handlers", {}).values():
            filename = handler_config.get("filename")
            if filename:
                os.makedirs(os.path.dirname(filename) or ".", exist_ok=True)
        logging.config.dictConfig(config)
        self._yaml_applied = True
        return True

    def setup_logging(
        self,
        component_name: str,
        log_level: Optional[str] = None,
        log_file: Optional[str] = None,
    ) -> logging.Logger:
        """
        Return the logger for ``component_name`` at the effective level.

        ``log_file`` only applies when no YAML configuration is available;
        the YAML file handler already collects every component.
        """
        level_name = (log_level or self.default_level()).upper()
        level = getattr(logging, level_name, logging.INFO)

        logger = logging.getLogger(component_name)
        logger.setLevel(level)

        if not self._apply_yaml():
            self._attach_handlers(logger, level, log_file)

        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        return logger

    def _attach_handlers(
        self, logger: logging.Logger, level: int, log_file: Optional[str]
    ) -> None:
        formatter = logging.Formatter(
            STANDARD_FORMAT if self.production else DETAILED_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logger.handlers.clear()

        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(formatter)
        logger.addHandler(console)

        if log_file:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.WARNING if self.production else logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)


_logging_manager = LoggingManager()


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Set up logging for a component (convenience function)."""
    return _logging_manager.setup_logging(component_name, log_level, log_file)


def get_logger(component_name: str) -> logging.Logger:
    """Get a logger for a component."""
    return logging.getLogger(component_name)


def is_production() -> bool:
    """Check if running in production mode."""
    return _logging_manager.production


def get_environment() -> Environment:
    """Get current environment."""
    return _logging_manager.environment
