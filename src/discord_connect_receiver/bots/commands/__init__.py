"""Command handlers for the receiver bot."""

from .base import BaseCommandHandler
from .device_commands import DeviceCommands

__all__ = ["BaseCommandHandler", "DeviceCommands"]
