"""Receiver bot core."""

from .bot_core import ConnectReceiverBot, get_bot_instance, main, run

__all__ = ["ConnectReceiverBot", "get_bot_instance", "main", "run"]
