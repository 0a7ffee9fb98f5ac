"""Event handlers for the receiver bot."""

from .event_handlers import EventHandlers

__all__ = ["EventHandlers"]
